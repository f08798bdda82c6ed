#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import numpy as np
import pytest

from boolscape.errors import CompilationError
from boolscape.rules import (BinaryOp, Constant, Not, Variable, compile_rules,
                             parse_expression, validate_rules)


# ------------------------------------------------------------
# 1 Grammar and precedence
# ------------------------------------------------------------

def test_and_binds_tighter_than_or():
    """
    a || b && c must parse as a || (b && c).
    """
    expected = BinaryOp('OR', Variable('a'), BinaryOp('AND', Variable('b'), Variable('c')))
    assert parse_expression('a || b && c') == expected


def test_not_binds_tightest():
    """
    !a && b must parse as (!a) && b.
    """
    expected = BinaryOp('AND', Not(Variable('a')), Variable('b'))
    assert parse_expression('!a && b') == expected


def test_parentheses_override_precedence():
    expected = BinaryOp('AND', BinaryOp('OR', Variable('a'), Variable('b')), Variable('c'))
    assert parse_expression('(a || b) && c') == expected


def test_operator_spellings_are_equivalent():
    """
    Word operators are case-insensitive and equal to their symbols.
    """
    reference = parse_expression('a && !b || c')
    for text in ['a AND NOT b OR c', 'a and not b or c', 'a & ~b | c', 'a ∧ ¬b ∨ c', 'a * !b + c']:
        assert parse_expression(text) == reference, text


def test_arithmetic_spellings_compile():
    """
    * is AND and + is OR, with the usual precedence.
    """
    assert validate_rules(['a = b * c + a', 'b = b', 'c = c']) == []
    rule = compile_rules(['a = b * c + a', 'b = b', 'c = c'])[0]
    assert rule.expression == parse_expression('(b && c) || a')


def test_literals():
    assert parse_expression('TRUE') == Constant(1)
    assert parse_expression('false') == Constant(0)
    assert parse_expression('1') == Constant(1)
    assert parse_expression('0') == Constant(0)


def test_variables_in_order_of_first_occurrence():
    tree = parse_expression('c && (a || c) && !b')
    assert tree.get_variables() == ['c', 'a', 'b']


@pytest.mark.parametrize("text", ['a &&', '(a || b', 'a b', '2', 'a && )', '', 'a $ b'])
def test_malformed_expressions_are_rejected(text):
    with pytest.raises(ValueError):
        parse_expression(text)


def test_string_form_reparses_to_the_same_tree():
    tree = parse_expression('a || b && !c')
    assert str(tree) == 'a || b && !c'
    assert parse_expression(str(tree)) == tree


# ------------------------------------------------------------
# 2 Evaluation
# ------------------------------------------------------------

@pytest.mark.parametrize("op, expected", [
    ('AND', [0, 0, 0, 1]),
    ('OR', [0, 1, 1, 1]),
    ('XOR', [0, 1, 1, 0]),
    ('NAND', [1, 1, 1, 0]),
    ('NOR', [1, 0, 0, 0]),
])
def test_binary_operator_truth_tables(op, expected):
    rule, _, _ = compile_rules([f'x = a {op} b', 'a = a', 'b = b'])
    assert rule.variables == ['a', 'b']
    assert rule.get_truth_table().tolist() == expected


def test_evaluation_on_arrays():
    """
    Evaluation is element-wise when the values are numpy arrays.
    """
    tree = parse_expression('a && !b')
    values = {'a': np.array([0, 1, 1]), 'b': np.array([0, 0, 1])}
    assert np.asarray(tree.evaluate(values)).tolist() == [0, 1, 0]


def test_identifiers_are_only_looked_up():
    """
    Identifiers never reach the interpreter; unknown names are undefined.
    """
    errors = validate_rules(['a = __import__'])
    assert errors == ['Undefined variables used in expressions: "__import__" (line 1)']


def test_to_truth_table():
    rule = compile_rules(['z = x && !y', 'x = x', 'y = 0'])[0]
    df = rule.to_truth_table()
    assert list(df.columns) == ['x', 'y', 'z']
    assert df.shape == (4, 3)
    assert df.iloc[:, -1].tolist() == [0, 0, 1, 0]


def test_to_logical_minimizes():
    rules = compile_rules(['a = (b && c) || (b && !c)', 'b = b', 'c = c', 'd = b || !b', 'e = b && !b'])
    assert rules[0].to_logical() == 'b'
    assert rules[3].to_logical() == '1'
    assert rules[4].to_logical() == '0'


# ------------------------------------------------------------
# 3 Validation
# ------------------------------------------------------------

def test_undefined_variables_single_error():
    """
    x = y && z with y and z undefined yields exactly one error naming both.
    """
    with pytest.raises(CompilationError) as excinfo:
        compile_rules('x = y && z')
    assert len(excinfo.value.errors) == 1
    message = excinfo.value.errors[0]
    assert '"y"' in message and '"z"' in message


def test_undefined_variable_lists_every_line():
    errors = validate_rules(['a = q', 'b = q || a'])
    assert errors == ['Undefined variables used in expressions: "q" (lines 1, 2)']


@pytest.mark.parametrize("rules, expected", [
    (['a b'], 'Line 1: Missing equals sign (=)'),
    (['= a'], 'Line 1: Missing target node name'),
    (['a-b = 1'], 'Line 1: Node name "a-b" contains invalid characters'),
    (['sin = 1'], 'Line 1: Node name "sin" uses reserved word'),
    (['AND = 1'], 'Line 1: Node name "AND" uses reserved word'),
    (['a = 1', 'a = 0'], 'Line 2: Node "a" is defined multiple times'),
    (['a ='], 'Line 1: Missing Boolean expression for "a"'),
])
def test_line_errors(rules, expected):
    assert validate_rules(rules) == [expected]


def test_invalid_expression_error():
    errors = validate_rules(['b = 1', 'a = b &&'])
    assert len(errors) == 1
    assert errors[0].startswith('Line 2: Invalid Boolean expression for "a"')


def test_all_errors_are_collected_with_line_numbers():
    """
    Blank and comment lines are skipped but counted.
    """
    rules = "# comment\n\na b\nc = \nd = d"
    assert validate_rules(rules) == [
        'Line 3: Missing equals sign (=)',
        'Line 4: Missing Boolean expression for "c"',
    ]
    with pytest.raises(CompilationError) as excinfo:
        compile_rules(rules)
    assert len(excinfo.value.errors) == 2


def test_compiled_rules_keep_line_numbers():
    rules = compile_rules(['', 'a = b', '# b is constant', 'b = 1'])
    assert [(rule.target, rule.line) for rule in rules] == [('a', 2), ('b', 4)]
    assert [str(rule) for rule in rules] == ['a = b', 'b = true']
