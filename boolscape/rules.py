#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Parsing, validation and evaluation of textual Boolean update rules.

A rule set is a list of lines of the form ``target = expression``. Expressions
use ``NOT``/``!``/``~`` (tightest), ``AND``/``&&``/``&``/``*`` (also ``XOR``,
``NAND`` and ``NOR`` at the same level) and ``OR``/``||``/``|``/``+`` (loosest), parentheses,
the literals ``true``/``false``/``1``/``0`` and identifiers matching
``[A-Za-z_][A-Za-z0-9_]*``. Operator words and literals are case-insensitive.

Expressions are parsed by a recursive-descent parser into a small expression
tree. Evaluation only ever looks identifiers up in the mapping it is given;
no Python code is generated or evaluated.

Validation collects every problem of a rule set before reporting, so that
:func:`compile_rules` raises a single :class:`~boolscape.CompilationError`
listing all of them.
"""

import re
from collections.abc import Mapping, Sequence

import numpy as np
import pandas as pd
from pyeda.inter import exprvar, Or, And, espresso_exprs
from pyeda.boolalg.expr import OrOp, AndOp, NotOp, Complement

try:
    import boolscape.utils as utils
    from boolscape.errors import CompilationError
except ModuleNotFoundError:
    import utils
    from errors import CompilationError


__all__ = [
    "RESERVED_WORDS",
    "Constant",
    "Variable",
    "Not",
    "BinaryOp",
    "CompiledRule",
    "parse_expression",
    "split_rule_lines",
    "validate_rules",
    "compile_rules",
]

RESERVED_WORDS = frozenset([
    "sin", "cos", "tan", "log", "ln", "log10",
    "exp", "pi", "sinh", "cosh", "tanh", "abs",
])

OPERATOR_WORDS = frozenset(["and", "or", "not", "xor", "nand", "nor"])
LITERAL_WORDS = {"true": 1, "false": 0}

TARGET_PATTERN = re.compile(r"^[A-Za-z0-9_]+$")

_TOKEN_PATTERN = re.compile(r"""
    (?P<space>\s+)
  | (?P<lparen>\()
  | (?P<rparen>\))
  | (?P<and>&&|&|∧|\*)
  | (?P<or>\|\||\||∨|\+)
  | (?P<not>!|~|¬)
  | (?P<word>[A-Za-z_][A-Za-z0-9_]*)
  | (?P<number>[0-9][A-Za-z0-9_]*)
""", re.VERBOSE)


class ExpressionSyntaxError(ValueError):
    """A single expression could not be parsed."""


## Expression tree

class Expression(object):
    """Base class of expression tree nodes."""

    __slots__ = []

    def evaluate(self, values):
        """
        Evaluate the expression.

        ``values`` maps identifiers to 0/1 integers or to numpy arrays of 0/1
        (in which case the evaluation is element-wise).
        """
        raise NotImplementedError

    def get_variables(self) -> list:
        """Identifiers referenced by the expression, in order of first occurrence."""
        found = []
        self._collect(found)
        return list(dict.fromkeys(found))

    def _collect(self, found):
        pass

    def _key_tree(self):
        raise NotImplementedError

    def __eq__(self, other):
        return isinstance(other, Expression) and self._key_tree() == other._key_tree()

    def __hash__(self):
        return hash(self._key_tree())

    def __repr__(self):
        return f"{type(self).__name__}({str(self)!r})"


class Constant(Expression):
    __slots__ = ['value']

    def __init__(self, value):
        self.value = 1 if value else 0

    def evaluate(self, values):
        return self.value

    def _key_tree(self):
        return ('const', self.value)

    def __str__(self):
        return 'true' if self.value else 'false'


class Variable(Expression):
    __slots__ = ['name']

    def __init__(self, name : str):
        self.name = name

    def evaluate(self, values):
        return values[self.name]

    def _collect(self, found):
        found.append(self.name)

    def _key_tree(self):
        return ('var', self.name)

    def __str__(self):
        return self.name


class Not(Expression):
    __slots__ = ['operand']

    def __init__(self, operand : Expression):
        self.operand = operand

    def evaluate(self, values):
        return 1 - self.operand.evaluate(values)

    def _collect(self, found):
        self.operand._collect(found)

    def _key_tree(self):
        return ('NOT', self.operand._key_tree())

    def __str__(self):
        if isinstance(self.operand, (Constant, Variable, Not)):
            return f"!{self.operand}"
        return f"!({self.operand})"


class BinaryOp(Expression):
    """Binary operator node; ``op`` is one of ``BinaryOp.OPERATORS``."""

    __slots__ = ['op', 'left', 'right']

    OPERATORS = {
        'AND': lambda a, b: a & b,
        'OR': lambda a, b: a | b,
        'XOR': lambda a, b: a ^ b,
        'NAND': lambda a, b: 1 - (a & b),
        'NOR': lambda a, b: 1 - (a | b),
    }
    SYMBOLS = {'AND': '&&', 'OR': '||', 'XOR': 'XOR', 'NAND': 'NAND', 'NOR': 'NOR'}
    PRECEDENCE = {'OR': 1, 'AND': 2, 'XOR': 2, 'NAND': 2, 'NOR': 2}

    def __init__(self, op : str, left : Expression, right : Expression):
        if op not in self.OPERATORS:
            raise ValueError(f"Unknown operator {op!r}")
        self.op = op
        self.left = left
        self.right = right

    def evaluate(self, values):
        return self.OPERATORS[self.op](self.left.evaluate(values), self.right.evaluate(values))

    def _collect(self, found):
        self.left._collect(found)
        self.right._collect(found)

    def _key_tree(self):
        return (self.op, self.left._key_tree(), self.right._key_tree())

    def _wrap(self, child, RIGHT=False):
        if isinstance(child, BinaryOp):
            mine, theirs = self.PRECEDENCE[self.op], self.PRECEDENCE[child.op]
            if theirs < mine or (RIGHT and theirs == mine) or (theirs == mine and child.op != self.op):
                return f"({child})"
        return str(child)

    def __str__(self):
        return f"{self._wrap(self.left)} {self.SYMBOLS[self.op]} {self._wrap(self.right, RIGHT=True)}"


## Parser

def _tokenize(text : str) -> list:
    tokens = []
    position = 0
    while position < len(text):
        match = _TOKEN_PATTERN.match(text, position)
        if match is None:
            raise ExpressionSyntaxError(f"unexpected character {text[position]!r} at position {position + 1}")
        kind = match.lastgroup
        value = match.group()
        position = match.end()
        if kind == 'space':
            continue
        if kind == 'word':
            lower = value.lower()
            if lower in OPERATOR_WORDS:
                tokens.append((lower, value))
            elif lower in LITERAL_WORDS:
                tokens.append(('const', LITERAL_WORDS[lower]))
            else:
                tokens.append(('ident', value))
        elif kind == 'number':
            if value not in ('0', '1'):
                raise ExpressionSyntaxError(f"invalid token {value!r}")
            tokens.append(('const', int(value)))
        else:
            tokens.append((kind, value))
    return tokens


class _Parser(object):
    """
    Recursive-descent parser over the token list.

        expression := and_term (OR and_term)*
        and_term   := unary ((AND | XOR | NAND | NOR) unary)*
        unary      := NOT unary | primary
        primary    := const | ident | '(' expression ')'
    """

    def __init__(self, tokens):
        self.tokens = tokens
        self.position = 0

    def peek(self):
        if self.position < len(self.tokens):
            return self.tokens[self.position][0]
        return None

    def advance(self):
        token = self.tokens[self.position]
        self.position += 1
        return token

    def parse(self) -> Expression:
        if not self.tokens:
            raise ExpressionSyntaxError("empty expression")
        expression = self.parse_or()
        if self.position != len(self.tokens):
            raise ExpressionSyntaxError(f"unexpected {self._describe(self.tokens[self.position])}")
        return expression

    def parse_or(self):
        left = self.parse_and()
        while self.peek() == 'or':
            self.advance()
            left = BinaryOp('OR', left, self.parse_and())
        return left

    def parse_and(self):
        left = self.parse_unary()
        while self.peek() in ('and', 'xor', 'nand', 'nor'):
            op = self.advance()[0].upper()
            left = BinaryOp(op, left, self.parse_unary())
        return left

    def parse_unary(self):
        if self.peek() == 'not':
            self.advance()
            return Not(self.parse_unary())
        return self.parse_primary()

    def parse_primary(self):
        kind = self.peek()
        if kind is None:
            raise ExpressionSyntaxError("unexpected end of expression")
        token = self.advance()
        if kind == 'const':
            return Constant(token[1])
        if kind == 'ident':
            return Variable(token[1])
        if kind == 'lparen':
            expression = self.parse_or()
            if self.peek() != 'rparen':
                raise ExpressionSyntaxError("missing closing parenthesis")
            self.advance()
            return expression
        raise ExpressionSyntaxError(f"unexpected {self._describe(token)}")

    @staticmethod
    def _describe(token):
        if token[0] == 'rparen':
            return "')'"
        return f"token {str(token[1])!r}"


def parse_expression(text : str) -> Expression:
    """
    Parse a single Boolean expression into an expression tree.

    Raises
    ------
    ValueError
        If the expression does not follow the rule grammar.

    Examples
    --------
    >>> tree = parse_expression('a && !(b || c)')
    >>> tree.get_variables()
    ['a', 'b', 'c']
    >>> tree.evaluate({'a': 1, 'b': 0, 'c': 0})
    1
    """
    if not isinstance(text, str):
        raise TypeError("expression must be a string")
    return _Parser(_tokenize(text)).parse()


## Compiled rules

class CompiledRule(object):
    """
    A validated update rule for one node.

    **Members:**

        - target (str): The node whose next value the rule defines.
        - expression (Expression): Parsed right-hand side.
        - line (int): 1-based line number in the rule set.
        - text (str): The original, stripped rule line.
        - variables (list[str]): Identifiers referenced by the expression,
          in order of first occurrence.
    """

    __slots__ = ['target', 'expression', 'line', 'text', 'variables']

    def __init__(self, target : str, expression : Expression, line : int = 0, text : str = ''):
        self.target = target
        self.expression = expression
        self.line = line
        self.text = text if text else f"{target} = {expression}"
        self.variables = expression.get_variables()

    def __repr__(self):
        return f"{type(self).__name__}({self.target!r} = {str(self.expression)!r})"

    def __str__(self):
        return f"{self.target} = {self.expression}"

    def __eq__(self, other):
        return (isinstance(other, CompiledRule) and self.target == other.target
                and self.expression == other.expression)

    def __hash__(self):
        return hash((self.target, self.expression))

    def evaluate(self, values : Mapping) -> int:
        """Next value (0 or 1) of the target given the current node values."""
        return int(self.expression.evaluate(values)) & 1

    def get_truth_table(self, max_degree : int = 16) -> np.ndarray:
        """
        Outputs of the rule for all ``2**n`` combinations of its variables.

        Rows are ordered as in :func:`~boolscape.utils.get_left_side_of_truth_table`
        with columns ``self.variables``.
        """
        n = len(self.variables)
        if n > max_degree:
            raise ValueError(f"Rule for {self.target!r} has {n} inputs, more than max_degree={max_degree}")
        left_side = utils.get_left_side_of_truth_table(n).astype(np.int64)
        values = {var: left_side[:, i] for i, var in enumerate(self.variables)}
        f = self.expression.evaluate(values)
        return np.broadcast_to(np.asarray(f, dtype=np.int64) & 1, (2**n,)).copy()

    def to_truth_table(self) -> "pd.DataFrame":
        """
        Truth table of the rule as a pandas DataFrame whose columns are the
        variables followed by the target.
        """
        columns = list(self.variables) + [self.target]
        n = len(self.variables)
        return pd.DataFrame(np.c_[utils.get_left_side_of_truth_table(n), self.get_truth_table()],
                            columns=columns)

    def to_logical(self, AND : str = '&&', OR : str = '||', NOT : str = '!',
                   MINIMIZE_EXPRESSION : bool = True) -> str:
        """
        Render the rule's function as a logical expression.

        The expression is rebuilt from the truth table in disjunctive normal
        form and, if MINIMIZE_EXPRESSION, minimized with Espresso. Variables
        the function does not depend on disappear in the minimized form.
        """
        f = self.get_truth_table()
        n = len(self.variables)
        if not f.any():
            return '0'
        if f.all():
            return '1'
        variables = [exprvar(str(var)) for var in self.variables]
        terms = []
        for m in np.flatnonzero(f):
            bits = [(variables[i] if (m >> (n - 1 - i)) & 1 else ~variables[i]) for i in range(n)]
            terms.append(And(*bits))
        func_expr = Or(*terms).to_dnf()
        if MINIMIZE_EXPRESSION:
            func_expr, = espresso_exprs(func_expr)

        def __pyeda_to_string__(e, top=False):
            if isinstance(e, OrOp):
                joined = f" {OR} ".join(__pyeda_to_string__(arg) for arg in e.xs)
                return joined if top else f"({joined})"
            elif isinstance(e, AndOp):
                return f" {AND} ".join(__pyeda_to_string__(arg) for arg in e.xs)
            elif isinstance(e, NotOp):
                return f"{NOT}({__pyeda_to_string__(e.x, top=True)})"
            elif isinstance(e, Complement):
                return f"{NOT}{str(e)[1:]}"
            return str(e)
        return __pyeda_to_string__(func_expr, top=True)


## Validation

def split_rule_lines(rules) -> list:
    """
    Normalize a rule set to a list of raw lines.

    Accepts a multi-line string or a sequence of strings (which may themselves
    contain line breaks).
    """
    if isinstance(rules, str):
        return rules.splitlines()
    if not isinstance(rules, Sequence):
        raise TypeError("rules must be a string or a sequence of strings")
    lines = []
    for rule in rules:
        if not isinstance(rule, str):
            raise TypeError(f"rules must contain strings, got {type(rule).__name__}")
        lines.extend(rule.splitlines() if rule else [''])
    return lines


def _is_reserved(name : str) -> bool:
    lower = name.lower()
    return lower in RESERVED_WORDS or lower in OPERATOR_WORDS or lower in LITERAL_WORDS


def _check_rules(rules) -> tuple:
    """Return (compiled rules, error messages) for a rule set."""
    errors = []
    compiled = []
    defined = set()
    seen = set()
    references = {}

    for index, raw_line in enumerate(split_rule_lines(rules)):
        lineno = index + 1
        line = raw_line.strip()
        if line == '' or line.startswith('#'):
            continue
        if '=' not in line:
            errors.append(f"Line {lineno}: Missing equals sign (=)")
            continue
        left, right = (part.strip() for part in line.split('=', 1))
        if left == '':
            errors.append(f"Line {lineno}: Missing target node name")
            continue

        TARGET_OK = True
        if not TARGET_PATTERN.match(left):
            errors.append(f"Line {lineno}: Node name \"{left}\" contains invalid characters")
            TARGET_OK = False
        if _is_reserved(left):
            errors.append(f"Line {lineno}: Node name \"{left}\" uses reserved word")
            TARGET_OK = False
        if left in seen:
            errors.append(f"Line {lineno}: Node \"{left}\" is defined multiple times")
            TARGET_OK = False
        else:
            seen.add(left)
        defined.add(left)

        if right == '':
            errors.append(f"Line {lineno}: Missing Boolean expression for \"{left}\"")
            continue
        try:
            expression = parse_expression(right)
        except ExpressionSyntaxError as e:
            errors.append(f"Line {lineno}: Invalid Boolean expression for \"{left}\": {e}")
            continue

        for name in expression.get_variables():
            references.setdefault(name, []).append(lineno)
        if TARGET_OK:
            compiled.append(CompiledRule(left, expression, lineno, line))

    undefined = sorted(name for name in references if name not in defined)
    if undefined:
        listed = ', '.join(
            f"\"{name}\" (line{'s' if len(references[name]) > 1 else ''} "
            f"{', '.join(map(str, sorted(set(references[name]))))})"
            for name in undefined)
        errors.append(f"Undefined variables used in expressions: {listed}")
    return compiled, errors


def validate_rules(rules) -> list:
    """
    Check a rule set and return every error message found.

    An empty list means the rule set compiles. Blank lines and lines starting
    with ``#`` are skipped but still counted for line numbers.

    **Parameters:**

        - rules (str | list[str]): The rule set, one ``target = expression``
          per line.

    **Returns:**

        - list[str]: Error messages, line numbered where they refer to a line.
    """
    return _check_rules(rules)[1]


def compile_rules(rules) -> list:
    """
    Compile a rule set.

    **Parameters:**

        - rules (str | list[str]): The rule set, one ``target = expression``
          per line.

    **Returns:**

        - list[CompiledRule]: One compiled rule per non-empty line, in order.

    **Raises:**

        - CompilationError: If any line is invalid or an expression references
          an identifier that no line defines. All problems are listed.

    **Example:**

        >>> rules = compile_rules(['a = b', 'b = !a'])
        >>> [str(rule) for rule in rules]
        ['a = b', 'b = !a']
    """
    compiled, errors = _check_rules(rules)
    if errors:
        raise CompilationError(errors)
    return compiled
