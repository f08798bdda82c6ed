#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import os
import warnings

import pytest

import boolscape
from boolscape.analysis import (perform_deterministic_analysis, perform_probabilistic_analysis,
                                perform_weighted_analysis)


def test_deterministic_analysis_of_swap_network():
    result = perform_deterministic_analysis(['a', 'b'], "a = b\nb = a")
    assert [(att.kind, att.states, att.basin_size) for att in result.attractors] == [
        ('fixed-point', [0], 1), ('limit-cycle', [1, 2], 2), ('fixed-point', [3], 1)]
    assert result.to_dict()['exploredStateCount'] == 4


def test_deterministic_analysis_reports_all_compile_errors():
    """
    Compilation errors are raised before any search, in a single exception.
    """
    def should_stop():
        raise AssertionError("search must not start")

    with pytest.raises(boolscape.CompilationError) as excinfo:
        perform_deterministic_analysis(['x'], ['x = y && z'], should_stop=should_stop)
    assert len(excinfo.value.errors) == 1


def test_deterministic_analysis_resolves_labels():
    nodes = [{'id': 'n1', 'label': 'Gene'}]
    result = perform_deterministic_analysis(nodes, ['Gene = !Gene'])
    assert len(result.attractors) == 1
    cycle = result.to_dict()['attractors'][0]
    assert cycle['period'] == 2
    assert cycle['states'][0]['values'] == {'n1': 0, 'Gene': 0}


def test_deterministic_analysis_with_knockout():
    rules = ['a = b', 'b = a']
    result = perform_deterministic_analysis(['a', 'b'], rules, controls={'a': 0})
    assert [att.states for att in result.attractors] == [[0]]


def test_weighted_analysis_single_edge():
    """
    A -> B with weight 1: A = 1, B = 0 moves to the fixed point A = 1, B = 1.
    """
    result = perform_weighted_analysis(['A', 'B'], [{'source': 'A', 'target': 'B', 'weight': 1.0}],
                                       threshold_multiplier=0.5, tie_behavior='hold')
    assert result.get_attractor_of({'A': 1, 'B': 0}).states == [3]
    assert all(att.kind == 'fixed-point' for att in result.attractors)


def test_weighted_analysis_rejects_bad_tie_behavior():
    with pytest.raises(boolscape.ConfigurationError):
        perform_weighted_analysis(['A'], [], tie_behavior='sometimes')


def test_probabilistic_analysis():
    result = perform_probabilistic_analysis([{'id': 'A', 'bias': 1.0}, 'B'], [('A', 'B', 1.0)])
    assert result.converged
    assert set(result.probabilities) == {'A', 'B'}
    assert all(0.0 <= p <= 1.0 for p in result.probabilities.values())


@pytest.mark.parametrize("analysis, args", [
    (perform_deterministic_analysis, ([], [])),
    (perform_weighted_analysis, ([], [])),
    (perform_probabilistic_analysis, ([], [])),
])
def test_empty_node_list(analysis, args):
    result = analysis(*args)
    assert len(result.warnings) == 1
    assert 'skipped' in result.warnings[0]


def test_rules_stored_on_nodes():
    result = perform_deterministic_analysis([{'id': 'a', 'rule': '!a'}, 'b'], ['b = a'])
    assert [att.period for att in result.attractors] == [2]
    assert result.attractors[0].basin_size == 4


def test_seventeen_nodes_are_explored_exhaustively_by_default():
    """
    Basin sizes sum to 2^N and nothing is truncated for a 17-node network
    analyzed with the default state cap.
    """
    nodes = [f'x{i}' for i in range(17)]
    rules = [f'x{i} = x{i}' for i in range(17)]
    with warnings.catch_warnings():
        warnings.simplefilter('error', boolscape.CapacityWarning)
        result = perform_deterministic_analysis(nodes, rules, rng=0)
    assert not result.truncated
    assert result.explored_state_count == result.total_state_space == 2**17
    assert sum(att.basin_size for att in result.attractors) == 2**17
    assert len(result.attractors) == 2**17


def test_capacity_warning_points_at_caller():
    nodes = [f'x{i}' for i in range(12)]
    rules = [f'x{i} = x{(i - 1) % 12}' for i in range(12)]
    with pytest.warns(boolscape.CapacityWarning) as record:
        perform_deterministic_analysis(nodes, rules, state_cap=100, rng=0)
    assert os.path.basename(record[0].filename) == os.path.basename(__file__)
