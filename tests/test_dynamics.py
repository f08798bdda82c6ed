#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import numpy as np
import pytest

from boolscape.dynamics import RuleBasedUpdate, ThresholdUpdate
from boolscape.errors import CompilationError, ConfigurationError
from boolscape.network import Network
from boolscape.rules import compile_rules


# ------------------------------------------------------------
# 1 Rule-based update
# ------------------------------------------------------------

def test_rule_based_update_swaps():
    """
    a = b, b = a swaps the two values.
    """
    update = RuleBasedUpdate(Network(['a', 'b'], rules=['a = b', 'b = a']))
    assert [update(state) for state in range(4)] == [0, 2, 1, 3]


def test_rule_based_update_resolves_labels():
    net = Network([{'id': 'n1', 'label': 'Gene'}], rules='Gene = !Gene')
    update = RuleBasedUpdate(net)
    assert update(0) == 1
    assert update(1) == 0


@pytest.mark.parametrize("unruled, expected", [('hold', 3), ('false', 2)])
def test_unruled_policies(unruled, expected):
    """
    b has no rule; from a=0, b=1 the next value of b depends on the policy.
    """
    net = Network(['a', 'b'], rules=['a = b', 'b = b'])
    compiled = compile_rules(['a = b', 'b = b'])[:1]
    update = RuleBasedUpdate(net, compiled, unruled=unruled)
    assert update(1) == expected


def test_unruled_reject():
    net = Network(['a', 'b'], rules=['a = b', 'b = b'])
    compiled = compile_rules(['a = b', 'b = b'])[:1]
    with pytest.raises(CompilationError) as excinfo:
        RuleBasedUpdate(net, compiled, unruled='reject')
    assert 'Nodes without a rule: "b"' in excinfo.value.errors


def test_rule_target_must_be_a_node():
    compiled = compile_rules(['a = 1', 'z = a'])
    with pytest.raises(CompilationError):
        RuleBasedUpdate(Network(['a']), compiled)


def test_invalid_unruled_policy():
    with pytest.raises(ConfigurationError):
        RuleBasedUpdate(Network(['a'], rules=['a = a']), unruled='random')


def test_controls_clamp_nodes():
    """
    A knocked-out node stays 0 whatever its rule says.
    """
    net = Network(['a', 'b'], rules=['a = 1', 'b = a'])
    update = RuleBasedUpdate(net, controls={'a': 0})
    assert update(0) == 0
    assert update(3) == 1
    knocked_in = RuleBasedUpdate(net.get_network_with_node_controls(['b'], [1]))
    assert knocked_in(0) == 3


def test_vectorized_state_transition_graph_matches_single_updates():
    rules = ['x0 = x1 && !x4', 'x1 = x0 || x2', 'x2 = x3 XOR x0', 'x3 = !x3', 'x4 = x2 NOR x1']
    update = RuleBasedUpdate(Network.from_rules(rules))
    STG = update.compute_synchronous_state_transition_graph()
    assert STG.tolist() == [update(state) for state in range(2**5)]


def test_update_of_state_vectors():
    update = RuleBasedUpdate(Network(['a', 'b', 'c'], rules=['a = c', 'b = a', 'c = b']))
    X = update.update_network_synchronously([1, 0, 0])
    assert X.tolist() == [0, 1, 0]
    assert update.update_network_synchronously_many_times([1, 0, 0], 3).tolist() == [1, 0, 0]
    with pytest.raises(ValueError):
        update.update_network_synchronously([1, 0])


# ------------------------------------------------------------
# 2 Weighted-threshold update
# ------------------------------------------------------------

def test_threshold_input_node_holds():
    """
    A -> B with weight 1: from A=1, B=0 the state moves to A=1, B=1 and stays.
    """
    net = Network(['A', 'B'], edges=[('A', 'B', 1.0)])
    update = ThresholdUpdate(net, threshold_multiplier=0.5, tie_behavior='hold')
    start = update.codec.encode({'A': 1, 'B': 0})
    successor = update(start)
    assert update.codec.decode(successor) == {'A': 1, 'B': 1}
    assert update(successor) == successor
    assert update(update.codec.encode({'B': 1})) == 0


@pytest.mark.parametrize("tie_behavior, from_b0, from_b1", [
    ('hold', 2, 3),
    ('zero-as-zero', 2, 2),
    ('zero-as-one', 3, 3),
])
def test_tie_behaviors(tie_behavior, from_b0, from_b1):
    """
    The score of B equals the threshold exactly when A = 1.
    """
    net = Network(['A', 'B'], edges=[('A', 'B', 0.5)])
    update = ThresholdUpdate(net, threshold_multiplier=0.5, tie_behavior=tie_behavior)
    assert update(2) == from_b0
    assert update(3) == from_b1


def test_inhibition_and_bias():
    net = Network(['A', {'id': 'B', 'bias': 1.0}], edges=[('A', 'B', -1.0)])
    update = ThresholdUpdate(net)
    assert update(0) == 1
    assert update(2) == 2


def test_bias_overrides_make_node_non_input():
    """
    A node with an explicit bias is updated even without incoming edges.
    """
    update = ThresholdUpdate(Network(['A']), biases={'A': 0.0})
    assert update(1) == 0
    assert ThresholdUpdate(Network(['A']))(1) == 1


def test_threshold_scaled_by_indegree():
    net = Network(['A', 'B', 'C'], edges=[('A', 'C', 1.0), ('B', 'C', 1.0)])
    update = ThresholdUpdate(net, SCALE_THRESHOLD_BY_INDEGREE=True)
    assert np.allclose(update.thresholds, [0.5, 0.5, 1.0])
    assert update(0b100) == 0b100
    assert update(0b110) == 0b111


def test_invalid_threshold_configuration():
    net = Network(['A'])
    with pytest.raises(ConfigurationError):
        ThresholdUpdate(net, tie_behavior='coin-flip')
    with pytest.raises(ConfigurationError):
        ThresholdUpdate(net, threshold_multiplier=float('nan'))
