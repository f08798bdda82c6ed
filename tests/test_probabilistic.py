#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import numpy as np
import pytest
from scipy.special import expit

from boolscape.errors import ConfigurationError
from boolscape.network import Network
from boolscape.probabilistic import (MIN_PROBABILITY, potential_energy, relaxation_step,
                                     solve_steady_state)


def cascade():
    """A (bias 1) -> B, and an isolated node C without bias."""
    return Network([{'id': 'A', 'bias': 1.0}, 'B', 'C'], edges=[('A', 'B', 1.0)])


def test_relaxation_step_formula():
    p = np.array([0.2, 0.7])
    W = np.array([[0.0, 1.0], [-0.5, 0.0]])
    offset = np.array([0.1, -0.3])
    expected = expit((W @ p + offset - 0.1 * p) / 0.25)
    assert np.allclose(relaxation_step(p, W, offset, 0.25, 0.1), expected)


def test_high_noise_flattens_probabilities():
    """
    For large noise every probability tends to 0.5.
    """
    result = solve_steady_state(cascade(), noise=1e6)
    assert result.converged
    for p in result.probabilities.values():
        assert abs(p - 0.5) < 1e-3


def test_low_noise_approaches_threshold_rule():
    """
    For small noise and no self-degradation the probabilities approach the
    deterministic threshold rule: A and B active, C inactive.
    """
    result = solve_steady_state(cascade(), noise=0.01, self_degradation=0.0)
    assert result.converged
    assert result.probabilities['A'] > 0.99
    assert result.probabilities['B'] > 0.99
    assert result.probabilities['C'] < 0.01


def test_potential_energy_is_negative_log_probability():
    result = solve_steady_state(cascade(), noise=0.01, self_degradation=0.0)
    for node_id, p in result.probabilities.items():
        assert np.isclose(result.potential_energies[node_id], -np.log(max(p, MIN_PROBABILITY)))
    assert np.isclose(potential_energy(0.0), -np.log(MIN_PROBABILITY))
    assert result.potential_energies['A'] < result.potential_energies['C']


def test_iterations_are_bounded():
    result = solve_steady_state(cascade(), max_iterations=1)
    assert result.iterations == 1
    assert not result.converged
    assert len(result.warnings) == 1

    result = solve_steady_state(cascade())
    assert result.converged
    assert 1 <= result.iterations <= 500
    assert result.warnings == []


def test_controls_and_initial_probabilities():
    result = solve_steady_state(cascade(), controls={'A': 0}, initial_probabilities={'C': 1.0},
                                noise=0.01, self_degradation=0.0)
    assert result.probabilities['A'] == 0.0
    assert result.probabilities['B'] < 0.01


def test_basal_activity_and_bias_overrides():
    low = solve_steady_state(cascade())
    raised = solve_steady_state(cascade(), basal_activity={'C': 1.0})
    lowered = solve_steady_state(cascade(), biases={'A': -1.0})
    assert raised.probabilities['C'] > low.probabilities['C']
    assert lowered.probabilities['A'] < low.probabilities['A']


def test_damping_reaches_the_same_steady_state():
    plain = solve_steady_state(cascade(), tolerance=1e-8, max_iterations=5000)
    damped = solve_steady_state(cascade(), damping=0.5, tolerance=1e-8, max_iterations=5000)
    for node_id in plain.node_order:
        assert abs(plain.probabilities[node_id] - damped.probabilities[node_id]) < 1e-5


@pytest.mark.parametrize("kwargs", [
    {'noise': 0},
    {'noise': -1.0},
    {'noise': 'high'},
    {'self_degradation': 1.5},
    {'max_iterations': 0},
    {'max_iterations': 2.5},
    {'tolerance': 0},
    {'initial_probability': 2.0},
    {'damping': 1.0},
    {'initial_probabilities': {'A': -0.1}},
])
def test_invalid_parameters(kwargs):
    with pytest.raises(ConfigurationError):
        solve_steady_state(cascade(), **kwargs)


def test_empty_network():
    result = solve_steady_state(Network([]))
    assert result.converged
    assert result.probabilities == {}
    assert len(result.warnings) == 1


def test_result_exports():
    result = solve_steady_state(cascade())
    exported = result.to_dict()
    assert exported['nodeOrder'] == ['A', 'B', 'C']
    assert set(exported) == {'nodeOrder', 'probabilities', 'potentialEnergies', 'iterations',
                             'converged', 'warnings'}
    df = result.to_dataframe()
    assert df['node'].tolist() == ['A', 'B', 'C']
