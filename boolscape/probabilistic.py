#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Mean-field relaxation estimate of steady-state activation probabilities.

Every node carries the probability ``p_i`` of being active. One sweep
recomputes all probabilities simultaneously from

    h_i = sum_j w_ji p_j + bias_i + basal_i - theta - c p_i
    p_i <- damping p_i + (1 - damping) expit(h_i / mu)

where ``theta`` is the threshold of the weighted-threshold rule, ``c`` the
self-degradation constant and ``mu`` the noise. For ``mu -> 0`` the response
becomes the step function of the threshold rule; for ``mu -> inf`` every
probability tends to 0.5. Self-degradation acts as self-inhibition and pulls
nodes without positive input toward 0.

Iteration stops when the largest change of one sweep is below the tolerance
or after ``max_iterations`` sweeps. The potential energy of a node is
``-ln(p_i)``, lower for more likely active nodes.
"""

import numpy as np
import pandas as pd
from scipy.special import expit

try:
    import boolscape.utils as utils
    from boolscape.errors import ConfigurationError
    from boolscape.network import Network
except ModuleNotFoundError:
    import utils
    from errors import ConfigurationError
    from network import Network


__all__ = [
    "DEFAULT_NOISE",
    "DEFAULT_SELF_DEGRADATION",
    "DEFAULT_MAX_ITERATIONS",
    "DEFAULT_TOLERANCE",
    "DEFAULT_INITIAL_PROBABILITY",
    "ProbabilisticResult",
    "relaxation_step",
    "potential_energy",
    "solve_steady_state",
]

DEFAULT_NOISE = 0.25
DEFAULT_SELF_DEGRADATION = 0.1
DEFAULT_MAX_ITERATIONS = 500
DEFAULT_TOLERANCE = 1e-4
DEFAULT_INITIAL_PROBABILITY = 0.5
DEFAULT_THRESHOLD = 0.5

MIN_PROBABILITY = 1e-9


class ProbabilisticResult(object):
    """
    Steady-state estimate of the relaxation solver.

    **Members:**

        - node_order (list[str]): Canonical node order.
        - probabilities (dict[str:float]): Activation probability per node.
        - potential_energies (dict[str:float]): -ln(probability) per node.
        - converged (bool): Whether the tolerance was reached.
        - iterations (int): Number of sweeps performed.
        - warnings (list[str]): Advisory messages.
    """

    def __init__(self, node_order, probabilities, potential_energies, converged,
                 iterations, warnings=None):
        self.node_order = list(node_order)
        self.probabilities = dict(probabilities)
        self.potential_energies = dict(potential_energies)
        self.converged = converged
        self.iterations = iterations
        self.warnings = list(warnings) if warnings is not None else []

    def __repr__(self):
        return (f"ProbabilisticResult(N={len(self.node_order)}, converged={self.converged}, "
                f"iterations={self.iterations})")

    def to_dict(self) -> dict:
        return {
            'nodeOrder': list(self.node_order),
            'probabilities': dict(self.probabilities),
            'potentialEnergies': dict(self.potential_energies),
            'iterations': self.iterations,
            'converged': self.converged,
            'warnings': list(self.warnings),
        }

    def to_dataframe(self) -> "pd.DataFrame":
        """One row per node with its probability and potential energy."""
        return pd.DataFrame({
            'node': self.node_order,
            'probability': [self.probabilities[x] for x in self.node_order],
            'potential_energy': [self.potential_energies[x] for x in self.node_order],
        })


def relaxation_step(p : np.ndarray, W : np.ndarray, offset : np.ndarray,
                    noise : float, self_degradation : float) -> np.ndarray:
    """
    Response of every node to the current probabilities.

    **Parameters:**

        - p (np.array[float]): Current probabilities.
        - W (np.array[float]): Weight matrix, ``W[target, source]``.
        - offset (np.array[float]): Bias plus basal activity minus threshold.
        - noise (float): Noise mu > 0.
        - self_degradation (float): Self-degradation c in [0, 1].

    **Returns:**

        - np.array[float]: ``expit((W p + offset - c p) / mu)``.
    """
    drive = W @ p + offset - self_degradation * p
    return expit(drive / noise)


def potential_energy(p) -> np.ndarray:
    """-ln(p), with p floored at MIN_PROBABILITY."""
    return -np.log(np.maximum(p, MIN_PROBABILITY))


def _check_number(name, value, low=None, high=None, LOW_OPEN=False, HIGH_OPEN=False):
    if not utils.is_number(value):
        raise ConfigurationError(f"{name} must be a finite number, got {value!r}")
    if low is not None and (value < low or (LOW_OPEN and value == low)):
        raise ConfigurationError(f"{name} must be {'>' if LOW_OPEN else '>='} {low}, got {value}")
    if high is not None and (value > high or (HIGH_OPEN and value == high)):
        raise ConfigurationError(f"{name} must be {'<' if HIGH_OPEN else '<='} {high}, got {value}")
    return float(value)


def _per_node(network, name, values, low=None, high=None) -> np.ndarray:
    result = np.zeros(network.N)
    if values is None:
        return result
    for node_id, value in values.items():
        result[network.index[network.resolve(node_id)]] = _check_number(f"{name}[{node_id!r}]", value, low, high)
    return result


def solve_steady_state(network : Network,
                       noise : float = DEFAULT_NOISE,
                       self_degradation : float = DEFAULT_SELF_DEGRADATION,
                       max_iterations : int = DEFAULT_MAX_ITERATIONS,
                       tolerance : float = DEFAULT_TOLERANCE,
                       initial_probability : float = DEFAULT_INITIAL_PROBABILITY,
                       initial_probabilities : dict | None = None,
                       biases : dict | None = None,
                       basal_activity : dict | None = None,
                       threshold_multiplier : float = DEFAULT_THRESHOLD,
                       damping : float = 0.0,
                       controls : dict | None = None) -> ProbabilisticResult:
    """
    Iterate the mean-field relaxation to a steady state.

    **Parameters:**

        - network (Network): Nodes, weighted edges, biases and controls.
        - noise (float, optional): mu > 0. Larger values flatten all
          probabilities toward 0.5. Default 0.25.
        - self_degradation (float, optional): c in [0, 1]. Default 0.1.
        - max_iterations (int, optional): Sweep limit >= 1. Default 500.
        - tolerance (float, optional): Convergence threshold > 0 on the
          largest change of one sweep. Default 1e-4.
        - initial_probability (float, optional): Starting probability of every
          node in [0, 1]. Default 0.5.
        - initial_probabilities (dict[str:float], optional): Per-node
          starting probabilities.
        - biases (dict[str:float], optional): Bias overrides; the network's
          biases are used otherwise.
        - basal_activity (dict[str:float], optional): Added to the drive.
        - threshold_multiplier (float, optional): Threshold theta. Default 0.5.
        - damping (float, optional): Weight of the previous probability in
          [0, 1). Default 0.
        - controls (dict[str:int], optional): Nodes clamped to 0 or 1, in
          addition to the network's controls.

    **Returns:**

        - ProbabilisticResult

    **Raises:**

        - ConfigurationError: For non-numeric or out-of-range parameters.
    """
    noise = _check_number('noise', noise, 0, LOW_OPEN=True)
    self_degradation = _check_number('self_degradation', self_degradation, 0, 1)
    if isinstance(max_iterations, bool) or not isinstance(max_iterations, (int, np.integer)) \
            or max_iterations < 1:
        raise ConfigurationError(f"max_iterations must be an integer >= 1, got {max_iterations!r}")
    tolerance = _check_number('tolerance', tolerance, 0, LOW_OPEN=True)
    initial_probability = _check_number('initial_probability', initial_probability, 0, 1)
    threshold_multiplier = _check_number('threshold_multiplier', threshold_multiplier)
    damping = _check_number('damping', damping, 0, 1, HIGH_OPEN=True)

    node_order = list(network.node_order)
    if network.N == 0:
        return ProbabilisticResult([], {}, {}, True, 0,
                                   ["No nodes supplied; probabilistic analysis skipped."])

    W = network.get_weight_matrix()
    bias = np.array([network.get_biases().get(x, 0.0) for x in node_order])
    if biases is not None:
        for node_id, value in biases.items():
            bias[network.index[network.resolve(node_id)]] = _check_number(f"biases[{node_id!r}]", value)
    offset = bias + _per_node(network, 'basal_activity', basal_activity) - threshold_multiplier

    p = np.full(network.N, initial_probability)
    if initial_probabilities is not None:
        for node_id, value in initial_probabilities.items():
            p[network.index[network.resolve(node_id)]] = _check_number(
                f"initial_probabilities[{node_id!r}]", value, 0, 1)

    clamped = dict(network.controls)
    if controls:
        clamped.update(network._check_controls(controls))
    clamp_index = np.array([network.index[x] for x in clamped], dtype=int)
    clamp_value = np.array(list(clamped.values()), dtype=float)
    p[clamp_index] = clamp_value

    converged = False
    iterations = 0
    while iterations < max_iterations:
        response = relaxation_step(p, W, offset, noise, self_degradation)
        p_new = np.clip(damping * p + (1 - damping) * response, 0.0, 1.0)
        p_new[clamp_index] = clamp_value
        max_delta = float(np.max(np.abs(p_new - p)))
        p = p_new
        iterations += 1
        if max_delta < tolerance:
            converged = True
            break

    result_warnings = []
    if not converged:
        result_warnings.append(
            f"Probabilistic analysis reached the maximum iteration count ({max_iterations}) "
            f"before converging. Consider increasing max_iterations, adding damping or "
            f"relaxing the tolerance.")

    energies = potential_energy(p)
    return ProbabilisticResult(node_order,
                               {x: float(value) for x, value in zip(node_order, p)},
                               {x: float(value) for x, value in zip(node_order, energies)},
                               converged, iterations, result_warnings)
