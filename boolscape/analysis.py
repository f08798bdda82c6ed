#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Entry points of the three analysis modes.

- :func:`perform_deterministic_analysis`: attractors of a rule-based network.
- :func:`perform_weighted_analysis`: attractors of a weighted-threshold network.
- :func:`perform_probabilistic_analysis`: steady-state activation
  probabilities and potential energies under noise.

Each call is independent and builds its own network, update function and
search state. Compilation and configuration errors are raised before any
search or solve work begins.
"""

try:
    from boolscape.attractors import AnalysisResult, AttractorSearch, DEFAULT_STATE_CAP
    from boolscape.dynamics import RuleBasedUpdate, ThresholdUpdate
    from boolscape.network import Network
    from boolscape.probabilistic import (solve_steady_state, DEFAULT_NOISE, DEFAULT_SELF_DEGRADATION,
                                         DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE,
                                         DEFAULT_INITIAL_PROBABILITY, DEFAULT_THRESHOLD)
    from boolscape.rules import compile_rules
except ModuleNotFoundError:
    from attractors import AnalysisResult, AttractorSearch, DEFAULT_STATE_CAP
    from dynamics import RuleBasedUpdate, ThresholdUpdate
    from network import Network
    from probabilistic import (solve_steady_state, DEFAULT_NOISE, DEFAULT_SELF_DEGRADATION,
                               DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE,
                               DEFAULT_INITIAL_PROBABILITY, DEFAULT_THRESHOLD)
    from rules import compile_rules


__all__ = [
    "perform_deterministic_analysis",
    "perform_weighted_analysis",
    "perform_probabilistic_analysis",
]


def _empty_result() -> AnalysisResult:
    return AnalysisResult([], {}, [], 0, 0, warnings=["No nodes supplied; analysis skipped."])


def perform_deterministic_analysis(nodes, rules, state_cap : int = DEFAULT_STATE_CAP,
                                   step_cap=None, unruled : str = 'hold', controls=None,
                                   timeout=None, should_stop=None, *, rng=None) -> AnalysisResult:
    """
    Find the attractors of a network under synchronous Boolean rules.

    **Parameters:**

        - nodes (list[Node | dict | str]): Nodes in canonical order.

        - rules (str | list[str]): One ``target = expression`` per line.

        - state_cap (int, optional): Exhaustive search is used when
          2^N <= state_cap, otherwise that many sampled initial states.

        - step_cap (int, optional): Longest trajectory followed from one
          initial state; see AttractorSearch.

        - unruled (str, optional): 'hold', 'false' or 'reject' for nodes
          without a rule. Default 'hold'.

        - controls (dict[str:int], optional): Clamped nodes (knock-outs 0,
          knock-ins 1).

        - timeout (float, optional), should_stop (callable, optional):
          Cooperative cancellation between initial states.

        - rng (None, optional): Random generator for sampled search.

    **Returns:**

        - AnalysisResult

    **Raises:**

        - CompilationError: If the rules are invalid or do not match the
          nodes. Raised before the search starts.

    **Example:**

        >>> result = perform_deterministic_analysis(['a', 'b'], ['a = b', 'b = a'])
        >>> [(att.kind, att.basin_size) for att in result.attractors]
        [('fixed-point', 1), ('limit-cycle', 2), ('fixed-point', 1)]
    """
    if not nodes:
        return _empty_result()
    network = Network(nodes, rules=rules, controls=controls)
    compiled = compile_rules(network.get_rule_lines())
    update = RuleBasedUpdate(network, compiled, unruled=unruled)
    return AttractorSearch(update, state_cap=state_cap, step_cap=step_cap, timeout=timeout,
                           should_stop=should_stop, rng=rng).run(stacklevel=3)


def perform_weighted_analysis(nodes, edges, threshold_multiplier : float = 0.5,
                              tie_behavior : str = 'hold', biases=None,
                              SCALE_THRESHOLD_BY_INDEGREE : bool = False,
                              state_cap : int = DEFAULT_STATE_CAP, step_cap=None, controls=None,
                              timeout=None, should_stop=None, *, rng=None) -> AnalysisResult:
    """
    Find the attractors of a network under the weighted-threshold rule.

    **Parameters:**

        - nodes (list[Node | dict | str]): Nodes in canonical order; node
          biases are read from ``bias``.

        - edges (list[Edge | dict | tuple]): Weighted edges.

        - threshold_multiplier (float, optional): Threshold. Default 0.5.

        - tie_behavior (str, optional): 'hold', 'zero-as-zero' or
          'zero-as-one'. Default 'hold'.

        - biases (dict[str:float], optional): Per-node bias overrides.

        - SCALE_THRESHOLD_BY_INDEGREE (bool, optional): Multiply the threshold
          by max(sum of absolute incoming weights, 1). Default False.

        - state_cap, step_cap, controls, timeout, should_stop, rng: As in
          perform_deterministic_analysis.

    **Returns:**

        - AnalysisResult
    """
    if not nodes:
        return _empty_result()
    network = Network(nodes, edges, biases=biases, controls=controls)
    update = ThresholdUpdate(network, threshold_multiplier=threshold_multiplier,
                             tie_behavior=tie_behavior,
                             SCALE_THRESHOLD_BY_INDEGREE=SCALE_THRESHOLD_BY_INDEGREE)
    return AttractorSearch(update, state_cap=state_cap, step_cap=step_cap, timeout=timeout,
                           should_stop=should_stop, rng=rng).run(stacklevel=3)


def perform_probabilistic_analysis(nodes, edges, noise : float = DEFAULT_NOISE,
                                   self_degradation : float = DEFAULT_SELF_DEGRADATION,
                                   max_iterations : int = DEFAULT_MAX_ITERATIONS,
                                   tolerance : float = DEFAULT_TOLERANCE,
                                   initial_probability : float = DEFAULT_INITIAL_PROBABILITY,
                                   initial_probabilities=None, biases=None, basal_activity=None,
                                   threshold_multiplier : float = DEFAULT_THRESHOLD,
                                   damping : float = 0.0, controls=None):
    """
    Estimate steady-state activation probabilities of every node.

    See :func:`boolscape.probabilistic.solve_steady_state` for the model and
    the parameters.

    **Returns:**

        - ProbabilisticResult

    **Raises:**

        - ConfigurationError: For invalid parameters, before iterating.
    """
    if not nodes:
        edges = controls = None
    network = Network(nodes or [], edges, controls=controls)
    return solve_steady_state(network, noise=noise, self_degradation=self_degradation,
                              max_iterations=max_iterations, tolerance=tolerance,
                              initial_probability=initial_probability,
                              initial_probabilities=initial_probabilities, biases=biases,
                              basal_activity=basal_activity,
                              threshold_multiplier=threshold_multiplier, damping=damping)
