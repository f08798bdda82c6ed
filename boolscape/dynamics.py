#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Synchronous update functions of a network.

Two interchangeable variants map a state to its successor:

- :class:`RuleBasedUpdate` evaluates compiled Boolean rules.
- :class:`ThresholdUpdate` applies a weighted-sum threshold with a bias and
  a tie policy.

Both operate on blocks of 0/1 state vectors so that the complete state
transition graph of a small network can be computed with vectorized numpy
operations, and both evaluate single integer-encoded states through the same
code path. Neither keeps mutable state between calls.
"""

import numpy as np

try:
    import boolscape.utils as utils
    from boolscape.errors import CompilationError, ConfigurationError
    from boolscape.network import Network
    from boolscape.rules import compile_rules
    from boolscape.state_codec import StateCodec
except ModuleNotFoundError:
    import utils
    from errors import CompilationError, ConfigurationError
    from network import Network
    from rules import compile_rules
    from state_codec import StateCodec


__all__ = [
    "UNRULED_POLICIES",
    "TIE_BEHAVIORS",
    "SynchronousUpdate",
    "RuleBasedUpdate",
    "ThresholdUpdate",
]

UNRULED_POLICIES = ('hold', 'false', 'reject')
TIE_BEHAVIORS = ('hold', 'zero-as-zero', 'zero-as-one')

# Scores within this distance of the threshold count as ties.
TIE_TOLERANCE = 1e-9

STG_CHUNK_SIZE = 2**16


def _as_network(network) -> Network:
    if isinstance(network, Network):
        return network
    return Network(network)


class SynchronousUpdate(object):
    """
    Base class of the synchronous update variants.

    Subclasses implement ``_update_block(X)``, which maps an ``(m, N)`` array
    of 0/1 states to the array of their successors. Controlled (clamped) nodes
    are fixed after every update.
    """

    def __init__(self, network, controls=None):
        self.network = _as_network(network)
        self.N = self.network.N
        self.node_order = list(self.network.node_order)
        self.codec = StateCodec(self.node_order, self.network.labels)
        self.controls = dict(self.network.controls)
        if controls:
            self.controls.update(self.network._check_controls(controls))
        self._control_index = np.array([self.network.index[node_id] for node_id in self.controls], dtype=int)
        self._control_value = np.array(list(self.controls.values()), dtype=np.uint8)
        self._powers_of_two = 2 ** np.arange(self.N, dtype=np.int64)[::-1]

    def __repr__(self):
        return f"{type(self).__name__}(N={self.N})"

    def _update_block(self, X : np.ndarray) -> np.ndarray:
        raise NotImplementedError

    def _apply(self, X : np.ndarray) -> np.ndarray:
        FX = self._update_block(X).astype(np.uint8)
        if self._control_index.size:
            FX[:, self._control_index] = self._control_value
        return FX

    def __call__(self, state : int) -> int:
        """Successor of an integer-encoded state."""
        X = np.array([utils.dec2bin(state, self.N)], dtype=np.uint8)
        return int(self._apply(X)[0] @ self._powers_of_two)

    def update_network_synchronously(self, X) -> np.ndarray:
        """
        Perform one synchronous update of a 0/1 state vector.

        **Parameters:**

            - X (list[int] | np.array[int]): Current state vector, in canonical
              node order.

        **Returns:**

            - np.array[int]: New state vector after the update.
        """
        X = np.asarray(X, dtype=np.uint8)
        if X.shape != (self.N,):
            raise ValueError(f"State vector must have length {self.N}")
        return self._apply(X[None, :])[0]

    def update_network_synchronously_many_times(self, X, n_steps : int) -> np.ndarray:
        """
        Update a state vector synchronously n_steps times.
        """
        for _ in range(n_steps):
            X = self.update_network_synchronously(X)
        return X

    def compute_synchronous_state_transition_graph(self) -> np.ndarray:
        """
        Compute the successor of every one of the 2^N states.

        Works on chunks of the state space so that memory stays bounded.

        **Returns:**

            - np.array[int]: Array ``STG`` of length 2^N where ``STG[x]`` is the
              successor of state ``x`` (decimal representation).
        """
        n_states = 2**self.N
        STG = np.empty(n_states, dtype=np.int64)
        masks = (np.int64(1) << np.arange(self.N - 1, -1, -1, dtype=np.int64))[None]
        for start in range(0, n_states, STG_CHUNK_SIZE):
            stop = min(start + STG_CHUNK_SIZE, n_states)
            vals = np.arange(start, stop, dtype=np.int64)[:, None]
            X = ((vals & masks) != 0).astype(np.uint8)
            STG[start:stop] = self._apply(X).astype(np.int64) @ self._powers_of_two
        return STG


class RuleBasedUpdate(SynchronousUpdate):
    """
    Synchronous update by Boolean rules.

    **Constructor Parameters:**

        - network (Network | list): The network, or its node list.

        - compiled_rules (list[CompiledRule], optional): Rules to use. If None,
          the rules of the network are compiled.

        - unruled (str, optional): What nodes without a rule do. 'hold'
          (default) keeps the current value, 'false' sets the node to 0 and
          'reject' raises a CompilationError listing those nodes.

        - controls (dict[str:int], optional): Additional clamped nodes.

    **Raises:**

        - CompilationError: If the rules do not compile, a rule target is not
          a node of the network, two rules resolve to the same node, or a node
          lacks a rule while unruled == 'reject'.
    """

    def __init__(self, network, compiled_rules=None, unruled : str = 'hold', controls=None):
        super().__init__(network, controls)
        if unruled not in UNRULED_POLICIES:
            raise ConfigurationError(f"unruled must be one of {UNRULED_POLICIES}, got {unruled!r}")
        self.unruled = unruled
        if compiled_rules is None:
            compiled_rules = compile_rules(self.network.get_rule_lines())

        errors = []
        self.rules = {}
        self.name_to_index = {}
        for rule in compiled_rules:
            try:
                node_id = self.network.resolve(rule.target)
            except KeyError:
                errors.append(f"Line {rule.line}: Rule target \"{rule.target}\" is not a node of the network")
                continue
            index = self.network.index[node_id]
            if index in self.rules:
                errors.append(f"Line {rule.line}: Node \"{node_id}\" already has a rule")
                continue
            self.rules[index] = rule
            self.name_to_index[rule.target] = index
        for rule in self.rules.values():
            for var in rule.variables:
                if var in self.name_to_index:
                    continue
                try:
                    self.name_to_index[var] = self.network.index[self.network.resolve(var)]
                except KeyError:
                    errors.append(f"Line {rule.line}: Identifier \"{var}\" does not resolve to a node")
        if unruled == 'reject':
            missing = [self.node_order[i] for i in range(self.N) if i not in self.rules]
            if missing:
                errors.append("Nodes without a rule: " + ', '.join(f"\"{node_id}\"" for node_id in missing))
        if errors:
            raise CompilationError(errors)

    def _update_block(self, X):
        columns = {name: X[:, index].astype(np.int64) for name, index in self.name_to_index.items()}
        FX = X.copy() if self.unruled == 'hold' else np.zeros_like(X)
        for index, rule in self.rules.items():
            FX[:, index] = np.asarray(rule.expression.evaluate(columns)) & 1
        return FX


class ThresholdUpdate(SynchronousUpdate):
    """
    Synchronous update by a weighted-sum threshold.

    For every node v the score is ``sum(weight(u, v) * x_u) + bias(v)`` over
    the incoming edges ``u -> v``. The next value is 1 if the score exceeds
    the threshold, 0 if it falls below it, and determined by the tie policy
    otherwise: 'hold' keeps the current value, 'zero-as-zero' gives 0 and
    'zero-as-one' gives 1.

    Nodes with neither incoming edges nor an explicit bias are inputs of the
    network and keep their value.

    **Constructor Parameters:**

        - network (Network): The network (edges, biases, controls).
        - threshold_multiplier (float, optional): The threshold. Default 0.5.
        - tie_behavior (str, optional): Tie policy. Default 'hold'.
        - biases (dict[str:float], optional): Bias overrides for this update.
        - SCALE_THRESHOLD_BY_INDEGREE (bool, optional): If True, the threshold
          of node v is ``threshold_multiplier * max(sum |weight(u, v)|, 1)``.
          Default False.
        - controls (dict[str:int], optional): Additional clamped nodes.
    """

    def __init__(self, network, threshold_multiplier : float = 0.5,
                 tie_behavior : str = 'hold', biases=None,
                 SCALE_THRESHOLD_BY_INDEGREE : bool = False, controls=None):
        super().__init__(network, controls)
        if not utils.is_number(threshold_multiplier):
            raise ConfigurationError("threshold_multiplier must be a finite number")
        if tie_behavior not in TIE_BEHAVIORS:
            raise ConfigurationError(f"tie_behavior must be one of {TIE_BEHAVIORS}, got {tie_behavior!r}")
        self.threshold_multiplier = float(threshold_multiplier)
        self.tie_behavior = tie_behavior

        self.W = self.network.get_weight_matrix()
        explicit_biases = self.network.get_biases()
        if biases is not None:
            for node_id, bias in biases.items():
                if not utils.is_number(bias):
                    raise ConfigurationError(f"bias of node {node_id!r} must be a finite number")
                explicit_biases[self.network.resolve(node_id)] = float(bias)
        self.biases = np.array([explicit_biases.get(node_id, 0.0) for node_id in self.node_order], dtype=float)

        has_input = self.network.indegrees > 0
        has_bias = np.array([node_id in explicit_biases for node_id in self.node_order], dtype=bool)
        self.is_input = ~has_input & ~has_bias

        if SCALE_THRESHOLD_BY_INDEGREE:
            self.thresholds = self.threshold_multiplier * np.maximum(np.abs(self.W).sum(axis=1), 1.0)
        else:
            self.thresholds = np.full(self.N, self.threshold_multiplier)

    def get_scores(self, X) -> np.ndarray:
        """Weighted input plus bias of every node for a block of states."""
        return np.atleast_2d(X).astype(float) @ self.W.T + self.biases

    def _update_block(self, X):
        scores = self.get_scores(X)
        difference = scores - self.thresholds
        if self.tie_behavior == 'hold':
            FX = X.copy()
        elif self.tie_behavior == 'zero-as-one':
            FX = np.ones_like(X)
        else:
            FX = np.zeros_like(X)
        FX[difference > TIE_TOLERANCE] = 1
        FX[difference < -TIE_TOLERANCE] = 0
        FX[:, self.is_input] = X[:, self.is_input]
        return FX
