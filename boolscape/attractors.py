#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Exhaustive and bounded attractor search for synchronous update functions.

:class:`AttractorSearch` follows the trajectory of every initial state
supplied by an exploration strategy until it either repeats a state of the
current trajectory (a new attractor: the repeated suffix) or reaches a state
already attributed to a known attractor. Every state on the trajectory is then
attributed to that attractor. The map from states to attractors is owned by a
single run, so each state is classified exactly once and the number of update
evaluations is linear in the number of explored states.

Two strategies are provided:

- :class:`ExhaustiveExploration` visits all 2^N states.
- :class:`SampledExploration` visits a bounded set of distinct random initial
  states; it is used automatically when 2^N exceeds the state cap.
"""

import time
import warnings

import numpy as np
import pandas as pd
import networkx as nx

try:
    import boolscape.utils as utils
    from boolscape.errors import CapacityWarning, ConfigurationError
    from boolscape.state_codec import StateCodec
except ModuleNotFoundError:
    import utils
    from errors import CapacityWarning, ConfigurationError
    from state_codec import StateCodec


__all__ = [
    "FIXED_POINT",
    "LIMIT_CYCLE",
    "DEFAULT_STATE_CAP",
    "DEFAULT_STEP_CAP",
    "MAX_SUPPORTED_NODES",
    "Attractor",
    "AnalysisResult",
    "ExhaustiveExploration",
    "SampledExploration",
    "AttractorSearch",
]

FIXED_POINT = 'fixed-point'
LIMIT_CYCLE = 'limit-cycle'

DEFAULT_STATE_CAP = 2**20
DEFAULT_STEP_CAP = 10_000
MAX_VECTORIZED_NODES = 22
MAX_SUPPORTED_NODES = 62


class Attractor(object):
    """
    A fixed point or limit cycle of a synchronous update function.

    **Members:**

        - id (int): Index of the attractor, in order of discovery.
        - kind (str): 'fixed-point' (period 1) or 'limit-cycle'.
        - period (int): Number of distinct states in the attractor.
        - states (list[int]): Member states in trajectory order, so that the
          update of ``states[k]`` is ``states[k+1]`` and the update of the
          last state is ``states[0]``.
        - basin_size (int): Number of explored states that reach it.
        - basin_share (float): basin_size / explored_state_count.
    """

    __slots__ = ['id', 'kind', 'period', 'states', 'basin_size', 'basin_share']

    def __init__(self, id : int, states : list, basin_size : int = 0, basin_share : float = 0.0):
        self.id = id
        self.states = list(states)
        self.period = len(self.states)
        self.kind = FIXED_POINT if self.period == 1 else LIMIT_CYCLE
        self.basin_size = basin_size
        self.basin_share = basin_share

    @property
    def is_fixed_point(self) -> bool:
        return self.period == 1

    def __contains__(self, state):
        return state in self.states

    def __repr__(self):
        return (f"Attractor(id={self.id}, kind={self.kind!r}, period={self.period}, "
                f"basin_size={self.basin_size})")

    def to_dict(self, codec : StateCodec | None = None) -> dict:
        states = [codec.format_state(s) for s in self.states] if codec is not None else list(self.states)
        return {'id': self.id, 'type': self.kind, 'period': self.period, 'states': states,
                'basinSize': self.basin_size, 'basinShare': self.basin_share}


class AnalysisResult(object):
    """
    Outcome of a deterministic attractor analysis.

    **Members:**

        - node_order (list[str]): Canonical node order (bit positions).
        - node_labels (dict[str:str]): Node id to label.
        - attractors (list[Attractor]): Attractors in order of discovery.
        - explored_state_count (int): Number of distinct states classified.
        - total_state_space (int): 2^N.
        - truncated (bool): True if not every state was explored.
        - warnings (list[str]): Advisory messages (capacity, cancellation,
          unresolved trajectories).
        - unresolved_states (int): States on trajectories that hit the step cap.
        - cancelled (bool): True if the search was stopped early.
        - attractor_dict (dict[int:int]): Explored state to attractor id.
        - STG (dict[int:int] | np.ndarray): Successors computed during the
          search.
    """

    def __init__(self, node_order, node_labels, attractors, explored_state_count,
                 total_state_space, truncated=False, warnings=None, unresolved_states=0,
                 cancelled=False, attractor_dict=None, STG=None):
        self.node_order = list(node_order)
        self.node_labels = dict(node_labels)
        self.attractors = list(attractors)
        self.explored_state_count = explored_state_count
        self.total_state_space = total_state_space
        self.truncated = truncated
        self.warnings = list(warnings) if warnings is not None else []
        self.unresolved_states = unresolved_states
        self.cancelled = cancelled
        self.attractor_dict = attractor_dict if attractor_dict is not None else {}
        self.STG = STG if STG is not None else {}
        self.codec = StateCodec(self.node_order, self.node_labels)

    def __len__(self):
        return len(self.attractors)

    def __iter__(self):
        return iter(self.attractors)

    def __repr__(self):
        return (f"AnalysisResult(attractors={len(self.attractors)}, "
                f"explored={self.explored_state_count}/{self.total_state_space}, "
                f"truncated={self.truncated})")

    @property
    def fixed_points(self) -> list:
        return [attractor for attractor in self.attractors if attractor.is_fixed_point]

    @property
    def limit_cycles(self) -> list:
        return [attractor for attractor in self.attractors if not attractor.is_fixed_point]

    def get_attractor_of(self, state):
        """
        Attractor reached from ``state`` (an integer or a ``{node_id: value}``
        mapping), or None if the state was not explored.
        """
        if not isinstance(state, (int, np.integer)):
            state = self.codec.encode(state)
        attractor_id = self.attractor_dict.get(int(state))
        return None if attractor_id is None else self.attractors[attractor_id]

    def to_dict(self) -> dict:
        """Plain-data form with formatted states, for export."""
        return {
            'nodeOrder': list(self.node_order),
            'nodeLabels': dict(self.node_labels),
            'attractors': [attractor.to_dict(self.codec) for attractor in self.attractors],
            'exploredStateCount': self.explored_state_count,
            'totalStateSpace': self.total_state_space,
            'truncated': self.truncated,
            'warnings': list(self.warnings),
            'unresolvedStates': self.unresolved_states,
        }

    def to_dataframe(self) -> "pd.DataFrame":
        """
        One row per attractor state with the attractor's statistics and the
        value of every node (columns named by node id).
        """
        rows = []
        for attractor in self.attractors:
            for position, state in enumerate(attractor.states):
                row = {'attractor': attractor.id, 'type': attractor.kind, 'period': attractor.period,
                       'position': position, 'basin_size': attractor.basin_size,
                       'basin_share': attractor.basin_share,
                       'binary': utils.format_binary(state, len(self.node_order))}
                row.update(self.codec.decode(state))
                rows.append(row)
        columns = ['attractor', 'type', 'period', 'position', 'basin_size', 'basin_share', 'binary'] + self.node_order
        return pd.DataFrame(rows, columns=columns)

    def get_state_transition_graph(self, FORMATTED : bool = False) -> nx.DiGraph:
        """
        Explored part of the state transition graph as a NetworkX DiGraph.

        Nodes are states (integers, or binary strings if FORMATTED) with the
        attribute ``attractor`` (attractor id) where known.
        """
        n = len(self.node_order)
        name = (lambda s: utils.format_binary(s, n)) if FORMATTED else (lambda s: s)
        if isinstance(self.STG, np.ndarray):
            transitions = enumerate(self.STG.tolist())
        else:
            transitions = self.STG.items()
        G = nx.DiGraph()
        for state, successor in transitions:
            G.add_edge(name(state), name(successor))
        for state, attractor_id in self.attractor_dict.items():
            if name(state) in G:
                G.nodes[name(state)]['attractor'] = attractor_id
        return G


class ExhaustiveExploration(object):
    """Visit every state 0, 1, ..., 2^N - 1 as an initial state."""

    name = 'exhaustive'

    def initial_states(self, N : int):
        return range(2**N)

    def covers_state_space(self, N : int) -> bool:
        return True


class SampledExploration(object):
    """
    Visit at most ``state_cap`` distinct random initial states.

    **Constructor Parameters:**

        - state_cap (int): Number of initial states.
        - rng (None, optional): Argument for the random number generator,
          implemented in 'utils._coerce_rng'.
    """

    name = 'sampled'

    def __init__(self, state_cap : int = DEFAULT_STATE_CAP, *, rng=None):
        if state_cap < 1:
            raise ConfigurationError("state_cap must be at least 1")
        self.state_cap = int(state_cap)
        self.rng = utils._coerce_rng(rng)

    def covers_state_space(self, N : int) -> bool:
        return self.state_cap >= 2**N

    def initial_states(self, N : int):
        n_states = 2**N
        if self.state_cap >= n_states:
            return range(n_states)
        if N > MAX_SUPPORTED_NODES:
            raise ConfigurationError(f"Sampling supports at most {MAX_SUPPORTED_NODES} nodes")
        unique = {}
        max_attempts = max(10, self.state_cap // 1000)
        for _ in range(max_attempts):
            batch = self.rng.integers(0, n_states, size=self.state_cap - len(unique), dtype=np.int64)
            unique.update(dict.fromkeys(batch.tolist()))
            if len(unique) >= self.state_cap:
                break
        # dense spaces collide a lot; fill sequentially
        candidate = 0
        while len(unique) < self.state_cap:
            unique.setdefault(candidate)
            candidate += 1
        return list(unique)


class AttractorSearch(object):
    """
    Memoized attractor search over the states of a synchronous update function.

    **Constructor Parameters:**

        - update (SynchronousUpdate | callable): Maps an integer state to its
          successor. Must provide ``N``, ``node_order`` and ``codec``
          attributes, or ``N`` must be given.

        - N (int, optional): Number of nodes; taken from ``update`` if None.

        - strategy (ExhaustiveExploration | SampledExploration, optional):
          Defaults to exhaustive when 2^N <= state_cap and sampled otherwise.

        - state_cap (int, optional): Largest number of initial states explored
          without truncation. Default DEFAULT_STATE_CAP.

        - step_cap (int | None, optional): Longest trajectory followed from one
          initial state. None means unbounded for exhaustive exploration and
          DEFAULT_STEP_CAP otherwise.

        - timeout (float, optional): Seconds after which the search stops at
          the next initial state.

        - should_stop (callable, optional): Called between initial states; the
          search stops when it returns True.

        - rng (None, optional): Random generator for the sampled strategy.
    """

    def __init__(self, update, N : int | None = None, strategy=None,
                 state_cap : int = DEFAULT_STATE_CAP, step_cap : int | None = None,
                 timeout : float | None = None, should_stop=None, *, rng=None):
        self.update = update
        self.N = N if N is not None else update.N
        if self.N > MAX_SUPPORTED_NODES:
            raise ConfigurationError(
                f"Attractor search supports at most {MAX_SUPPORTED_NODES} nodes, got {self.N}")
        if state_cap is None or state_cap < 1:
            raise ConfigurationError("state_cap must be a positive integer")
        if step_cap is not None and step_cap < 1:
            raise ConfigurationError("step_cap must be a positive integer or None")
        if timeout is not None and not (utils.is_number(timeout) and timeout > 0):
            raise ConfigurationError("timeout must be a positive number of seconds")
        self.state_cap = int(state_cap)
        self.total_state_space = 2**self.N
        if strategy is None:
            if self.total_state_space <= self.state_cap:
                strategy = ExhaustiveExploration()
            else:
                strategy = SampledExploration(self.state_cap, rng=rng)
        self.strategy = strategy
        if step_cap is None and not strategy.covers_state_space(self.N):
            step_cap = DEFAULT_STEP_CAP
        self.step_cap = step_cap
        self.timeout = timeout
        self.should_stop = should_stop

        node_order = getattr(update, 'node_order', None)
        self.node_order = list(node_order) if node_order is not None else ['x%i' % i for i in range(self.N)]
        codec = getattr(update, 'codec', None)
        self.node_labels = dict(codec.labels) if codec is not None else {x: x for x in self.node_order}

    def _successor_function(self):
        """Return (successor function, transition store)."""
        if (self.strategy.covers_state_space(self.N) and self.N <= MAX_VECTORIZED_NODES
                and hasattr(self.update, 'compute_synchronous_state_transition_graph')):
            STG = self.update.compute_synchronous_state_transition_graph()
            return (lambda state: int(STG[state])), STG
        STG = {}
        update = self.update

        def successor(state):
            try:
                return STG[state]
            except KeyError:
                fx = update(state)
                STG[state] = fx
                return fx
        return successor, STG

    def run(self, stacklevel : int = 2) -> AnalysisResult:
        """
        Classify the dynamics of all explored states.

        **Parameters:**

            - stacklevel (int, optional): Passed to ``warnings.warn`` for the
              CapacityWarning, so that it points at the code that started the
              search. Default 2, the caller of ``run``.

        **Returns:**

            - AnalysisResult: Attractors with basin statistics.
        """
        successor, STG = self._successor_function()
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None
        step_cap = self.step_cap

        attractor_dict = {}
        attractor_states = []
        basin_sizes = []
        result_warnings = []
        unresolved = set()
        capped_trajectories = 0
        cancelled = False

        for initial_state in self.strategy.initial_states(self.N):
            if (deadline is not None and time.monotonic() >= deadline) or \
                    (self.should_stop is not None and self.should_stop()):
                cancelled = True
                break
            if initial_state in attractor_dict:
                continue

            path = []
            index_in_path = {}
            state = initial_state
            while True:
                index_attr = attractor_dict.get(state)
                if index_attr is not None:
                    break
                if state in index_in_path:
                    index_attr = len(attractor_states)
                    attractor_states.append(path[index_in_path[state]:])
                    basin_sizes.append(0)
                    break
                if step_cap is not None and len(path) >= step_cap:
                    break
                index_in_path[state] = len(path)
                path.append(state)
                state = successor(state)

            if index_attr is None:
                unresolved.update(path)
                capped_trajectories += 1
                continue
            for s in path:
                attractor_dict[s] = index_attr
            basin_sizes[index_attr] += len(path)

        explored_state_count = len(attractor_dict)
        unresolved_states = len(unresolved.difference(attractor_dict))
        if capped_trajectories:
            result_warnings.append(
                f"Step cap ({step_cap}) reached on {capped_trajectories} trajectories; "
                f"{unresolved_states} states were left unclassified.")
        truncated = cancelled or (not self.strategy.covers_state_space(self.N)
                                  and explored_state_count < self.total_state_space)
        if cancelled:
            result_warnings.insert(0,
                f"Search cancelled after exploring {explored_state_count} of "
                f"{self.total_state_space} states; results are partial.")
        elif truncated:
            omitted = 1 - explored_state_count / self.total_state_space
            message = (f"State space ({self.total_state_space} states) exceeds the state cap "
                       f"({self.state_cap}); {explored_state_count} states were explored from "
                       f"sampled initial states and {omitted:.2%} of the state space was omitted.")
            result_warnings.insert(0, message)
            warnings.warn(message, CapacityWarning, stacklevel=stacklevel)

        attractors = [
            Attractor(i, states, basin_sizes[i],
                      basin_sizes[i] / explored_state_count if explored_state_count else 0.0)
            for i, states in enumerate(attractor_states)
        ]
        return AnalysisResult(self.node_order, self.node_labels, attractors, explored_state_count,
                              self.total_state_space, truncated=truncated, warnings=result_warnings,
                              unresolved_states=unresolved_states, cancelled=cancelled,
                              attractor_dict=attractor_dict, STG=STG)
