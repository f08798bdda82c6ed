#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Conversion between named node values and integer-encoded network states.

A state of a network with N nodes is an integer in ``[0, 2**N)``. Bit
positions are fixed by the canonical node order: the first node is the most
significant bit, so ``format_binary(state, N)`` lists node values in order.
"""

from collections.abc import Mapping, Sequence

import numpy as np

try:
    import boolscape.utils as utils
except ModuleNotFoundError:
    import utils


__all__ = [
    "StateCodec",
]


class StateCodec(object):
    """
    Bidirectional map between ``{node_id: bool}`` mappings and states.

    Parameters
    ----------
    node_order : sequence of str
        Canonical node order. Must not contain duplicates.
    labels : mapping of str to str, optional
        Display labels. When a label differs from its id, formatted states
        carry the value under both keys.

    Examples
    --------
    >>> codec = StateCodec(['a', 'b', 'c'])
    >>> codec.encode({'a': True, 'c': 1})
    5
    >>> codec.decode(5)
    {'a': 1, 'b': 0, 'c': 1}
    """

    def __init__(self, node_order : Sequence, labels : Mapping | None = None):
        if isinstance(node_order, (str, bytes)):
            raise TypeError("node_order must be a sequence of node ids")
        self.node_order = [str(node_id) for node_id in node_order]
        self.N = len(self.node_order)
        self.index = {node_id: i for i, node_id in enumerate(self.node_order)}
        if len(self.index) != self.N:
            raise ValueError("node_order contains duplicate node ids")
        self.labels = {node_id: node_id for node_id in self.node_order}
        if labels is not None:
            for node_id, label in labels.items():
                if node_id in self.index and label:
                    self.labels[node_id] = str(label)

    def __len__(self):
        return self.N

    def __repr__(self):
        return f"{type(self).__name__}(N={self.N})"

    @property
    def n_states(self) -> int:
        return 2**self.N

    def bit(self, node_id : str) -> int:
        """Mask of the bit that stores ``node_id``."""
        return 1 << (self.N - 1 - self.index[node_id])

    def encode(self, values : Mapping) -> int:
        """
        Encode a sparse mapping; absent nodes are 0.

        Raises
        ------
        KeyError
            If a key is not a node of the canonical order.
        """
        state = 0
        for node_id, value in values.items():
            if node_id not in self.index:
                raise KeyError(f"Unknown node id {node_id!r}")
            if value:
                state |= self.bit(node_id)
        return state

    def decode(self, state : int) -> dict:
        """Dense mapping ``{node_id: 0 | 1}`` in canonical order."""
        self._check_range(state)
        return {node_id: (state >> (self.N - 1 - i)) & 1
                for i, node_id in enumerate(self.node_order)}

    def to_vector(self, state : int) -> np.ndarray:
        self._check_range(state)
        return np.array(utils.dec2bin(state, self.N), dtype=np.uint8)

    def from_vector(self, vector) -> int:
        if len(vector) != self.N:
            raise ValueError(f"State vector must have length {self.N}")
        return utils.bin2dec(vector)

    def format_state(self, state : int) -> dict:
        """
        Display form of a state: its binary string and the value of every
        node, keyed by id and, where different, also by label.
        """
        values = {}
        for node_id, bit in self.decode(state).items():
            values[node_id] = bit
            label = self.labels[node_id]
            if label != node_id:
                values[label] = bit
        return {'binary': utils.format_binary(state, self.N), 'values': values}

    def _check_range(self, state):
        if not 0 <= state < 2**self.N:
            raise ValueError(f"State {state} is outside [0, 2**{self.N})")
