#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Network representation shared by all analysis modes.

This module defines :class:`~boolscape.Node`, :class:`~boolscape.Edge` and
:class:`~boolscape.Network`. A network stores its nodes in a canonical order
that fixes the bit position of every node for the lifetime of an analysis,
its weighted edges in wiring-diagram form (regulator indices per node), and
optionally textual update rules, per-node bias overrides and node controls
(clamped values used for knock-out and knock-in interventions).
"""

from collections.abc import Mapping, Sequence
from copy import deepcopy

import numpy as np
import networkx as nx

try:
    import boolscape.utils as utils
    from boolscape.rules import compile_rules, split_rule_lines
except ModuleNotFoundError:
    import utils
    from rules import compile_rules, split_rule_lines


__all__ = [
    "Node",
    "Edge",
    "Network",
]


class Node(object):
    """
    A binary-valued network entity.

    Parameters
    ----------
    id : str
        Unique identifier within a network.
    label : str, optional
        Display name. Defaults to ``id``.
    bias : float, optional
        Constant added to the weighted input of the node.
    rule : str, optional
        Right-hand side of the node's Boolean update rule.
    """

    __slots__ = ['id', 'label', 'bias', 'rule']

    def __init__(self, id, label=None, bias=None, rule=None):
        if id is None or str(id).strip() == '':
            raise ValueError("Node id must be a non-empty string")
        self.id = str(id).strip()
        label = str(label).strip() if label is not None else ''
        self.label = label if label else self.id
        if bias is not None and not utils.is_number(bias):
            raise TypeError(f"bias of node {self.id!r} must be a finite number")
        self.bias = None if bias is None else float(bias)
        self.rule = rule if rule else None

    @classmethod
    def coerce(cls, node) -> "Node":
        """Build a Node from a Node, a dict with an ``id`` key or an id string."""
        if isinstance(node, cls):
            return node
        if isinstance(node, str):
            return cls(node)
        if isinstance(node, Mapping):
            if 'id' not in node:
                raise ValueError(f"Node mapping without 'id': {dict(node)!r}")
            return cls(node['id'], node.get('label'), node.get('bias'), node.get('rule'))
        raise TypeError(f"Cannot interpret {type(node).__name__} as a node")

    def __repr__(self):
        return f"Node({self.id!r})"


class Edge(object):
    """
    A weighted directed regulation ``source -> target``.
    """

    __slots__ = ['source', 'target', 'weight']

    def __init__(self, source, target, weight=1.0):
        self.source = str(source)
        self.target = str(target)
        if weight is None:
            weight = 1.0
        if not utils.is_number(weight):
            raise TypeError(f"weight of edge {self.source} -> {self.target} must be a finite number")
        self.weight = float(weight)

    @classmethod
    def coerce(cls, edge) -> "Edge":
        """Build an Edge from an Edge, a dict or a ``(source, target[, weight])`` tuple."""
        if isinstance(edge, cls):
            return edge
        if isinstance(edge, Mapping):
            return cls(edge['source'], edge['target'], edge.get('weight', 1.0))
        if isinstance(edge, Sequence) and not isinstance(edge, str) and len(edge) in (2, 3):
            return cls(*edge)
        raise TypeError(f"Cannot interpret {edge!r} as an edge")

    def __repr__(self):
        return f"Edge({self.source!r} -> {self.target!r}, weight={self.weight})"


class Network(object):
    """
    Directed network of binary nodes.

    Parameters
    ----------
    nodes : sequence of Node, dict or str
        Nodes in canonical order.
    edges : sequence of Edge, dict or tuple, optional
        Weighted regulations. Both endpoints must be nodes of the network.
    rules : str or sequence of str, optional
        Boolean update rules, one ``target = expression`` per line. Rules
        given on the nodes themselves (``Node.rule``) are appended.
    biases : mapping of str to float, optional
        Per-node bias overrides; take precedence over ``Node.bias``.
    controls : mapping of str to int, optional
        Nodes clamped to a constant value (0 for a knock-out, 1 for a
        knock-in) in every analysis mode.

    Attributes
    ----------
    nodes : list[Node]
    edges : list[Edge]
    node_order : list[str]
        Canonical node order.
    variables : np.ndarray[str]
        Node ids as an array, in canonical order.
    labels : dict[str, str]
        Node id to display label.
    N : int
        Number of nodes.
    I : list[np.ndarray]
        Regulator indices of each node (one entry per incoming edge).
    weights : list[np.ndarray]
        Edge weights aligned with ``I``.
    indegrees, outdegrees : np.ndarray[int]

    Examples
    --------
    >>> net = Network(['A', 'B'], edges=[('A', 'B', 1.0)])
    >>> net.I
    [array([], dtype=int64), array([0])]
    >>> net.get_source_nodes()
    {'A': True, 'B': False}
    """

    def __init__(self, nodes, edges=None, rules=None, biases=None, controls=None):
        if isinstance(nodes, (str, bytes)) or not isinstance(nodes, Sequence):
            raise TypeError("nodes must be a sequence of nodes")
        self.nodes = [Node.coerce(node) for node in nodes]
        self.node_order = [node.id for node in self.nodes]
        self.N = len(self.nodes)
        self.index = {node_id: i for i, node_id in enumerate(self.node_order)}
        if len(self.index) != self.N:
            duplicates = sorted({x for x in self.node_order if self.node_order.count(x) > 1})
            raise ValueError(f"Node ids must be unique; duplicated: {duplicates}")
        self.variables = np.array(self.node_order, dtype=str)
        self.labels = {node.id: node.label for node in self.nodes}

        self.edges = [Edge.coerce(edge) for edge in (edges if edges is not None else [])]
        for edge in self.edges:
            for end in (edge.source, edge.target):
                if end not in self.index:
                    raise ValueError(f"Edge {edge.source} -> {edge.target} references unknown node {end!r}")

        I = [[] for _ in range(self.N)]
        weights = [[] for _ in range(self.N)]
        for edge in self.edges:
            target = self.index[edge.target]
            I[target].append(self.index[edge.source])
            weights[target].append(edge.weight)
        self.I = [np.array(regulators, dtype=int) for regulators in I]
        self.weights = [np.array(row, dtype=float) for row in weights]
        self.indegrees = np.array([len(regulators) for regulators in self.I], dtype=int)
        self.outdegrees = self.get_outdegrees()

        self.rules = split_rule_lines(rules) if rules is not None else []
        self.bias_overrides = {}
        if biases is not None:
            for node_id, bias in biases.items():
                node_id = self.resolve(node_id)
                if not utils.is_number(bias):
                    raise TypeError(f"bias of node {node_id!r} must be a finite number")
                self.bias_overrides[node_id] = float(bias)
        self.controls = {}
        if controls is not None:
            self.controls = self._check_controls(controls)

    def __len__(self):
        return self.N

    def __getitem__(self, index):
        return self.nodes[index]

    def __str__(self):
        return f"Network(N={self.N}, edges={len(self.edges)}, rules={len(self.get_rule_lines())})"

    def __repr__(self):
        return f"{type(self).__name__}(N={self.N})"

    def resolve(self, name : str) -> str:
        """
        Return the node id referred to by ``name``.

        ``name`` may be an id or a label; an exact match wins over a
        case-insensitive one.

        Raises
        ------
        KeyError
            If no node matches.
        """
        name = str(name).strip()
        if name in self.index:
            return name
        for node in self.nodes:
            if node.label == name:
                return node.id
        lower = name.lower()
        for node in self.nodes:
            if node.id.lower() == lower or node.label.lower() == lower:
                return node.id
        raise KeyError(f"No node with id or label {name!r}")

    def get_outdegrees(self) -> np.ndarray:
        """Number of outgoing edges of each node."""
        outdegrees = np.zeros(self.N, dtype=int)
        for regulators in self.I:
            for regulator in regulators:
                outdegrees[regulator] += 1
        return outdegrees

    def get_source_nodes(self, AS_DICT : bool = True):
        """
        Identify nodes without incoming edges.

        Returns a dict ``{node_id: bool}`` if AS_DICT, else an array of the
        indices of source nodes.
        """
        is_source = self.indegrees == 0
        if AS_DICT:
            return {node_id: bool(flag) for node_id, flag in zip(self.node_order, is_source)}
        return np.where(is_source)[0]

    def get_biases(self) -> dict:
        """Explicitly set biases, ``{node_id: bias}``; overrides win over ``Node.bias``."""
        biases = {node.id: node.bias for node in self.nodes if node.bias is not None}
        biases.update(self.bias_overrides)
        return biases

    def get_weight_matrix(self) -> np.ndarray:
        """
        Dense ``N x N`` matrix with entry ``[target, source]`` equal to the
        summed weight of all edges ``source -> target``.
        """
        W = np.zeros((self.N, self.N), dtype=float)
        for target, (regulators, weights) in enumerate(zip(self.I, self.weights)):
            np.add.at(W[target], regulators, weights)
        return W

    def get_rule_lines(self) -> list:
        """Rule lines of the network followed by the rules stored on nodes."""
        lines = list(self.rules)
        for node in self.nodes:
            if node.rule is not None:
                lines.append(f"{node.id} = {node.rule}")
        return lines

    def get_network_with_node_controls(self, nodes_controlled, values_controlled) -> "Network":
        """
        Return a copy of the network in which the given nodes are clamped.

        A value of 0 models a knock-out, a value of 1 a knock-in. Controls
        already present are kept unless overwritten.

        **Parameters:**

            - nodes_controlled (list[str]): Ids or labels of the nodes to clamp.
            - values_controlled (list[int]): Clamped values (0 or 1), one per node.

        **Returns:**

            - Network: The controlled network.
        """
        if len(nodes_controlled) != len(values_controlled):
            raise ValueError("nodes_controlled and values_controlled must have the same length")
        result = deepcopy(self)
        result.controls.update(self._check_controls(dict(zip(nodes_controlled, values_controlled))))
        return result

    def _check_controls(self, controls : Mapping) -> dict:
        checked = {}
        for name, value in controls.items():
            if value not in (0, 1):
                raise ValueError(f"Control value for {name!r} must be 0 or 1")
            checked[self.resolve(name)] = int(value)
        return checked

    @classmethod
    def from_rules(cls, rules, nodes=None) -> "Network":
        """
        Build a network from a rule set.

        Nodes are the rule targets in order of appearance unless ``nodes`` is
        given. Every identifier referenced by a rule becomes an edge of weight
        1 into the rule's target.

        Raises
        ------
        CompilationError
            If the rule set does not compile.
        """
        compiled = compile_rules(rules)
        if nodes is None:
            nodes = [rule.target for rule in compiled]
        network = cls(nodes, rules=rules)
        edges = []
        for rule in compiled:
            target = network.resolve(rule.target)
            for var in rule.variables:
                edges.append(Edge(network.resolve(var), target, 1.0))
        return cls(network.nodes, edges, rules=rules)

    @classmethod
    def from_DiGraph(cls, nx_DiGraph : "nx.DiGraph") -> "Network":
        """
        Construct a network from a NetworkX directed graph.

        Node attributes ``label``, ``bias`` and ``rule`` and the edge attribute
        ``weight`` (default 1.0) are used when present. Nodes are ordered
        according to the iteration order of ``nx_DiGraph.nodes``.
        """
        if not isinstance(nx_DiGraph, nx.DiGraph):
            raise TypeError("nx_DiGraph must be a networkx.DiGraph")
        nodes = []
        for node, data in nx_DiGraph.nodes(data=True):
            nodes.append(Node(node, data.get('label'), data.get('bias'), data.get('rule')))
        edges = [Edge(u, v, data.get('weight', 1.0)) for u, v, data in nx_DiGraph.edges(data=True)]
        return cls(nodes, edges)

    def to_DiGraph(self, USE_LABELS : bool = False) -> nx.DiGraph:
        """
        Convert the network into a NetworkX directed graph.

        Parallel edges are merged by summing their weights. Node attributes
        ``label``, ``bias`` and ``controlled`` are set where defined.
        """
        name = (lambda node_id: self.labels[node_id]) if USE_LABELS else (lambda node_id: node_id)
        G = nx.DiGraph()
        biases = self.get_biases()
        for node in self.nodes:
            attributes = {'label': node.label}
            if node.id in biases:
                attributes['bias'] = biases[node.id]
            if node.id in self.controls:
                attributes['controlled'] = self.controls[node.id]
            G.add_node(name(node.id), **attributes)
        for edge in self.edges:
            u, v = name(edge.source), name(edge.target)
            if G.has_edge(u, v):
                G[u][v]['weight'] += edge.weight
            else:
                G.add_edge(u, v, weight=edge.weight)
        return G
