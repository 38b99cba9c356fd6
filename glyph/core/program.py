"""Program graph schema definitions using Pydantic models.

A parsed Glyph source becomes a Program: a flat list of nodes and a flat list
of directed edges that reference nodes by id only. The graph carries no
back-pointers, so it can be dumped to JSON or copied freely.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from glyph.core.builtins import Operation


class NodeKind(str, Enum):
    """Node kinds, decided by the leading symbol of a node literal"""

    DATA = "data"  # ○ numeric literal
    TEXT = "text"  # □ string literal
    BOOL = "bool"  # ◇ boolean literal
    LIST = "list"  # △ list literal
    FUNCTION = "function"  # ▷ builtin operation call
    OUTPUT = "output"  # ⤶ output sink
    ERROR = "error"  # ⚡ error handler target
    ASYNC = "async"  # 🔄 reserved
    LOOP = "loop"  # ⟳ reserved
    CONDITION = "condition"  # ◯ reserved


# Kinds that evaluate to their literal value
CONSTANT_KINDS = frozenset({NodeKind.DATA, NodeKind.TEXT, NodeKind.BOOL, NodeKind.LIST})

# Parsed but without execution semantics
RESERVED_KINDS = frozenset({NodeKind.ASYNC, NodeKind.LOOP, NodeKind.CONDITION})


class ValueType(str, Enum):
    """Optional type annotation on a node literal (`[○ 5: number]`)"""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    LIST = "list"


class FlowKind(str, Enum):
    """What an edge carries"""

    DATA = "data"
    ERROR = "error"
    ASYNC = "async"
    RETURN = "return"
    INPUT = "input"


# Flows that order execution and supply input values
DEPENDENCY_FLOWS = frozenset({FlowKind.DATA, FlowKind.RETURN, FlowKind.INPUT})


class SourcePosition(BaseModel):
    """1-based line and column of a node literal"""

    model_config = ConfigDict(frozen=True)

    line: int
    column: int

    @property
    def key(self) -> tuple[int, int]:
        return (self.line, self.column)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class Node(BaseModel):
    """One `[symbol value[: type]]` literal."""

    model_config = ConfigDict(frozen=True)

    id: str
    kind: NodeKind
    glyph: str
    value: Any = None
    declared_type: ValueType | None = None
    position: SourcePosition
    label: str = "main"
    raw: str = ""

    @property
    def operation(self) -> Operation | None:
        """Builtin operation named by a function node, or None if unknown."""
        if self.kind != NodeKind.FUNCTION or not isinstance(self.value, str):
            return None
        try:
            return Operation(self.value)
        except ValueError:
            return None  # Reported by the validator as unknown_function

    def describe(self) -> str:
        return f"{self.glyph} {self.value!r} ({self.id} @ {self.position})"


class Edge(BaseModel):
    """Directed dependency `source -> target`"""

    model_config = ConfigDict(frozen=True)

    source: str  # Node producing the value
    target: str  # Node consuming it
    flow: FlowKind = FlowKind.DATA
    glyph: str = "→"
    label: str | None = None  # Inline connector label (`→|true|`)
    line: int | None = None
    implicit: bool = False  # Created by the no-connector chaining fallback

    @property
    def pair(self) -> tuple[str, str]:
        return (self.source, self.target)


class Program(BaseModel):
    """Complete parsed program graph"""

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    labels: dict[str, list[str]] = Field(default_factory=lambda: {"main": []})
    source: str | None = None

    _node_index: dict[str, Node] = PrivateAttr(default_factory=dict)
    _edge_pairs: set[tuple[str, str]] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: Any) -> None:
        # First occurrence wins; duplicates are reported by the validator
        for node in self.nodes:
            self._node_index.setdefault(node.id, node)
        self._edge_pairs = {edge.pair for edge in self.edges}

    # ========== Mutation (graph building only) ==========

    def add_node(self, node: Node) -> Node:
        self.nodes.append(node)
        self._node_index.setdefault(node.id, node)
        self.labels.setdefault(node.label, []).append(node.id)
        return node

    def add_edge(self, edge: Edge) -> bool:
        """Add an edge unless the same (source, target) pair already exists.

        Returns True if the edge was added.
        """
        if edge.pair in self._edge_pairs:
            return False
        self._edge_pairs.add(edge.pair)
        self.edges.append(edge)
        return True

    # ========== Queries ==========

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def get_node(self, node_id: str) -> Node | None:
        return self._node_index.get(node_id)

    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def incoming(self, node_id: str, flows: frozenset[FlowKind] | None = None) -> list[Edge]:
        """Edges into node_id in declaration order, optionally filtered by flow."""
        return [
            e for e in self.edges if e.target == node_id and (flows is None or e.flow in flows)
        ]

    def outgoing(self, node_id: str, flows: frozenset[FlowKind] | None = None) -> list[Edge]:
        """Edges out of node_id in declaration order, optionally filtered by flow."""
        return [
            e for e in self.edges if e.source == node_id and (flows is None or e.flow in flows)
        ]

    def inputs_of(self, node_id: str) -> list[str]:
        """Predecessor ids that supply values, in argument order."""
        return [e.source for e in self.incoming(node_id, DEPENDENCY_FLOWS)]

    # ========== Graph analysis ==========

    def to_networkx(self, flows: frozenset[FlowKind] | None = DEPENDENCY_FLOWS) -> nx.DiGraph:
        """Convert to a NetworkX DiGraph (dependency flows by default)."""
        G = nx.DiGraph()
        for node in self.nodes:
            G.add_node(node.id)
        for edge in self.edges:
            if flows is None or edge.flow in flows:
                G.add_edge(edge.source, edge.target)
        return G

    def analyze_parallelism(self) -> list[list[str]]:
        """Topological levels: nodes in one level have no dependency between them."""
        G = self.to_networkx()
        try:
            return [sorted(level) for level in nx.topological_generations(G)]
        except nx.NetworkXUnfeasible:
            return []  # Has cycles

    def find_critical_path(self) -> list[str]:
        """Longest dependency chain through the program."""
        G = self.to_networkx()
        try:
            return nx.dag_longest_path(G)
        except nx.NetworkXUnfeasible:
            return []  # Has cycles
