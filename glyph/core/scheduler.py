"""Execution scheduler: deterministic topological ordering of a Program.

Only dependency flows (data, return, input) order execution; error and async
edges never delay a node. Among nodes that are ready at the same time, the
one written first in the source (line, then column) runs first, so identical
source always yields the identical order.
"""

from __future__ import annotations

import heapq
import logging

import networkx as nx

from glyph.core.errors import CycleError, DependencyNotFoundError
from glyph.core.program import DEPENDENCY_FLOWS, Node, Program

logger = logging.getLogger(__name__)


class ExecutionScheduler:
    """Orders program nodes so every input is computed before its consumer.

    The scheduler only reads the program; adjacency is derived once in the
    constructor.

    Example:
        [○ 2] → [▷ multiply] ← [○ 3]
        [○ 5] → [⤶ out]

        Execution order: ○2, ○3, ▷multiply, ○5, ⤶out
        (○3 is ready at the start but sorts after ○2 by column; multiply
        becomes ready once both inputs ran and sorts before line 2)

    Raises:
        DependencyNotFoundError: If an edge references an unknown node.
    """

    def __init__(self, program: Program):
        self.program = program
        self._nodes: dict[str, Node] = {}
        # Adjacency list: node -> nodes that consume its value
        self._dependents: dict[str, list[str]] = {}
        # Reverse: node -> nodes it consumes
        self._dependencies: dict[str, list[str]] = {}
        self._build()

    def _build(self) -> None:
        for node in self.program.nodes:
            self._nodes.setdefault(node.id, node)
            self._dependents.setdefault(node.id, [])
            self._dependencies.setdefault(node.id, [])

        for edge in self.program.edges:
            if edge.flow not in DEPENDENCY_FLOWS:
                continue
            for endpoint in (edge.source, edge.target):
                if endpoint not in self._nodes:
                    raise DependencyNotFoundError(
                        f"Edge {edge.source} -> {edge.target} references unknown node "
                        f"'{endpoint}'. Known nodes: {len(self._nodes)}"
                    )
            self._dependents[edge.source].append(edge.target)
            self._dependencies[edge.target].append(edge.source)

    def _sort_key(self, node_id: str) -> tuple[int, int, str]:
        node = self._nodes[node_id]
        return (node.position.line, node.position.column, node_id)

    def get_execution_order(self) -> list[str]:
        """Topological sort (Kahn's algorithm) with source-position tie-break.

        Raises:
            CycleError: If not every node can be ordered.
        """
        in_degree = {node: len(deps) for node, deps in self._dependencies.items()}
        heap = [self._sort_key(node) for node, deg in in_degree.items() if deg == 0]
        heapq.heapify(heap)
        order: list[str] = []

        while heap:
            *_, node = heapq.heappop(heap)
            order.append(node)

            for dependent in self._dependents[node]:
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0:
                    heapq.heappush(heap, self._sort_key(dependent))

        if len(order) != len(self._nodes):
            blocked = [n for n, deg in in_degree.items() if deg > 0]
            raise CycleError(self._find_cycle(blocked), blocked)

        logger.info(f"Scheduled {len(order)} nodes")
        return order

    def _find_cycle(self, blocked: list[str]) -> list[str]:
        """Name the nodes of one concrete cycle among the blocked nodes."""
        G = self.program.to_networkx().subgraph(blocked)
        try:
            return [source for source, _ in nx.find_cycle(G)]
        except nx.NetworkXNoCycle:
            return sorted(blocked)

    def get_parallel_batches(self) -> list[list[str]]:
        """Group nodes into dependency levels (diagnostics only).

        Nodes in one batch do not depend on each other. The engine still runs
        them one at a time in get_execution_order() order.

        Raises:
            CycleError: If the graph has a cycle.
        """
        order = self.get_execution_order()
        level: dict[str, int] = {}
        for node in order:
            deps = self._dependencies[node]
            level[node] = max((level[d] + 1 for d in deps), default=0)

        batches: list[list[str]] = [[] for _ in range(max(level.values(), default=-1) + 1)]
        for node in order:
            batches[level[node]].append(node)
        return batches

    def dependencies_of(self, node_id: str) -> list[str]:
        return list(self._dependencies.get(node_id, []))

    def dependents_of(self, node_id: str) -> list[str]:
        return list(self._dependents.get(node_id, []))


def schedule(program: Program) -> list[str]:
    """Return the execution order of program's node ids.

    Raises:
        CycleError: If the program graph has a cycle.
        DependencyNotFoundError: If an edge references an unknown node.
    """
    return ExecutionScheduler(program).get_execution_order()
