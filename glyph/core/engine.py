"""Execution engine: evaluates a scheduled Program node by node.

Every execute() call owns a fresh set of NodeRecords; the Program is only
read. Nodes run one at a time in schedule order, and each node's inputs are
the results of its dependency-flow predecessors in edge-declaration order
(that order is the positional argument order seen by builtins).

Failure handling:
- A failing node with an outgoing error-flow edge is *absorbed*: its record
  is FAILED, nodes that consume its value are SKIPPED, and the run continues.
- Any other failure halts the run immediately; the partial record set is
  returned with success=False.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from glyph.config import GlyphConfig
from glyph.core.builtins import BuiltinLibrary
from glyph.core.errors import ExecutionError, UnsupportedNodeError
from glyph.core.program import (
    CONSTANT_KINDS,
    DEPENDENCY_FLOWS,
    RESERVED_KINDS,
    FlowKind,
    Node,
    NodeKind,
    Program,
)
from glyph.core.utils import format_value

logger = logging.getLogger(__name__)


class NodeStatus(str, Enum):
    """Execution status for nodes"""

    PENDING = "pending"  # Not yet reached
    COMPLETED = "completed"  # Result stored
    FAILED = "failed"  # Error stored (absorbed or fatal)
    SKIPPED = "skipped"  # An input failed or was skipped


TERMINAL_STATUSES = frozenset({NodeStatus.COMPLETED, NodeStatus.FAILED, NodeStatus.SKIPPED})


class NodeRecord(BaseModel):
    """Per-run state of one node."""

    id: str
    kind: NodeKind
    value: Any = None  # Literal from the source
    status: NodeStatus = NodeStatus.PENDING
    executed: bool = False
    result: Any = None
    error: str | None = None
    absorbed: bool = False  # Failure suppressed by an error-flow edge


class ExecutionStatistics(BaseModel):
    total_nodes: int = 0
    executed_nodes: int = 0
    success_rate: float = 100.0  # Completed nodes as a percentage of all nodes
    output_count: int = 0


class ExecutionResult(BaseModel):
    """Outcome of one run over a Program."""

    success: bool
    halted: bool = False
    output: list[str] = Field(default_factory=list)
    nodes: dict[str, NodeRecord] = Field(default_factory=dict)
    statistics: ExecutionStatistics = Field(default_factory=ExecutionStatistics)
    order: list[str] = Field(default_factory=list)
    error: str | None = None  # Message of the halting failure
    failed_node: str | None = None  # Node that halted the run

    def result_of(self, node_id: str) -> Any:
        return self.nodes[node_id].result

    def failures(self) -> list[NodeRecord]:
        return [r for r in self.nodes.values() if r.status == NodeStatus.FAILED]


class ExecutionEngine:
    """Runs a Program in a precomputed schedule order.

    Args:
        config: Output formats; defaults to GlyphConfig() when omitted.
    """

    def __init__(self, config: GlyphConfig | None = None):
        self.config = config or GlyphConfig()
        self.builtins = BuiltinLibrary(print_format=self.config.print_format)

    def execute(self, program: Program, order: list[str]) -> ExecutionResult:
        """Evaluate every node in order and collect the results.

        Failures never escape as exceptions: they are recorded on the node and
        reflected in ExecutionResult.success.
        """
        records: dict[str, NodeRecord] = {}
        for node in program.nodes:
            records.setdefault(node.id, NodeRecord(id=node.id, kind=node.kind, value=node.value))
        output: list[str] = []
        halt: ExecutionError | None = None

        logger.info(f"Executing {len(order)} nodes")

        for node_id in order:
            record = records[node_id]
            if record.status in TERMINAL_STATUSES:
                continue  # Memoised

            node = program.get_node(node_id)
            inputs, blocked_by = self._gather_inputs(program, node_id, records)
            if blocked_by is not None:
                record.status = NodeStatus.SKIPPED
                logger.debug(f"Skipping {node.describe()}: input {blocked_by} did not complete")
                continue

            try:
                record.result = self._evaluate(node, inputs, output)
                record.status = NodeStatus.COMPLETED
            except ExecutionError as e:
                if e.node_id is None:
                    e.node_id = node_id
                record.status = NodeStatus.FAILED
                record.error = str(e)

                if program.outgoing(node_id, frozenset({FlowKind.ERROR})):
                    record.absorbed = True
                    logger.warning(f"Absorbed failure at {node.describe()}: {e}")
                else:
                    logger.error(f"Execution halted at {node.describe()}: {e}")
                    halt = e
                    break
            finally:
                record.executed = record.status in (NodeStatus.COMPLETED, NodeStatus.FAILED)

        result = ExecutionResult(
            success=halt is None,
            halted=halt is not None,
            output=output,
            nodes=records,
            statistics=self._statistics(records, output),
            order=list(order),
            error=str(halt) if halt is not None else None,
            failed_node=halt.node_id if halt is not None else None,
        )
        logger.info(
            f"Run {'completed' if result.success else 'halted'}: "
            f"{result.statistics.executed_nodes}/{result.statistics.total_nodes} nodes executed, "
            f"{result.statistics.output_count} output line(s)"
        )
        return result

    def _gather_inputs(
        self, program: Program, node_id: str, records: dict[str, NodeRecord]
    ) -> tuple[list[Any], str | None]:
        """Return (inputs, None), or ([], predecessor) if a predecessor didn't complete."""
        inputs = []
        for edge in program.incoming(node_id, DEPENDENCY_FLOWS):
            source = records[edge.source]
            if source.status != NodeStatus.COMPLETED:
                return [], edge.source
            inputs.append(source.result)
        return inputs, None

    def _evaluate(self, node: Node, inputs: list[Any], output: list[str]) -> Any:
        if node.kind in CONSTANT_KINDS or node.kind == NodeKind.ERROR:
            return node.value

        if node.kind == NodeKind.FUNCTION:
            return self.builtins.call(node.value, inputs, output.append)

        if node.kind == NodeKind.OUTPUT:
            value = inputs[0] if inputs else node.value
            output.append(self.config.output_format.format(value=format_value(value)))
            return value

        if node.kind in RESERVED_KINDS:
            raise UnsupportedNodeError(
                f"{node.kind.value} node at line {node.position.line} is not yet implemented",
                node.id,
            )

        raise UnsupportedNodeError(f"Unknown node kind: {node.kind}", node.id)

    @staticmethod
    def _statistics(records: dict[str, NodeRecord], output: list[str]) -> ExecutionStatistics:
        total = len(records)
        executed = sum(1 for r in records.values() if r.executed)
        completed = sum(1 for r in records.values() if r.status == NodeStatus.COMPLETED)
        rate = round(completed / total * 100, 1) if total else 100.0
        return ExecutionStatistics(
            total_nodes=total,
            executed_nodes=executed,
            success_rate=rate,
            output_count=len(output),
        )
