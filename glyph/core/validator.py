"""Structural validation of a Program graph.

Validation never raises and never mutates the program: every violation is
collected into a ValidationReport and the caller decides whether to run.
"""

from __future__ import annotations

import logging
from enum import Enum

import networkx as nx
from pydantic import BaseModel, Field

from glyph.core.builtins import OPERATION_SPECS
from glyph.core.errors import ProgramValidationError
from glyph.core.program import (
    CONSTANT_KINDS,
    DEPENDENCY_FLOWS,
    RESERVED_KINDS,
    Node,
    NodeKind,
    Program,
    ValueType,
)
from glyph.core.utils import is_number

logger = logging.getLogger(__name__)


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ViolationCode(str, Enum):
    """What a violation is about"""

    # Errors
    DUPLICATE_NODE_ID = "duplicate_node_id"
    UNKNOWN_FUNCTION = "unknown_function"
    MISSING_NODE = "missing_node"
    FUNCTION_WITHOUT_INPUTS = "function_without_inputs"
    TYPE_MISMATCH = "type_mismatch"
    # Warnings
    ORPHAN_NODE = "orphan_node"
    CONSTANT_RECEIVES_INPUT = "constant_receives_input"
    INSUFFICIENT_ARITY = "insufficient_arity"
    RESERVED_KIND = "reserved_kind"


class Violation(BaseModel):
    code: ViolationCode
    severity: Severity
    message: str
    node_id: str | None = None

    def __str__(self) -> str:
        return self.message


class ValidationReport(BaseModel):
    """Outcome of validate(): valid iff there are no errors."""

    errors: list[Violation] = Field(default_factory=list)
    warnings: list[Violation] = Field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def codes(self) -> set[ViolationCode]:
        return {v.code for v in self.errors + self.warnings}

    def raise_for_errors(self, include_warnings: bool = False) -> None:
        """Raise ProgramValidationError if the report has errors.

        Args:
            include_warnings: Treat warnings as errors too.
        """
        violations = self.errors + (self.warnings if include_warnings else [])
        if violations:
            raise ProgramValidationError(violations)


_TYPE_CHECKS = {
    ValueType.NUMBER: is_number,
    ValueType.STRING: lambda v: isinstance(v, str),
    ValueType.BOOLEAN: lambda v: isinstance(v, bool),
    ValueType.LIST: lambda v: isinstance(v, list),
}


def _where(node: Node) -> str:
    return f"at line {node.position.line}"


def validate(program: Program) -> ValidationReport:
    """Check program structure and return every violation found."""
    report = ValidationReport()

    def error(code: ViolationCode, message: str, node_id: str | None = None) -> None:
        report.errors.append(
            Violation(code=code, severity=Severity.ERROR, message=message, node_id=node_id)
        )

    def warn(code: ViolationCode, message: str, node_id: str | None = None) -> None:
        report.warnings.append(
            Violation(code=code, severity=Severity.WARNING, message=message, node_id=node_id)
        )

    # Duplicate node ids would corrupt execution records
    seen: set[str] = set()
    for node in program.nodes:
        if node.id in seen:
            error(ViolationCode.DUPLICATE_NODE_ID, f"Duplicate node ID: '{node.id}'", node.id)
        seen.add(node.id)

    for edge in program.edges:
        if edge.source not in seen:
            error(
                ViolationCode.MISSING_NODE,
                f"Edge {edge.source} -> {edge.target}: source '{edge.source}' not found",
            )
        if edge.target not in seen:
            error(
                ViolationCode.MISSING_NODE,
                f"Edge {edge.source} -> {edge.target}: target '{edge.target}' not found",
            )

    G = program.to_networkx(flows=None)
    isolated = set(nx.isolates(G))

    for node in program.nodes:
        inputs = [e for e in program.incoming(node.id, DEPENDENCY_FLOWS) if e.source in seen]

        if node.kind == NodeKind.FUNCTION:
            op = node.operation
            if op is None:
                error(
                    ViolationCode.UNKNOWN_FUNCTION,
                    f"Undefined function: {node.value} {_where(node)}",
                    node.id,
                )
            if not inputs:
                error(
                    ViolationCode.FUNCTION_WITHOUT_INPUTS,
                    f"Function '{node.value}' {_where(node)} receives no inputs",
                    node.id,
                )
            elif op is not None and len(inputs) < OPERATION_SPECS[op].min_arity:
                warn(
                    ViolationCode.INSUFFICIENT_ARITY,
                    f"Function '{node.value}' {_where(node)} has {len(inputs)} input(s), "
                    f"needs at least {OPERATION_SPECS[op].min_arity}",
                    node.id,
                )

        if node.declared_type is not None and not _TYPE_CHECKS[node.declared_type](node.value):
            error(
                ViolationCode.TYPE_MISMATCH,
                f"Node {node.id} {_where(node)} declares type '{node.declared_type.value}' "
                f"but its value is {node.value!r}",
                node.id,
            )

        if node.kind in CONSTANT_KINDS:
            if inputs:
                warn(
                    ViolationCode.CONSTANT_RECEIVES_INPUT,
                    f"Constant {node.glyph} {node.value!r} {_where(node)} receives input; "
                    f"its literal value is used",
                    node.id,
                )
            if not program.outgoing(node.id) and node.id not in isolated:
                warn(
                    ViolationCode.ORPHAN_NODE,
                    f"Constant {node.glyph} {node.value!r} {_where(node)} feeds no node",
                    node.id,
                )

        if node.id in isolated:
            warn(
                ViolationCode.ORPHAN_NODE,
                f"Node {node.glyph} {node.value!r} {_where(node)} is not connected",
                node.id,
            )

        if node.kind in RESERVED_KINDS:
            warn(
                ViolationCode.RESERVED_KIND,
                f"{node.kind.value} node {_where(node)} is not yet implemented "
                f"and will fail if executed",
                node.id,
            )

    for violation in report.warnings:
        logger.warning(violation.message)
    logger.info(f"Validation: {len(report.errors)} error(s), {len(report.warnings)} warning(s)")
    return report
