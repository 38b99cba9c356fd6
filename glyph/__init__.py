"""Glyph - a symbolic dataflow language.

Programs are written as lines of bracketed node literals joined by arrow
connectors; the interpreter turns them into a dependency graph and evaluates
it in topological order.
"""

from __future__ import annotations

import logging

from glyph.config import ConfigError, GlyphConfig
from glyph.core.builder import GraphBuilder, parse
from glyph.core.engine import (
    ExecutionEngine,
    ExecutionResult,
    ExecutionStatistics,
    NodeRecord,
    NodeStatus,
)
from glyph.core.errors import (
    ArityError,
    CycleError,
    DivisionByZeroError,
    ExecutionError,
    GlyphError,
    GlyphSyntaxError,
    InterpreterStateError,
    NumericOverflowError,
    ProgramValidationError,
    TypeCoercionError,
    UnknownOperationError,
    UnsupportedNodeError,
)
from glyph.core.interpreter import GlyphInterpreter, InterpreterState
from glyph.core.program import Edge, FlowKind, Node, NodeKind, Program
from glyph.core.scheduler import schedule
from glyph.core.validator import ValidationReport, validate

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())


def execute(program: Program, config: GlyphConfig | None = None) -> ExecutionResult:
    """Schedule and run a parsed program without validating it first.

    Raises:
        CycleError: The program graph has a cycle; no node runs.
    """
    return ExecutionEngine(config).execute(program, schedule(program))


def run(source: str, config: GlyphConfig | None = None) -> ExecutionResult:
    """Parse, validate (per config) and execute source text."""
    interpreter = GlyphInterpreter(config)
    interpreter.load_program(parse(source))
    return interpreter.execute()


__all__ = [
    "ArityError",
    "ConfigError",
    "CycleError",
    "DivisionByZeroError",
    "Edge",
    "ExecutionEngine",
    "ExecutionError",
    "ExecutionResult",
    "ExecutionStatistics",
    "FlowKind",
    "GlyphConfig",
    "GlyphError",
    "GlyphInterpreter",
    "GlyphSyntaxError",
    "GraphBuilder",
    "InterpreterState",
    "InterpreterStateError",
    "Node",
    "NodeKind",
    "NodeRecord",
    "NodeStatus",
    "Program",
    "ProgramValidationError",
    "NumericOverflowError",
    "TypeCoercionError",
    "UnknownOperationError",
    "UnsupportedNodeError",
    "ValidationReport",
    "execute",
    "parse",
    "run",
    "schedule",
    "validate",
]
