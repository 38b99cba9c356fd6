"""Core modules for the Glyph interpreter."""

from glyph.core.errors import (
    CycleError,
    ExecutionError,
    GlyphError,
    GlyphSyntaxError,
    ProgramValidationError,
)
from glyph.core.program import Edge, FlowKind, Node, NodeKind, Program, SourcePosition

__all__ = [
    "CycleError",
    "Edge",
    "ExecutionError",
    "FlowKind",
    "GlyphError",
    "GlyphSyntaxError",
    "Node",
    "NodeKind",
    "Program",
    "ProgramValidationError",
    "SourcePosition",
]
