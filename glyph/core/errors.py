"""Error taxonomy for the Glyph core.

Parsing, scheduling and execution each raise from a closed hierarchy so
callers can decide what is fatal:

- GlyphSyntaxError: malformed node literal or dangling connector (parse stops)
- ProgramValidationError: collected validation violations
- CycleError: the dependency graph is not a DAG (nothing executes)
- ExecutionError: per-node failure (absorbed by an error-flow edge or fatal)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from glyph.core.validator import Violation


class GlyphError(Exception):
    """Base class for all Glyph errors."""

    pass


class GlyphSyntaxError(GlyphError):
    """Malformed source text.

    Carries the 1-based line and column of the offending fragment.
    """

    def __init__(self, message: str, line: int, column: int, fragment: str = ""):
        self.line = line
        self.column = column
        self.fragment = fragment
        location = f"line {line}, column {column}"
        if fragment:
            super().__init__(f"{message} at {location}: {fragment!r}")
        else:
            super().__init__(f"{message} at {location}")


class ProgramValidationError(GlyphError):
    """Program failed validation."""

    def __init__(self, violations: list[Violation]):
        self.violations = violations
        details = "; ".join(v.message for v in violations)
        super().__init__(f"Program validation failed ({len(violations)} violation(s)): {details}")


class SchedulerError(GlyphError):
    """Error in the execution scheduler."""

    pass


class CycleError(SchedulerError):
    """Circular dependency detected in the program graph."""

    def __init__(self, cycle: list[str], blocked: list[str] | None = None):
        self.cycle = cycle
        self.blocked = blocked or list(cycle)
        path = " -> ".join(cycle + cycle[:1])
        super().__init__(
            f"Circular dependency detected: {path}. "
            f"Blocked nodes: {sorted(self.blocked)}"
        )


class DependencyNotFoundError(SchedulerError):
    """An edge references a node that does not exist."""

    pass


class ExecutionError(GlyphError):
    """A node failed during execution."""

    def __init__(self, message: str, node_id: str | None = None):
        self.node_id = node_id
        super().__init__(message)


class UnknownOperationError(ExecutionError):
    """Function node names an operation outside the builtin table."""

    pass


class ArityError(ExecutionError):
    """Operation called with the wrong number of inputs."""

    pass


class DivisionByZeroError(ExecutionError):
    """Divide received a zero divisor."""

    pass


class TypeCoercionError(ExecutionError):
    """An input could not be converted to the type an operation needs."""

    pass


class NumericOverflowError(ExecutionError):
    """An arithmetic result or coerced value left the finite number range."""

    pass


class UnsupportedNodeError(ExecutionError):
    """Node kind is reserved vocabulary without execution semantics."""

    pass


class InterpreterStateError(ExecutionError):
    """Interpreter used out of order (e.g. execute before load)."""

    pass
