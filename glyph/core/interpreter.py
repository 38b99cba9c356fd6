"""Two-step load/run surface over the execution engine.

    interpreter = GlyphInterpreter()
    interpreter.load_program(parse(source))
    result = interpreter.execute()

State machine: NOT_LOADED -> LOADED -> RUNNING -> COMPLETED | HALTED.
Loading resets all records. A loaded program runs at most once; executing
again returns the cached result.
"""

from __future__ import annotations

import logging
from enum import Enum

from glyph.config import GlyphConfig
from glyph.core.engine import ExecutionEngine, ExecutionResult, NodeRecord
from glyph.core.errors import CycleError, InterpreterStateError
from glyph.core.program import Program
from glyph.core.scheduler import ExecutionScheduler
from glyph.core.validator import validate

logger = logging.getLogger(__name__)


class InterpreterState(str, Enum):
    NOT_LOADED = "not_loaded"
    LOADED = "loaded"
    RUNNING = "running"
    COMPLETED = "completed"
    HALTED = "halted"


class GlyphInterpreter:
    """Runs one loaded Program at a time.

    Args:
        config: Validation policy and output formats.
    """

    def __init__(self, config: GlyphConfig | None = None):
        self.config = config or GlyphConfig()
        self.engine = ExecutionEngine(self.config)
        self.state = InterpreterState.NOT_LOADED
        self.program: Program | None = None
        self.result: ExecutionResult | None = None

    def load_program(self, program: Program) -> None:
        """Load a program and reset all execution records."""
        self.program = program
        self.result = None
        self.state = InterpreterState.LOADED
        logger.info(f"Loaded program with {len(program.nodes)} nodes")

    @property
    def records(self) -> dict[str, NodeRecord]:
        return self.result.nodes if self.result else {}

    def execute(self) -> ExecutionResult:
        """Run the loaded program, or return the cached result of a previous run.

        Raises:
            InterpreterStateError: No program loaded.
            ProgramValidationError: validate_before_run is set and the program
                has errors (or warnings, with warnings_as_errors).
            CycleError: The program graph has a cycle; no node runs.
        """
        if self.program is None:
            raise InterpreterStateError("No program loaded; call load_program() first")
        if self.result is not None:
            logger.debug("Returning cached execution result")
            return self.result

        if self.config.validate_before_run:
            report = validate(self.program)
            report.raise_for_errors(include_warnings=self.config.warnings_as_errors)

        self.state = InterpreterState.RUNNING
        try:
            order = ExecutionScheduler(self.program).get_execution_order()
            self.result = self.engine.execute(self.program, order)
        except CycleError:
            self.state = InterpreterState.HALTED
            logger.error("Execution refused: program graph has a cycle")
            raise
        except Exception as e:
            self.state = InterpreterState.HALTED
            logger.error(f"Execution aborted: {e}")
            raise

        self.state = InterpreterState.COMPLETED if self.result.success else InterpreterState.HALTED
        return self.result
