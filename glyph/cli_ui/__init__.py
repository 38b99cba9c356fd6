"""Rich terminal rendering for programs and execution results."""

from glyph.cli_ui.renderer import ProgramRenderer, ResultTableRenderer

__all__ = [
    "ProgramRenderer",
    "ResultTableRenderer",
]
