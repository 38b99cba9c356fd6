# conftest.py - Shared pytest fixtures for all tests
"""Shared pytest fixtures for the Glyph test suite.

Provides:
- Sample Glyph sources covering the arithmetic, string and error-flow cases
- A node factory for building Program graphs by hand (source text always
  has a node between connectors, so cycles and dangling edges cannot be
  written in it)
- A helper that writes a source file for CLI tests
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from glyph.core.program import Node, NodeKind, SourcePosition
from glyph.core.tokenizer import NODE_SYMBOLS

# =============================================================================
# Sample Sources
# =============================================================================

MULTIPLY_SOURCE = "[○ 2] → [▷ multiply] ← [○ 3] ← [○ 4]"
MULTIPLY_PRINT_SOURCE = "[○ 2] → [▷ multiply] ← [○ 3] ← [○ 4] → [▷ print]"
SUBTRACT_SOURCE = "[○ 100] → [▷ subtract] ← [○ 10] ← [○ 5]"
DIVIDE_SOURCE = "[○ 100] → [▷ divide] ← [○ 2] ← [○ 5]"
CONCAT_SOURCE = '[□ ""] → [▷ concat] ← [□ "hello"]'
DIVIDE_BY_ZERO_SOURCE = "[○ 10] → [▷ divide] ← [○ 0]"
ABSORBED_ERROR_SOURCE = '[○ 10] → [▷ divide] ← [○ 0] ⚡ [⚡ "caught"]'
ADD_PRINT_SOURCE = "[○ 5] → [▷ add] ← [○ 3] → [▷ print]"
UNKNOWN_FUNCTION_SOURCE = "[○ 1] → [▷ unknown]"

LABELLED_SOURCE = """\
# Greeting
[□ "hello"] → [▷ to_upper] → [▷ print]

totals:
[○ 1] → [▷ add] ← [○ 2] → [⤶ sum]
"""

_GLYPHS = {kind: symbol for symbol, kind in NODE_SYMBOLS.items()}


@pytest.fixture
def sources() -> dict[str, str]:
    """Named sample sources."""
    return {
        "multiply": MULTIPLY_SOURCE,
        "multiply_print": MULTIPLY_PRINT_SOURCE,
        "subtract": SUBTRACT_SOURCE,
        "divide": DIVIDE_SOURCE,
        "concat": CONCAT_SOURCE,
        "divide_by_zero": DIVIDE_BY_ZERO_SOURCE,
        "absorbed_error": ABSORBED_ERROR_SOURCE,
        "add_print": ADD_PRINT_SOURCE,
        "unknown_function": UNKNOWN_FUNCTION_SOURCE,
        "labelled": LABELLED_SOURCE,
    }


# =============================================================================
# Graph Fixtures
# =============================================================================


@pytest.fixture
def make_node() -> Callable[..., Node]:
    """Factory for hand-built nodes.

    Example:
        def test_something(make_node):
            a = make_node("a", NodeKind.DATA, 1, column=1)
    """

    def factory(
        node_id: str,
        kind: NodeKind = NodeKind.DATA,
        value: Any = 1,
        line: int = 1,
        column: int = 1,
        label: str = "main",
    ) -> Node:
        return Node(
            id=node_id,
            kind=kind,
            glyph=_GLYPHS[kind],
            value=value,
            position=SourcePosition(line=line, column=column),
            label=label,
        )

    return factory


# =============================================================================
# File System Fixtures
# =============================================================================


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write Glyph source to a file under tmp_path and return its path."""

    def writer(source: str, name: str = "program.glyph") -> Path:
        path = tmp_path / name
        path.write_text(source, encoding="utf-8")
        return path

    return writer
