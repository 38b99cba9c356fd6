"""Tests for Rich program and result renderers."""

import pytest
from rich.console import Console

from glyph import parse, run
from glyph.cli_ui.renderer import ProgramRenderer, ResultTableRenderer
from glyph.core.engine import NodeStatus


@pytest.fixture
def console() -> Console:
    return Console(record=True, width=120)


def render_text(console: Console, renderable) -> str:
    console.print(renderable)
    return console.export_text()


class TestProgramRenderer:
    def test_tree_groups_nodes_by_label(self, console, sources):
        program = parse(sources["labelled"])

        text = render_text(console, ProgramRenderer(console).render_as_tree(program, title="demo"))

        assert "demo" in text
        assert "main:" in text
        assert "totals:" in text
        assert "▷ to_upper" in text
        assert "(n4 @ 5:" in text

    def test_tree_shows_edges(self, console, sources):
        program = parse(sources["absorbed_error"])

        text = render_text(console, ProgramRenderer(console).render_as_tree(program))

        assert "→ ▷ divide" in text
        assert "⚡ ⚡ caught" in text

    def test_tree_shows_connector_labels(self, console):
        program = parse("[◇ true] →|yes| [▷ print]")

        text = render_text(console, ProgramRenderer(console).render_as_tree(program))

        assert "→|yes| ▷ print" in text

    def test_user_markup_is_escaped(self, console):
        program = parse('[□ "[red]x"] → [▷ print]')

        text = render_text(console, ProgramRenderer(console).render_as_tree(program))

        assert "[red]x" in text

    def test_status_marks(self, console, sources):
        program = parse(sources["divide_by_zero"])
        statuses = {"n0": NodeStatus.COMPLETED, "n1": NodeStatus.FAILED}

        text = render_text(
            console, ProgramRenderer(console).render_as_tree(program, statuses=statuses)
        )

        assert "✓" in text
        assert "✗" in text

    def test_empty_label(self, console):
        program = parse("later:")

        text = render_text(console, ProgramRenderer(console).render_as_tree(program))

        assert "(empty)" in text


class TestResultTableRenderer:
    def test_one_row_per_node(self, console, sources):
        program = parse(sources["multiply_print"])
        result = run(sources["multiply_print"])

        table = ResultTableRenderer(console).render_result_table(program, result)

        assert table.row_count == 5
        text = render_text(console, table)
        assert "Execution completed" in text
        assert "24" in text

    def test_failed_and_absorbed(self, console, sources):
        program = parse(sources["absorbed_error"])
        result = run(sources["absorbed_error"])

        text = render_text(console, ResultTableRenderer(console).render_result_table(program, result))

        assert "Failed" in text
        assert "(absorbed)" in text
        assert "caught" in text

    def test_halted_title_and_pending_rows(self, console):
        source = "[○ 10] → [▷ divide] ← [○ 0] → [▷ print]"
        program = parse(source)
        result = run(source)

        table = ResultTableRenderer(console).render_result_table(program, result)

        assert table.row_count == 4
        text = render_text(console, table)
        assert "Execution halted" in text
        assert "Pending" in text

    def test_long_values_truncated(self, console):
        renderer = ResultTableRenderer(console, max_width=10)

        assert renderer._truncate("x" * 20) == "xxxxxxx..."
        assert renderer._truncate("short") == "short"
