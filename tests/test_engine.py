"""Tests for the execution engine.

Covers evaluation of every node kind, halting vs absorbed failures,
skip propagation, statistics and the public execute()/run() helpers.
"""

import logging

import pytest

from glyph import execute, parse, run
from glyph.config import GlyphConfig
from glyph.core.engine import ExecutionEngine, NodeStatus
from glyph.core.errors import ProgramValidationError
from glyph.core.program import Edge, FlowKind, NodeKind, Program
from glyph.core.scheduler import schedule


class TestArithmeticPrograms:
    """End-to-end arithmetic through reverse connectors."""

    def test_reverse_connectors_multiply(self, sources):
        result = run(sources["multiply_print"])

        assert result.success
        assert result.result_of("n1") == 24
        assert result.output == ["📤 PRINT: 24"]

    def test_subtract_left_associative(self, sources):
        assert run(sources["subtract"]).result_of("n1") == 85

    def test_divide_left_associative(self, sources):
        assert run(sources["divide"]).result_of("n1") == 10

    def test_forward_after_reverse(self):
        result = run("[○ 12] → [▷ multiply] ← [○ 12] → [▷ print]")

        assert result.output == ["📤 PRINT: 144"]

    def test_two_functions_in_one_line(self):
        result = run("[○ 5] → [▷ multiply] ← [○ 6] → [▷ add] ← [○ 10] → [▷ print]")

        assert result.output == ["📤 PRINT: 40"]

    def test_fractional_result(self):
        assert run("[○ 1] → [▷ divide] ← [○ 4] → [▷ print]").output == ["📤 PRINT: 0.25"]


class TestValueKinds:
    def test_concat_with_empty_string(self, sources):
        assert run(sources["concat"]).result_of("n1") == "hello"

    def test_boolean_output(self):
        assert run("[○ 30] → [▷ is_valid_age] → [▷ print]").output == ["📤 PRINT: true"]

    def test_list_literal(self):
        assert run("[△ 1, 2, 3] → [▷ length] → [▷ print]").output == ["📤 PRINT: 3"]

    def test_string_pipeline(self):
        result = run('[□ "hello"] → [▷ to_upper] → [▷ print]')

        assert result.output == ["📤 PRINT: HELLO"]

    def test_labels_run_in_source_order(self, sources):
        result = run(sources["labelled"])

        assert result.output == ["📤 PRINT: HELLO", "📤 OUTPUT: 3"]


class TestOutputNodes:
    def test_output_emits_first_input(self):
        result = run("[○ 42] → [⤶ result]")

        assert result.output == ["📤 OUTPUT: 42"]
        assert result.result_of("n1") == 42

    def test_output_passes_value_through(self):
        result = run("[○ 3] → [⤶ out] → [▷ print]")

        assert result.output == ["📤 OUTPUT: 3", "📤 PRINT: 3"]

    def test_unconnected_output_uses_literal(self):
        assert run("[⤶ 7]").output == ["📤 OUTPUT: 7"]

    def test_custom_formats(self):
        config = GlyphConfig(print_format="P {value}", output_format="O {value}")

        result = run("[○ 3] → [⤶ out] → [▷ print]", config)

        assert result.output == ["O 3", "P 3"]


class TestFailures:
    """Halting and absorbed failures."""

    def test_division_by_zero_halts(self, sources):
        result = run(sources["divide_by_zero"])

        assert not result.success
        assert result.halted
        assert "zero" in result.error
        assert result.failed_node == "n1"
        assert result.nodes["n1"].status == NodeStatus.FAILED
        assert "zero" in result.nodes["n1"].error

    def test_halt_leaves_later_nodes_pending(self):
        result = run("[○ 10] → [▷ divide] ← [○ 0] → [▷ print]\n[○ 1] → [▷ print]")

        assert result.output == []
        assert result.nodes["n3"].status == NodeStatus.PENDING
        assert result.nodes["n4"].status == NodeStatus.PENDING
        assert result.statistics.executed_nodes == 3
        assert result.statistics.total_nodes == 6
        assert result.statistics.success_rate == 33.3

    def test_absorbed_failure_continues(self, sources):
        result = run(sources["absorbed_error"])

        assert result.success
        assert not result.halted
        assert result.nodes["n1"].status == NodeStatus.FAILED
        assert result.nodes["n1"].absorbed
        assert result.nodes["n3"].status == NodeStatus.COMPLETED
        assert result.result_of("n3") == "caught"
        assert [r.id for r in result.failures()] == ["n1"]

    def test_absorbed_failure_skips_dependents(self, make_node):
        program = Program()
        program.add_node(make_node("a", NodeKind.DATA, 10, column=1))
        program.add_node(make_node("b", NodeKind.DATA, 0, column=2))
        program.add_node(make_node("d", NodeKind.FUNCTION, "divide", column=3))
        program.add_node(make_node("p", NodeKind.FUNCTION, "print", column=4))
        program.add_node(make_node("h", NodeKind.ERROR, "caught", column=5))
        program.add_edge(Edge(source="a", target="d"))
        program.add_edge(Edge(source="b", target="d"))
        program.add_edge(Edge(source="d", target="p"))
        program.add_edge(Edge(source="d", target="h", flow=FlowKind.ERROR, glyph="⚡"))

        result = execute(program)

        assert result.success
        assert result.nodes["p"].status == NodeStatus.SKIPPED
        assert not result.nodes["p"].executed
        assert result.nodes["h"].status == NodeStatus.COMPLETED
        assert result.output == []

    def test_absorbed_failure_is_logged(self, sources, caplog):
        with caplog.at_level(logging.WARNING, logger="glyph.core.engine"):
            run(sources["absorbed_error"])

        assert "Absorbed failure" in caplog.text

    def test_type_coercion_failure(self):
        result = run('[□ "abc"] → [▷ to_number]')

        assert not result.success
        assert result.error == 'to_number: cannot convert "abc" to number'

    def test_numeric_overflow_fails_the_node(self):
        result = run("[○ 1e308] → [▷ multiply] ← [○ 10] → [▷ print]")

        assert not result.success
        assert result.failed_node == "n1"
        assert "out of range" in result.error
        assert result.output == []

    def test_overflowing_text_coercion_fails_the_node(self):
        result = run('[□ "1e400"] → [▷ is_valid_age]')

        assert not result.success
        assert result.nodes["n1"].status == NodeStatus.FAILED

    def test_unknown_function_fails_validation(self, sources):
        with pytest.raises(ProgramValidationError, match="Undefined function: unknown"):
            run(sources["unknown_function"])

    def test_unknown_function_fails_execution(self, sources):
        result = execute(parse(sources["unknown_function"]))

        assert not result.success
        assert result.error == "Unknown function: unknown"

    def test_reserved_kind_is_unsupported(self):
        result = execute(parse("[○ 1] → [⟳ loop]"))

        assert not result.success
        assert "not yet implemented" in result.error
        assert result.nodes["n1"].status == NodeStatus.FAILED


class TestEngine:
    """Tests for ExecutionEngine itself."""

    def test_fresh_records_per_call(self, sources):
        program = parse(sources["add_print"])
        engine = ExecutionEngine()
        order = schedule(program)

        first = engine.execute(program, order)
        second = engine.execute(program, order)

        assert first.output == second.output == ["📤 PRINT: 8"]
        assert first.nodes["n1"] is not second.nodes["n1"]

    def test_program_not_mutated(self, sources):
        program = parse(sources["multiply_print"])
        before = program.model_dump()

        execute(program)

        assert program.model_dump() == before

    def test_statistics(self, sources):
        stats = run(sources["multiply_print"]).statistics

        assert stats.total_nodes == 5
        assert stats.executed_nodes == 5
        assert stats.success_rate == 100.0
        assert stats.output_count == 1

    def test_order_recorded(self, sources):
        result = run(sources["multiply"])

        assert result.order == ["n0", "n2", "n3", "n1"]

    def test_empty_program(self):
        result = run("# nothing here")

        assert result.success
        assert result.output == []
        assert result.statistics.success_rate == 100.0
