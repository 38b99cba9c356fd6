"""Tests for program validation."""

import pytest

from glyph.core.builder import GraphBuilder
from glyph.core.errors import ProgramValidationError
from glyph.core.program import Edge, NodeKind, Program
from glyph.core.validator import Severity, ViolationCode, validate


def check(source: str):
    return validate(GraphBuilder().build(source))


class TestValidProgram:
    def test_clean_program(self, sources):
        """A fully connected program has no errors or warnings."""
        report = check(sources["multiply_print"])

        assert report.valid
        assert report.errors == []
        assert report.warnings == []

    def test_validate_does_not_mutate(self, sources):
        program = GraphBuilder().build(sources["labelled"])
        before = program.model_dump()

        validate(program)

        assert program.model_dump() == before


class TestErrors:
    """Violations that make a program invalid."""

    def test_unknown_function(self, sources):
        report = check(sources["unknown_function"])

        assert not report.valid
        assert report.errors[0].code == ViolationCode.UNKNOWN_FUNCTION
        assert report.errors[0].message == "Undefined function: unknown at line 1"
        assert report.errors[0].node_id == "n1"

    def test_function_without_inputs(self):
        report = check("[▷ print]")

        assert ViolationCode.FUNCTION_WITHOUT_INPUTS in {v.code for v in report.errors}

    def test_type_mismatch(self):
        report = check('[○ "five": number] → [▷ print]')

        assert [v.code for v in report.errors] == [ViolationCode.TYPE_MISMATCH]

    def test_matching_type_annotation(self):
        report = check('[○ 5: number] → [▷ concat] ← [□ "x": string]')

        assert report.valid

    def test_missing_edge_endpoint(self, make_node):
        program = Program()
        program.add_node(make_node("a"))
        program.add_edge(Edge(source="a", target="ghost"))

        report = validate(program)

        assert [v.code for v in report.errors] == [ViolationCode.MISSING_NODE]
        assert "ghost" in report.errors[0].message

    def test_duplicate_node_id(self, make_node):
        program = Program(nodes=[make_node("a"), make_node("a", value=2)])

        report = validate(program)

        assert ViolationCode.DUPLICATE_NODE_ID in report.codes()


class TestWarnings:
    """Violations that are reported but do not block execution."""

    def test_insufficient_arity(self):
        report = check("[○ 1] → [▷ add]")

        assert report.valid
        assert [v.code for v in report.warnings] == [ViolationCode.INSUFFICIENT_ARITY]
        assert report.warnings[0].severity == Severity.WARNING

    def test_constant_receives_input(self):
        report = check("[○ 1] → [○ 2] → [▷ print]")

        assert report.valid
        assert ViolationCode.CONSTANT_RECEIVES_INPUT in report.codes()

    def test_disconnected_constant(self):
        report = check("[○ 1]\n[○ 2] → [▷ print]")

        assert report.valid
        assert [v.code for v in report.warnings] == [ViolationCode.ORPHAN_NODE]
        assert report.warnings[0].node_id == "n0"

    def test_reserved_kind(self):
        report = check("[○ 1] → [⟳ loop]")

        assert report.valid
        assert ViolationCode.RESERVED_KIND in report.codes()

    def test_warnings_are_logged(self, caplog):
        with caplog.at_level("WARNING", logger="glyph.core.validator"):
            check("[○ 1] → [▷ add]")

        assert "needs at least 2" in caplog.text


class TestRaiseForErrors:
    def test_raises_on_errors(self, sources):
        report = check(sources["unknown_function"])

        with pytest.raises(ProgramValidationError, match="Undefined function") as exc_info:
            report.raise_for_errors()

        assert exc_info.value.violations == report.errors

    def test_warnings_ignored_by_default(self):
        check("[○ 1] → [▷ add]").raise_for_errors()

    def test_warnings_as_errors(self):
        """Promoted warnings are counted as violations, not errors."""
        report = check("[○ 1] → [▷ add]")

        with pytest.raises(ProgramValidationError, match=r"violation\(s\)") as exc_info:
            report.raise_for_errors(include_warnings=True)

        assert "error(s)" not in str(exc_info.value)
        assert exc_info.value.violations == report.warnings


def test_error_kind_node_is_not_orphan(sources):
    """An error handler reached only through an error edge is connected."""
    program = GraphBuilder().build(sources["absorbed_error"])

    assert program.get_node("n3").kind == NodeKind.ERROR
    assert validate(program).warnings == []
