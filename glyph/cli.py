"""CLI entry point for the Glyph interpreter.

Commands:
- glyph run: Parse, validate and execute a program
- glyph parse: Show the parsed program graph
- glyph check: Validate a program without running it
- glyph version: Show version information
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel

from glyph.cli_ui.renderer import ProgramRenderer, ResultTableRenderer
from glyph.config import ConfigError, resolve_config
from glyph.core.builder import parse as parse_source
from glyph.core.engine import ExecutionResult
from glyph.core.errors import CycleError, GlyphSyntaxError, ProgramValidationError
from glyph.core.interpreter import GlyphInterpreter
from glyph.core.program import Program
from glyph.core.validator import ValidationReport, validate

console = Console()
err_console = Console(stderr=True)


def _setup_logging(level: str) -> None:
    """Route glyph.* log records to a RichHandler on stderr."""
    logger = logging.getLogger("glyph")
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False, markup=False))
    logger.setLevel(level)


def _load_program(source_file: str) -> Program:
    """Read and parse a source file, exiting with status 1 on failure."""
    try:
        source = Path(source_file).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Error reading '{escape(source_file)}':[/] {escape(str(e))}")
        sys.exit(1)

    try:
        return parse_source(source)
    except GlyphSyntaxError as e:
        console.print(f"[red]Syntax error:[/] {escape(str(e))}")
        sys.exit(1)
    except CycleError as e:
        console.print(f"[red]Cycle error:[/] {escape(str(e))}")
        sys.exit(1)


def _print_report(report: ValidationReport) -> None:
    if report.errors:
        console.print("[red bold]Validation Errors:[/]")
        for error in report.errors:
            console.print(f"  [red]• {escape(str(error))}[/]")
    if report.warnings:
        console.print("[yellow bold]Warnings:[/]")
        for warning in report.warnings:
            console.print(f"  [yellow]• {escape(str(warning))}[/]")
    if report.valid:
        console.print("[green]✓ Program is valid[/]")


def _print_statistics(result: ExecutionResult) -> None:
    stats = result.statistics
    body = (
        f"Total nodes: {stats.total_nodes}\n"
        f"Executed: {stats.executed_nodes}\n"
        f"Success rate: {stats.success_rate:.1f}%\n"
        f"Output lines: {stats.output_count}"
    )
    if result.success:
        console.print(Panel(body, title="[green]Execution complete[/]"))
    else:
        failed = escape(result.failed_node or "?")
        body += f"\n[red]Failed at {failed}: {escape(result.error or '')}[/]"
        console.print(Panel(body, title="[red]Execution halted[/]"))


@click.group()
@click.version_option(version="0.1.0")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging on stderr")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """Glyph - a symbolic dataflow language.

    Programs are graphs of bracketed nodes joined by arrows.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    if verbose:
        _setup_logging("DEBUG")


@main.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Config file (default: nearest .glyph/config.yaml or glyph.yaml)",
)
@click.option("--no-validate", is_flag=True, help="Execute even if validation fails")
@click.option("--table", is_flag=True, help="Show per-node results")
@click.pass_context
def run(
    ctx: click.Context, source_file: str, config_path: str | None, no_validate: bool, table: bool
) -> None:
    """Parse, validate and execute a Glyph program."""
    try:
        config = resolve_config(config_path, start=Path(source_file).parent)
    except ConfigError as e:
        console.print(f"[red]Config error:[/] {escape(str(e))}")
        sys.exit(1)

    if no_validate:
        config = config.model_copy(update={"validate_before_run": False})
    if not (ctx.obj or {}).get("verbose"):
        _setup_logging(config.log_level)

    program = _load_program(source_file)
    interpreter = GlyphInterpreter(config)
    interpreter.load_program(program)

    try:
        result = interpreter.execute()
    except ProgramValidationError as e:
        console.print("[red bold]Validation failed:[/]")
        for violation in e.violations:
            console.print(f"  [red]• {escape(str(violation))}[/]")
        sys.exit(1)
    except CycleError as e:
        console.print(f"[red]Cycle error:[/] {escape(str(e))}")
        sys.exit(1)

    for line in result.output:
        console.print(escape(line))

    if table:
        console.print(ResultTableRenderer(console).render_result_table(program, result))
    _print_statistics(result)

    if not result.success:
        sys.exit(1)


@main.command(name="parse")
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the program graph as JSON")
def parse_command(source_file: str, as_json: bool) -> None:
    """Show the parsed program graph."""
    program = _load_program(source_file)
    report = validate(program)

    if as_json:
        payload = {
            "program": program.model_dump(mode="json", exclude={"source"}),
            "summary": {
                "nodes": len(program.nodes),
                "edges": len(program.edges),
                "labels": list(program.labels),
            },
            "validation": report.model_dump(mode="json"),
        }
        click.echo(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    renderer = ProgramRenderer(console)
    console.print(renderer.render_as_tree(program, title=Path(source_file).name))

    console.print()
    console.print(f"[bold]Nodes:[/] {len(program.nodes)}")
    console.print(f"[bold]Edges:[/] {len(program.edges)}")
    console.print(f"[bold]Labels:[/] {', '.join(escape(label) for label in program.labels)}")
    console.print()
    _print_report(report)


@main.command()
@click.argument("source_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
def check(source_file: str, strict: bool) -> None:
    """Validate a Glyph program without running it."""
    program = _load_program(source_file)
    report = validate(program)
    _print_report(report)

    if not report.valid or (strict and report.warnings):
        sys.exit(1)


@main.command()
def version() -> None:
    """Show version information."""
    from glyph import __version__

    console.print(f"Glyph v{__version__}")
    console.print("Symbolic dataflow language interpreter")


if __name__ == "__main__":
    main()
