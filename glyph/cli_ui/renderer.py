"""Terminal rendering of programs and execution results using Rich.

SECURITY: node values, labels and error messages come from user source text
and are escaped before being embedded in Rich markup.
"""

from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from glyph.core.engine import ExecutionResult, NodeStatus
from glyph.core.program import Edge, FlowKind, Node, NodeKind, Program
from glyph.core.utils import format_value


class ProgramRenderer:
    """
    Renders a Program as a Rich Tree: one branch per label, one entry per node
    with its outgoing edges underneath.
    """

    NODE_COLORS = {
        NodeKind.DATA: "cyan",
        NodeKind.TEXT: "green",
        NodeKind.BOOL: "magenta",
        NodeKind.LIST: "blue",
        NodeKind.FUNCTION: "yellow",
        NodeKind.OUTPUT: "bold white",
        NodeKind.ERROR: "red",
        NodeKind.ASYNC: "dim",
        NodeKind.LOOP: "dim",
        NodeKind.CONDITION: "dim",
    }

    FLOW_STYLES = {
        FlowKind.DATA: "white",
        FlowKind.ERROR: "red",
        FlowKind.ASYNC: "dim",
        FlowKind.RETURN: "cyan",
        FlowKind.INPUT: "cyan",
    }

    STATUS_MARKS = {
        NodeStatus.COMPLETED: " [green]✓[/]",
        NodeStatus.FAILED: " [red]✗[/]",
        NodeStatus.SKIPPED: " [dim]⊘[/]",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def node_text(self, node: Node, status: NodeStatus | None = None) -> str:
        color = self.NODE_COLORS.get(node.kind, "white")
        value = escape(format_value(node.value))
        mark = self.STATUS_MARKS.get(status, "") if status else ""
        where = f"[dim]({escape(node.id)} @ {node.position})[/]"
        return f"[{color}]{escape(node.glyph)} {value}[/] {where}{mark}"

    def edge_text(self, edge: Edge, target: Node | None) -> str:
        style = self.FLOW_STYLES.get(edge.flow, "white")
        label = f"|{escape(edge.label)}|" if edge.label else ""
        target_text = (
            f"{escape(target.glyph)} {escape(format_value(target.value))}"
            if target
            else f"[red]missing {escape(edge.target)}[/]"
        )
        implicit = " [dim](implicit)[/]" if edge.implicit else ""
        return f"[{style}]{escape(edge.glyph)}{label}[/] {target_text}{implicit}"

    def render_as_tree(
        self,
        program: Program,
        title: str = "program",
        statuses: dict[str, NodeStatus] | None = None,
    ) -> Tree:
        """
        Render program as a Rich Tree grouped by label.

        Args:
            program: The program graph to render
            title: Root label of the tree
            statuses: Optional dict of node_id -> status after a run
        """
        tree = Tree(f"[bold]{escape(title)}[/]")

        for label, node_ids in program.labels.items():
            branch = tree.add(f"[bold magenta]{escape(label)}:[/]")
            if not node_ids:
                branch.add("[dim](empty)[/]")
                continue
            for node_id in node_ids:
                node = program.get_node(node_id)
                if node is None:
                    continue
                status = statuses.get(node_id) if statuses else None
                node_branch = branch.add(self.node_text(node, status))
                for edge in program.outgoing(node_id):
                    node_branch.add(self.edge_text(edge, program.get_node(edge.target)))

        return tree


class ResultTableRenderer:
    """Renders per-node execution records as a Rich table."""

    STATUS_TEXT = {
        NodeStatus.COMPLETED: "[green]✓ Completed[/]",
        NodeStatus.FAILED: "[red]✗ Failed[/]",
        NodeStatus.SKIPPED: "[dim]⊘ Skipped[/]",
        NodeStatus.PENDING: "[dim]○ Pending[/]",
    }

    def __init__(self, console: Console | None = None, max_width: int = 40):
        self.console = console or Console()
        self.max_width = max_width

    def _truncate(self, text: str) -> str:
        if len(text) > self.max_width:
            return text[: self.max_width - 3] + "..."
        return text

    def render_result_table(self, program: Program, result: ExecutionResult) -> Table:
        """Render one row per node in execution order, then any unscheduled nodes."""
        title = "Execution completed" if result.success else "Execution halted"
        table = Table(title=title)

        table.add_column("Node", style="cyan")
        table.add_column("Kind", style="magenta")
        table.add_column("Value")
        table.add_column("Status", justify="center")
        table.add_column("Result / Error", max_width=self.max_width)

        ordered = list(result.order) + [n for n in result.nodes if n not in result.order]
        for node_id in ordered:
            record = result.nodes.get(node_id)
            if record is None:
                continue

            if record.status == NodeStatus.FAILED:
                detail = f"[red]{escape(self._truncate(record.error or ''))}[/]"
                if record.absorbed:
                    detail += " [dim](absorbed)[/]"
            elif record.status == NodeStatus.COMPLETED:
                detail = escape(self._truncate(format_value(record.result)))
            else:
                detail = ""

            node = program.get_node(node_id)
            glyph = escape(node.glyph) + " " if node else ""
            table.add_row(
                escape(node_id),
                record.kind.value,
                glyph + escape(self._truncate(format_value(record.value))),
                self.STATUS_TEXT.get(record.status, escape(str(record.status))),
                detail,
            )

        return table
