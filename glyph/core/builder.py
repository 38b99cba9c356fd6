"""Graph builder: turns tokenized source lines into a Program.

Connector resolution, per line:

1. Every node token becomes a Node with a fresh id, left to right.
2. Each connector finds the nearest node ending before it (the left node) and
   the nearest node starting after it (the right node).
3. Forward connectors add `left -> right`. The reverse connector `←` adds
   `right -> left` and attaches the right node to the left one as an extra
   input.
4. A node attached by `←` is an argument, not a position in the chain: any
   later connector whose left node is attached anchors on the node it was
   attached to instead. So `[○ 2] → [▷ multiply] ← [○ 3] ← [○ 4] → [▷ print]`
   feeds 2, 3 and 4 into multiply and the product into print.

Lines without connectors chain their nodes forward in declaration order.
"""

from __future__ import annotations

import logging

from glyph.core.errors import GlyphSyntaxError
from glyph.core.program import Edge, FlowKind, Node, Program, SourcePosition
from glyph.core.scheduler import ExecutionScheduler
from glyph.core.tokenizer import ConnectorToken, NodeToken, SourceLine, decode_literal, scan_source

logger = logging.getLogger(__name__)


class GraphBuilder:
    """Builds a Program graph from Glyph source text."""

    def __init__(self, id_prefix: str = "n"):
        self.id_prefix = id_prefix
        self._counter = 0

    def _next_id(self) -> str:
        node_id = f"{self.id_prefix}{self._counter}"
        self._counter += 1
        return node_id

    def build(self, source: str) -> Program:
        """Parse source into a Program (no cycle check).

        Raises:
            GlyphSyntaxError: Malformed literal or dangling connector.
        """
        self._counter = 0
        program = Program(source=source)

        for line in scan_source(source):
            if line.declares_label:
                program.labels.setdefault(line.label, [])
                continue
            self._build_line(program, line)

        logger.info(
            f"Built program: {len(program.nodes)} nodes, {len(program.edges)} edges, "
            f"{len(program.labels)} label(s)"
        )
        return program

    def _build_line(self, program: Program, line: SourceLine) -> None:
        placed: list[tuple[NodeToken, Node]] = []
        for token in line.nodes:
            column = line.indent + token.offset + 1
            value, declared_type = decode_literal(token, line.number, column)
            node = Node(
                id=self._next_id(),
                kind=token.kind,
                glyph=token.symbol,
                value=value,
                declared_type=declared_type,
                position=SourcePosition(line=line.number, column=column),
                label=line.label,
                raw=token.raw,
            )
            program.add_node(node)
            placed.append((token, node))

        connectors = line.connectors
        if not connectors:
            for (_, left), (_, right) in zip(placed, placed[1:]):
                program.add_edge(
                    Edge(
                        source=left.id,
                        target=right.id,
                        flow=FlowKind.DATA,
                        glyph="→",
                        line=line.number,
                        implicit=True,
                    )
                )
            return

        # Node attached through `←` -> node it feeds
        attached_to: dict[str, str] = {}
        previous_end: int | None = None

        for connector in connectors:
            if previous_end is not None and not any(
                previous_end <= token.offset < connector.offset for token, _ in placed
            ):
                raise GlyphSyntaxError(
                    f"Connector {connector.glyph!r} has no node between it and the previous connector",
                    line.number,
                    line.indent + connector.offset + 1,
                    line.text[connector.offset : connector.end],
                )
            previous_end = connector.end

            left = self._nearest_left(placed, connector)
            right = self._nearest_right(placed, connector)
            if left is None or right is None:
                side = "left" if left is None else "right"
                raise GlyphSyntaxError(
                    f"Dangling connector {connector.glyph!r} has no node on its {side}",
                    line.number,
                    line.indent + connector.offset + 1,
                    line.text[connector.offset : connector.end],
                )

            anchor = program.get_node(attached_to.get(left.id, left.id))
            if connector.reverse:
                source, target = right, anchor
                attached_to[right.id] = anchor.id
            else:
                source, target = anchor, right

            added = program.add_edge(
                Edge(
                    source=source.id,
                    target=target.id,
                    flow=connector.flow,
                    glyph=connector.glyph,
                    label=connector.label,
                    line=line.number,
                )
            )
            if added:
                logger.debug(f"Edge {source.describe()} -> {target.describe()} [{connector.flow.value}]")
            else:
                logger.debug(f"Edge {source.id} -> {target.id} already declared; merged")

    @staticmethod
    def _nearest_left(placed: list[tuple[NodeToken, Node]], connector: ConnectorToken) -> Node | None:
        best = None
        for token, node in placed:
            if token.end <= connector.offset:
                best = node  # Tokens are in offset order; the last match is nearest
        return best

    @staticmethod
    def _nearest_right(
        placed: list[tuple[NodeToken, Node]], connector: ConnectorToken
    ) -> Node | None:
        for token, node in placed:
            if token.offset >= connector.end:
                return node
        return None


def parse(source: str) -> Program:
    """Parse source text into a validated-acyclic Program.

    Raises:
        GlyphSyntaxError: Malformed literal or dangling connector.
        CycleError: The dependency graph contains a cycle.
    """
    program = GraphBuilder().build(source)
    ExecutionScheduler(program).get_execution_order()
    return program
