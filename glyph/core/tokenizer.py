"""Tokenizer for Glyph source text.

Each source line is scanned once, left to right, into an immutable list of
tokens: node literals (`[○ 42]`, `[▷ add]`, `[□ "hi": string]`) and connector
glyphs (`→`, `←`, `⚡`, `🔄`, `⤴`, `⤵`, optionally decorated with an inline
label: `→|true|`). Token offsets are exact character offsets within the
stripped line; the graph builder relies on them to decide adjacency.

`⚡` and `🔄` are node symbols inside brackets and connectors outside them.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any

from glyph.core.errors import GlyphSyntaxError
from glyph.core.program import FlowKind, NodeKind, ValueType
from glyph.core.utils import parse_numeral

logger = logging.getLogger(__name__)

NODE_SYMBOLS: dict[str, NodeKind] = {
    "○": NodeKind.DATA,
    "□": NodeKind.TEXT,
    "◇": NodeKind.BOOL,
    "△": NodeKind.LIST,
    "▷": NodeKind.FUNCTION,
    "⤶": NodeKind.OUTPUT,
    "⚡": NodeKind.ERROR,
    "🔄": NodeKind.ASYNC,
    "⟳": NodeKind.LOOP,
    "◯": NodeKind.CONDITION,
}

# glyph -> (flow, reverse)
CONNECTOR_GLYPHS: dict[str, tuple[FlowKind, bool]] = {
    "→": (FlowKind.DATA, False),
    "←": (FlowKind.DATA, True),
    "⚡": (FlowKind.ERROR, False),
    "🔄": (FlowKind.ASYNC, False),
    "⤴": (FlowKind.RETURN, False),
    "⤵": (FlowKind.INPUT, False),
}

VARIATION_SELECTOR = "\ufe0f"
LABEL_DELIMITER = "|"
QUOTES = "\"'"

LABEL_PATTERN = re.compile(r"^(\w+):$")
IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class NodeToken:
    """Bracketed node literal."""

    symbol: str
    body: str  # Text between the symbol and the closing bracket, stripped
    offset: int  # Offset of '['
    end: int  # Offset just past ']'
    raw: str

    @property
    def kind(self) -> NodeKind:
        return NODE_SYMBOLS[self.symbol]


@dataclass(frozen=True)
class ConnectorToken:
    """Connector glyph, optionally carrying an inline label."""

    glyph: str
    flow: FlowKind
    reverse: bool
    offset: int
    end: int
    label: str | None = None


Token = NodeToken | ConnectorToken


@dataclass(frozen=True)
class SourceLine:
    """One meaningful source line after comment/blank filtering."""

    number: int  # 1-based
    label: str  # Label in effect for this line
    indent: int  # Characters stripped from the left of the raw line
    text: str
    tokens: tuple[Token, ...] = ()
    declares_label: bool = False

    @property
    def nodes(self) -> list[NodeToken]:
        return [t for t in self.tokens if isinstance(t, NodeToken)]

    @property
    def connectors(self) -> list[ConnectorToken]:
        return [t for t in self.tokens if isinstance(t, ConnectorToken)]


def scan_source(source: str) -> list[SourceLine]:
    """Split source into tokenized lines, tracking the current label.

    Blank lines and `#` comments are skipped. A line of the form `name:`
    switches the current label and is returned with `declares_label=True`.
    """
    lines: list[SourceLine] = []
    label = "main"

    for number, raw in enumerate(source.splitlines(), start=1):
        text = raw.strip()
        if not text or text.startswith("#"):
            continue
        indent = len(raw) - len(raw.lstrip())

        label_match = LABEL_PATTERN.match(text)
        if label_match:
            label = label_match.group(1)
            lines.append(SourceLine(number, label, indent, text, declares_label=True))
            continue

        tokens = tokenize_line(text, number, indent)
        lines.append(SourceLine(number, label, indent, text, tuple(tokens)))

    return lines


def tokenize_line(line: str, line_number: int = 1, indent: int = 0) -> list[Token]:
    """Scan one stripped line into node and connector tokens.

    Args:
        line: Source line with surrounding whitespace removed
        line_number: 1-based line number for error messages
        indent: Leading characters stripped from the raw line (for columns)

    Raises:
        GlyphSyntaxError: On unterminated brackets, quotes or connector labels,
            unknown node symbols, empty node literals, or stray characters.
    """
    tokens: list[Token] = []
    i = 0
    n = len(line)

    while i < n:
        ch = line[i]
        if ch.isspace():
            i += 1
        elif ch == "[":
            token = _scan_node(line, i, line_number, indent)
            tokens.append(token)
            i = token.end
        elif ch in CONNECTOR_GLYPHS:
            token = _scan_connector(line, i, line_number, indent)
            tokens.append(token)
            i = token.end
        else:
            raise GlyphSyntaxError(
                f"Unexpected character {ch!r}",
                line_number,
                indent + i + 1,
                _fragment(line, i),
            )

    logger.debug(
        f"Line {line_number}: {sum(isinstance(t, NodeToken) for t in tokens)} node(s), "
        f"{sum(isinstance(t, ConnectorToken) for t in tokens)} connector(s)"
    )
    return tokens


def _fragment(line: str, start: int, width: int = 24) -> str:
    closing = line.find("]", start)
    stop = closing + 1 if closing != -1 else len(line)
    return line[start : min(stop, start + width)]


def _scan_node(line: str, start: int, line_number: int, indent: int) -> NodeToken:
    n = len(line)
    i = start + 1
    if i >= n:
        raise GlyphSyntaxError("Unterminated node literal", line_number, indent + start + 1, "[")

    symbol = line[i]
    if symbol not in NODE_SYMBOLS:
        raise GlyphSyntaxError(
            f"Unknown node symbol {symbol!r}",
            line_number,
            indent + i + 1,
            _fragment(line, start),
        )
    i += 1
    if i < n and line[i] == VARIATION_SELECTOR:
        i += 1

    body_start = i
    quote: str | None = None
    while i < n:
        c = line[i]
        if quote:
            if c == quote:
                quote = None
        elif c in QUOTES:
            quote = c
        elif c == "]":
            break
        i += 1

    if i >= n:
        message = "Unterminated string literal" if quote else "Unterminated node literal"
        raise GlyphSyntaxError(message, line_number, indent + start + 1, line[start:])

    body = line[body_start:i].strip()
    if not body:
        raise GlyphSyntaxError(
            "Node literal has no value", line_number, indent + start + 1, line[start : i + 1]
        )
    return NodeToken(symbol=symbol, body=body, offset=start, end=i + 1, raw=line[start : i + 1])


def _scan_connector(line: str, start: int, line_number: int, indent: int) -> ConnectorToken:
    n = len(line)
    glyph = line[start]
    flow, reverse = CONNECTOR_GLYPHS[glyph]
    i = start + 1
    if i < n and line[i] == VARIATION_SELECTOR:
        i += 1

    label = None
    if i < n and line[i] == LABEL_DELIMITER:
        closing = line.find(LABEL_DELIMITER, i + 1)
        if closing == -1:
            raise GlyphSyntaxError(
                "Unterminated connector label", line_number, indent + i + 1, line[start:]
            )
        label = line[i + 1 : closing].strip()
        i = closing + 1

    return ConnectorToken(glyph=glyph, flow=flow, reverse=reverse, offset=start, end=i, label=label)


# --- Literal decoding ---


def decode_literal(
    token: NodeToken, line_number: int = 1, column: int = 1
) -> tuple[Any, ValueType | None]:
    """Decode a node token's body into (value, declared_type).

    Raises:
        GlyphSyntaxError: On unknown type annotations, malformed strings,
            out-of-range numerals, or function nodes whose value is not an
            operation name.
    """
    text, declared_type = _split_annotation(token, line_number, column)
    kind = token.kind

    if kind == NodeKind.LIST:
        items = _split_list(text, token, line_number, column)
        return [_decode_scalar(item, token, line_number, column) for item in items], declared_type

    if kind == NodeKind.FUNCTION:
        if not IDENTIFIER_PATTERN.match(text):
            raise GlyphSyntaxError(
                "Function node requires an operation name", line_number, column, token.raw
            )
        return text, declared_type

    return _decode_scalar(text, token, line_number, column), declared_type


def _split_annotation(
    token: NodeToken, line_number: int, column: int
) -> tuple[str, ValueType | None]:
    body = token.body
    colon = -1
    quote: str | None = None
    for index, c in enumerate(body):
        if quote:
            if c == quote:
                quote = None
        elif c in QUOTES:
            quote = c
        elif c == ":":
            colon = index

    if colon == -1:
        return body, None

    value_text = body[:colon].strip()
    type_name = body[colon + 1 :].strip()
    if not value_text:
        raise GlyphSyntaxError("Node literal has no value", line_number, column, token.raw)
    try:
        return value_text, ValueType(type_name)
    except ValueError:
        known = ", ".join(t.value for t in ValueType)
        raise GlyphSyntaxError(
            f"Unknown type annotation {type_name!r} (expected one of: {known})",
            line_number,
            column,
            token.raw,
        ) from None


def _split_list(text: str, token: NodeToken, line_number: int, column: int) -> list[str]:
    items: list[str] = []
    current: list[str] = []
    quote: str | None = None
    for c in text:
        if quote:
            if c == quote:
                quote = None
        elif c in QUOTES:
            quote = c
        elif c == ",":
            items.append("".join(current).strip())
            current = []
            continue
        current.append(c)
    items.append("".join(current).strip())

    if any(not item for item in items):
        raise GlyphSyntaxError("Empty list item", line_number, column, token.raw)
    return items


def _decode_scalar(text: str, token: NodeToken, line_number: int, column: int) -> Any:
    if text[0] in QUOTES:
        if len(text) < 2 or text[-1] != text[0]:
            raise GlyphSyntaxError("Malformed string literal", line_number, column, token.raw)
        return text[1:-1]
    if text == "true":
        return True
    if text == "false":
        return False
    try:
        number = parse_numeral(text)
    except OverflowError:
        raise GlyphSyntaxError(
            "Numeric literal out of range", line_number, column, _shorten(token.raw)
        ) from None
    if number is not None:
        return number
    return text  # Bare identifier


def _shorten(raw: str, limit: int = 40) -> str:
    return raw if len(raw) <= limit else raw[: limit - 3] + "..."
