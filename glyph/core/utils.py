"""Shared value helpers for the tokenizer and the builtin library.

Glyph has a single number type at the language level: whole-valued floats
are shown and compared as integers (`100 / 2 / 5` is `10`, not `10.0`).
Numbers are bounded by the finite double range; anything beyond it is an
overflow, never `inf`.
"""

from __future__ import annotations

import math
import re
import sys
from typing import Any

NUMERAL_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")

# First numeral embedded in free text ("Age: 42 years" -> "42")
EMBEDDED_NUMERAL_PATTERN = re.compile(r"[+-]?(?:\d+(?:\.\d+)?|\.\d+)")

MAX_MAGNITUDE = sys.float_info.max


def parse_numeral(text: str) -> int | float | None:
    """Parse a complete numeral, or return None if text is not one.

    Raises:
        OverflowError: The numeral lies outside the finite double range.
    """
    candidate = text.strip()
    if not NUMERAL_PATTERN.match(candidate):
        return None
    try:
        if any(ch in candidate for ch in ".eE"):
            value = float(candidate)
        else:
            value = int(candidate)
    except ValueError:
        # int() refuses very long digit strings
        raise OverflowError(f"Numeral out of range: {candidate[:20]}...") from None
    return normalize_number(check_range(value))


def check_range(value: Any) -> Any:
    """Return value unchanged, or raise OverflowError for an out-of-range number."""
    if not is_number(value):
        return value
    if isinstance(value, float) and not math.isfinite(value):
        raise OverflowError(f"Number out of range: {value}")
    if abs(value) > MAX_MAGNITUDE:
        raise OverflowError(f"Number out of range: magnitude exceeds {MAX_MAGNITUDE:g}")
    return value


def normalize_number(value: int | float) -> int | float:
    """Collapse whole-valued finite floats to int."""
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return value


def is_number(value: Any) -> bool:
    """True for int/float values; booleans are not numbers in Glyph."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def format_value(value: Any) -> str:
    """Render a runtime value as Glyph text."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(normalize_number(value))
    if isinstance(value, list):
        return ",".join(format_value(item) for item in value)
    return str(value)
