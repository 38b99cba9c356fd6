"""Builtin operation library.

Operations form a closed enum. Every operation has an arity spec and a
handler; both tables must cover the enum exactly, which is checked at import
time.

Families:
- commutative (add, multiply): n-ary fold with a unit
- sequential (subtract, divide): left-associative fold from the first input
- unary: exactly one input, coercion failures are errors
- variadic (concat): joins every input as text, in order
- sink (print): emits its first input and passes it through
"""

from __future__ import annotations

import functools
import logging
import operator
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from glyph.core.errors import (
    ArityError,
    DivisionByZeroError,
    NumericOverflowError,
    TypeCoercionError,
    UnknownOperationError,
)
from glyph.core.utils import (
    EMBEDDED_NUMERAL_PATTERN,
    check_range,
    format_value,
    is_number,
    normalize_number,
    parse_numeral,
)

logger = logging.getLogger(__name__)

MIN_AGE = 0
MAX_AGE = 150


class Operation(str, Enum):
    """Builtin operations callable from `[▷ name]` nodes"""

    ADD = "add"
    MULTIPLY = "multiply"
    SUBTRACT = "subtract"
    DIVIDE = "divide"
    TO_UPPER = "to_upper"
    TO_LOWER = "to_lower"
    LENGTH = "length"
    TO_NUMBER = "to_number"
    TO_STRING = "to_string"
    PARSE_TEXT_TO_NUMBER = "parse_text_to_number"
    CLEAN_MIXED_INPUT = "clean_mixed_input"
    IS_VALID_AGE = "is_valid_age"
    CONCAT = "concat"
    PRINT = "print"


class OperationFamily(str, Enum):
    """Arity and reduction rule shared by a group of operations"""

    COMMUTATIVE = "commutative"
    SEQUENTIAL = "sequential"
    UNARY = "unary"
    VARIADIC = "variadic"
    SINK = "sink"


@dataclass(frozen=True)
class OperationSpec:
    family: OperationFamily
    min_arity: int
    max_arity: int | None = None  # None = unbounded

    def accepts(self, count: int) -> bool:
        if count < self.min_arity:
            return False
        return self.max_arity is None or count <= self.max_arity


_COMMUTATIVE = OperationSpec(OperationFamily.COMMUTATIVE, 2)
_SEQUENTIAL = OperationSpec(OperationFamily.SEQUENTIAL, 2)
_UNARY = OperationSpec(OperationFamily.UNARY, 1, 1)

OPERATION_SPECS: dict[Operation, OperationSpec] = {
    Operation.ADD: _COMMUTATIVE,
    Operation.MULTIPLY: _COMMUTATIVE,
    Operation.SUBTRACT: _SEQUENTIAL,
    Operation.DIVIDE: _SEQUENTIAL,
    Operation.TO_UPPER: _UNARY,
    Operation.TO_LOWER: _UNARY,
    Operation.LENGTH: _UNARY,
    Operation.TO_NUMBER: _UNARY,
    Operation.TO_STRING: _UNARY,
    Operation.PARSE_TEXT_TO_NUMBER: _UNARY,
    Operation.CLEAN_MIXED_INPUT: _UNARY,
    Operation.IS_VALID_AGE: _UNARY,
    Operation.CONCAT: OperationSpec(OperationFamily.VARIADIC, 1),
    Operation.PRINT: OperationSpec(OperationFamily.SINK, 1),
}

Emit = Callable[[Any], None]
Handler = Callable[[list[Any], Emit], Any]


# --- Coercion helpers ---


def _require_numbers(inputs: list[Any], op: Operation) -> list[int | float]:
    for position, value in enumerate(inputs, start=1):
        if not is_number(value):
            raise TypeCoercionError(
                f"{op.value} requires numeric inputs; input {position} is "
                f"{format_value(value)!r} ({type(value).__name__})"
            )
    return inputs


def _coerce_number(value: Any, op: Operation) -> int | float:
    if is_number(value):
        return value
    if isinstance(value, str):
        parsed = parse_numeral(value)
        if parsed is not None:
            return parsed
    raise TypeCoercionError(f'{op.value}: cannot convert "{format_value(value)}" to number')


# --- Handlers ---


def _add(inputs: list[Any], emit: Emit) -> Any:
    numbers = _require_numbers(inputs, Operation.ADD)
    return normalize_number(functools.reduce(operator.add, numbers, 0))


def _multiply(inputs: list[Any], emit: Emit) -> Any:
    numbers = _require_numbers(inputs, Operation.MULTIPLY)
    return normalize_number(functools.reduce(operator.mul, numbers, 1))


def _subtract(inputs: list[Any], emit: Emit) -> Any:
    first, *rest = _require_numbers(inputs, Operation.SUBTRACT)
    return normalize_number(functools.reduce(operator.sub, rest, first))


def _divide(inputs: list[Any], emit: Emit) -> Any:
    result, *divisors = _require_numbers(inputs, Operation.DIVIDE)
    for position, divisor in enumerate(divisors, start=2):
        if divisor == 0:
            raise DivisionByZeroError(f"Division by zero: input {position} of divide is zero")
        result = result / divisor
    return normalize_number(result)


def _to_upper(inputs: list[Any], emit: Emit) -> Any:
    return format_value(inputs[0]).upper()


def _to_lower(inputs: list[Any], emit: Emit) -> Any:
    return format_value(inputs[0]).lower()


def _length(inputs: list[Any], emit: Emit) -> Any:
    value = inputs[0]
    if isinstance(value, list):
        return len(value)
    return len(format_value(value))


def _to_number(inputs: list[Any], emit: Emit) -> Any:
    return _coerce_number(inputs[0], Operation.TO_NUMBER)


def _to_string(inputs: list[Any], emit: Emit) -> Any:
    return format_value(inputs[0])


def _parse_text_to_number(inputs: list[Any], emit: Emit) -> Any:
    value = inputs[0]
    if is_number(value):
        return value
    text = format_value(value)
    match = EMBEDDED_NUMERAL_PATTERN.search(text)
    if not match:
        raise TypeCoercionError(f'parse_text_to_number: no number found in "{text}"')
    return parse_numeral(match.group(0))


def _clean_mixed_input(inputs: list[Any], emit: Emit) -> Any:
    value = inputs[0]
    if is_number(value):
        return value
    text = "".join(
        ch for ch in format_value(value) if ch.isspace() or unicodedata.category(ch) != "Cc"
    )
    cleaned = " ".join(text.split())
    parsed = parse_numeral(cleaned)
    return parsed if parsed is not None else cleaned


def _is_valid_age(inputs: list[Any], emit: Emit) -> Any:
    age = _coerce_number(inputs[0], Operation.IS_VALID_AGE)
    return float(age).is_integer() and MIN_AGE <= age <= MAX_AGE


def _concat(inputs: list[Any], emit: Emit) -> Any:
    return "".join(format_value(value) for value in inputs)


def _print(inputs: list[Any], emit: Emit) -> Any:
    emit(inputs[0])
    return inputs[0]


_HANDLERS: dict[Operation, Handler] = {
    Operation.ADD: _add,
    Operation.MULTIPLY: _multiply,
    Operation.SUBTRACT: _subtract,
    Operation.DIVIDE: _divide,
    Operation.TO_UPPER: _to_upper,
    Operation.TO_LOWER: _to_lower,
    Operation.LENGTH: _length,
    Operation.TO_NUMBER: _to_number,
    Operation.TO_STRING: _to_string,
    Operation.PARSE_TEXT_TO_NUMBER: _parse_text_to_number,
    Operation.CLEAN_MIXED_INPUT: _clean_mixed_input,
    Operation.IS_VALID_AGE: _is_valid_age,
    Operation.CONCAT: _concat,
    Operation.PRINT: _print,
}

_unwired = (set(Operation) ^ set(_HANDLERS)) | (set(Operation) ^ set(OPERATION_SPECS))
if _unwired:
    raise RuntimeError(f"Builtin table out of sync with Operation enum: {sorted(_unwired)}")

BUILTIN_NAMES = frozenset(op.value for op in Operation)


def resolve_operation(name: Any) -> Operation:
    """Map an operation name to its Operation, or raise UnknownOperationError."""
    try:
        return Operation(name)
    except (ValueError, TypeError):
        raise UnknownOperationError(f"Unknown function: {name}") from None


class BuiltinLibrary:
    """Dispatches function nodes to builtin handlers.

    Args:
        print_format: Format string for `print` output lines; `{value}` is the
            first input rendered as Glyph text.
    """

    def __init__(self, print_format: str = "📤 PRINT: {value}"):
        self.print_format = print_format

    def spec(self, name: str) -> OperationSpec:
        return OPERATION_SPECS[resolve_operation(name)]

    def call(self, name: Any, inputs: list[Any], emit: Callable[[str], None]) -> Any:
        """Run operation `name` on ordered inputs.

        Raises:
            UnknownOperationError: name is not a builtin
            ArityError: input count outside the operation's arity
            DivisionByZeroError, TypeCoercionError: operation-specific failures
            NumericOverflowError: an input or result outside the number range
        """
        op = resolve_operation(name)
        spec = OPERATION_SPECS[op]
        if not spec.accepts(len(inputs)):
            raise ArityError(self._arity_message(op, spec, len(inputs)))

        def emit_value(value: Any) -> None:
            emit(self.print_format.format(value=format_value(value)))

        try:
            result = check_range(_HANDLERS[op](list(inputs), emit_value))
        except OverflowError as e:
            raise NumericOverflowError(f"{op.value}: {e}") from None
        logger.debug(f"{op.value}({', '.join(map(format_value, inputs))}) = {format_value(result)}")
        return result

    @staticmethod
    def _arity_message(op: Operation, spec: OperationSpec, count: int) -> str:
        if spec.max_arity == spec.min_arity:
            expected = f"exactly {spec.min_arity}"
        elif spec.max_arity is None:
            expected = f"at least {spec.min_arity}"
        else:
            expected = f"{spec.min_arity}-{spec.max_arity}"
        plural = "input" if spec.min_arity == 1 else "inputs"
        return f"{op.value} needs {expected} {plural}, got {count}"
