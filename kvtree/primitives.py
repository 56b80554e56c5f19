"""
Primitive codec: one leaf string <-> one scalar.

Grammar per kind:
    int       [+-]?digits, base 10, range-checked against IntWidth when given
    uint      +?digits (an IntWidth with signed=False)
    float     decimal or exponent literal, inf/nan spellings
    bool      exactly 'true' or 'false'
    str       verbatim
    duration  compound duration grammar (see kvtree.duration)
    enum      the member whose value formats to the leaf string
"""

from __future__ import annotations

import enum
import math
import re
from datetime import timedelta
from typing import Any, Literal

from kvtree.duration import MAX_DURATION, DurationSyntaxError, format_duration, parse_duration
from kvtree.exceptions import ParseError
from kvtree.markers import FloatWidth, IntWidth

PrimitiveKind = Literal['int', 'float', 'bool', 'str', 'duration', 'enum']

_SIGNED_INT = re.compile(r'[+-]?[0-9]+')
_UNSIGNED_INT = re.compile(r'\+?[0-9]+')
_FLOAT = re.compile(
    r'[+-]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|inf(?:inity)?|nan)',
    re.IGNORECASE,
)

FLOAT32_MAX = 3.4028234663852886e38

TRUE = 'true'
FALSE = 'false'


# ==============================================================================
# Formatting (value -> leaf string)
# ==============================================================================


def format_scalar(value: Any, kind: PrimitiveKind) -> str:
    """
    Convert a scalar to its canonical leaf string.

    Raises:
        TypeError: If value doesn't belong to kind
    """
    match kind:
        case 'bool':
            if not isinstance(value, bool):
                raise TypeError(f'expected bool, got {type(value).__name__}')
            return TRUE if value else FALSE
        case 'int':
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f'expected int, got {type(value).__name__}')
            return str(int(value))
        case 'float':
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise TypeError(f'expected float, got {type(value).__name__}')
            return repr(float(value))
        case 'str':
            if not isinstance(value, str):
                raise TypeError(f'expected str, got {type(value).__name__}')
            return str(value)
        case 'duration':
            if not isinstance(value, timedelta):
                raise TypeError(f'expected timedelta, got {type(value).__name__}')
            if abs(value) > MAX_DURATION:
                raise TypeError(f'duration {value} is outside the 64-bit nanosecond range')
            return format_duration(value)
        case 'enum':
            if not isinstance(value, enum.Enum):
                raise TypeError(f'expected Enum member, got {type(value).__name__}')
            return format_scalar(value.value, kind_of_value(value.value))


def kind_of_value(value: Any) -> PrimitiveKind:
    """Primitive kind of a runtime scalar (used for enum member values)."""
    if isinstance(value, enum.Enum):
        return 'enum'
    if isinstance(value, bool):
        return 'bool'
    if isinstance(value, int):
        return 'int'
    if isinstance(value, float):
        return 'float'
    if isinstance(value, timedelta):
        return 'duration'
    if isinstance(value, str):
        return 'str'
    raise TypeError(f'{type(value).__name__} is not a primitive')


# ==============================================================================
# Parsing (leaf string -> value)
# ==============================================================================


def parse_int(raw: str, path: str, width: IntWidth | None = None) -> int:
    signed = width is None or width.signed
    pattern = _SIGNED_INT if signed else _UNSIGNED_INT
    target = _int_target_name(width)

    if not pattern.fullmatch(raw):
        raise ParseError(path, raw, target, 'invalid syntax')

    try:
        value = int(raw)
    except ValueError as e:  # exceeds sys.get_int_max_str_digits()
        raise ParseError(path, raw, target, str(e)) from e
    if width is not None:
        low, high = width.bounds
        if not low <= value <= high:
            raise ParseError(path, raw, target, f'value out of range [{low}, {high}]')
    return value


def parse_float(raw: str, path: str, width: FloatWidth | None = None) -> float:
    target = f'float{width.bits}' if width else 'float'
    if not _FLOAT.fullmatch(raw):
        raise ParseError(path, raw, target, 'invalid syntax')

    value = float(raw)
    if width is not None and width.bits == 32 and math.isfinite(value) and abs(value) > FLOAT32_MAX:
        raise ParseError(path, raw, target, 'value out of range')
    return value


def parse_bool(raw: str, path: str) -> bool:
    if raw == TRUE:
        return True
    if raw == FALSE:
        return False
    raise ParseError(path, raw, 'bool', "expected 'true' or 'false'")


def parse_timedelta(raw: str, path: str) -> timedelta:
    try:
        return parse_duration(raw)
    except DurationSyntaxError as e:
        raise ParseError(path, raw, 'duration', str(e)) from e


def parse_enum(raw: str, path: str, enum_type: type[enum.Enum]) -> enum.Enum:
    for member in enum_type:
        if format_scalar(member.value, kind_of_value(member.value)) == raw:
            return member
    raise ParseError(path, raw, enum_type.__name__, 'no member with this value')


def _int_target_name(width: IntWidth | None) -> str:
    if width is None:
        return 'int'
    return f'{"int" if width.signed else "uint"}{width.bits}'
