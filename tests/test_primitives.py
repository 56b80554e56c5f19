"""
Tests for the primitive leaf grammar (kvtree.primitives).
"""

from __future__ import annotations

import enum
import math
from datetime import timedelta

import pytest

from kvtree.exceptions import ParseError
from kvtree.markers import FloatWidth, IntWidth
from kvtree.primitives import (
    format_scalar,
    parse_bool,
    parse_enum,
    parse_float,
    parse_int,
    parse_timedelta,
)


class Color(enum.Enum):
    RED = 'red'
    GREEN = 'green'


class Level(enum.IntEnum):
    LOW = 1
    HIGH = 10


# ==============================================================================
# Formatting
# ==============================================================================


@pytest.mark.parametrize(
    ('value', 'kind', 'expected'),
    [
        (42, 'int', '42'),
        (-7, 'int', '-7'),
        (True, 'bool', 'true'),
        (False, 'bool', 'false'),
        (1.5, 'float', '1.5'),
        (3, 'float', '3.0'),
        ('hello world', 'str', 'hello world'),
        ('', 'str', ''),
        (timedelta(milliseconds=300), 'duration', '300ms'),
        (Color.GREEN, 'enum', 'green'),
        (Level.HIGH, 'enum', '10'),
    ],
)
def test_format_scalar(value: object, kind: str, expected: str) -> None:
    assert format_scalar(value, kind) == expected


@pytest.mark.parametrize(
    ('value', 'kind'),
    [
        ('42', 'int'),
        (True, 'int'),
        (1, 'bool'),
        (42, 'str'),
        ('1s', 'duration'),
        ('red', 'enum'),
    ],
)
def test_format_scalar_rejects_mismatched_kind(value: object, kind: str) -> None:
    with pytest.raises(TypeError):
        format_scalar(value, kind)


# ==============================================================================
# Integers
# ==============================================================================


@pytest.mark.parametrize(('raw', 'expected'), [('0', 0), ('42', 42), ('-17', -17), ('+5', 5), ('007', 7)])
def test_parse_int(raw: str, expected: int) -> None:
    assert parse_int(raw, '/n') == expected


@pytest.mark.parametrize('raw', ['', 'abc', '1.5', '0x10', ' 1', '1_000', '--1'])
def test_parse_int_rejects_invalid_syntax(raw: str) -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_int(raw, '/n')
    assert exc_info.value.path == '/n'
    assert exc_info.value.raw == raw


def test_parse_int_checks_signed_width() -> None:
    assert parse_int('127', '/n', IntWidth(8)) == 127
    assert parse_int('-128', '/n', IntWidth(8)) == -128
    with pytest.raises(ParseError, match='int8'):
        parse_int('128', '/n', IntWidth(8))


def test_parse_int_checks_unsigned_width() -> None:
    assert parse_int('65535', '/n', IntWidth(16, signed=False)) == 65535
    with pytest.raises(ParseError, match='uint16'):
        parse_int('65536', '/n', IntWidth(16, signed=False))
    with pytest.raises(ParseError, match='invalid syntax'):
        parse_int('-1', '/n', IntWidth(16, signed=False))


# ==============================================================================
# Floats, bools, durations, enums
# ==============================================================================


@pytest.mark.parametrize(('raw', 'expected'), [('1.5', 1.5), ('-2', -2.0), ('1e3', 1000.0), ('.5', 0.5), ('Inf', math.inf)])
def test_parse_float(raw: str, expected: float) -> None:
    assert parse_float(raw, '/f') == expected


def test_parse_float_nan() -> None:
    assert math.isnan(parse_float('NaN', '/f'))


def test_parse_float_rejects_garbage() -> None:
    with pytest.raises(ParseError):
        parse_float('one point five', '/f')


def test_parse_float32_range() -> None:
    assert parse_float('3.4e38', '/f', FloatWidth(32)) == 3.4e38
    with pytest.raises(ParseError, match='out of range'):
        parse_float('1e39', '/f', FloatWidth(32))
    assert parse_float('1e39', '/f', FloatWidth(64)) == 1e39


def test_parse_bool_is_exact() -> None:
    assert parse_bool('true', '/b') is True
    assert parse_bool('false', '/b') is False
    for raw in ('True', '1', 'yes', ''):
        with pytest.raises(ParseError):
            parse_bool(raw, '/b')


def test_parse_timedelta_wraps_syntax_errors() -> None:
    assert parse_timedelta('1m30s', '/d') == timedelta(seconds=90)
    with pytest.raises(ParseError, match='duration'):
        parse_timedelta('ten seconds', '/d')


def test_parse_enum_matches_formatted_value() -> None:
    assert parse_enum('green', '/c', Color) is Color.GREEN
    assert parse_enum('10', '/c', Level) is Level.HIGH
    with pytest.raises(ParseError, match='Color'):
        parse_enum('blue', '/c', Color)
