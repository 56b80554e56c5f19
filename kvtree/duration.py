"""
Duration text grammar for datetime.timedelta leaves.

Durations are written in compact compound form ('1h0m0s', '1.5s', '300ms',
'-2m3s') and parsed with the matching grammar: an optional sign followed by
one or more <number><unit> components, where the number may carry a
fraction and unit is one of ns, us, µs, ms, s, m, h. The bare string '0' is
the only unit-less value accepted.

timedelta stores microseconds, so nanosecond components are truncated toward
zero. MAX_DURATION bounds the timedeltas whose text parses back.
"""

from __future__ import annotations

import re
from datetime import timedelta

NANOSECOND = 1
MICROSECOND = 1_000 * NANOSECOND
MILLISECOND = 1_000 * MICROSECOND
SECOND = 1_000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE

UNITS: dict[str, int] = {
    'ns': NANOSECOND,
    'us': MICROSECOND,
    'µs': MICROSECOND,  # U+00B5 micro sign
    'μs': MICROSECOND,  # U+03BC greek mu
    'ms': MILLISECOND,
    's': SECOND,
    'm': MINUTE,
    'h': HOUR,
}

# Largest magnitude representable as signed 64-bit nanoseconds
MAX_NANOSECONDS = (1 << 63) - 1
MAX_DURATION = timedelta(microseconds=MAX_NANOSECONDS // MICROSECOND)

_COMPONENT = re.compile(r'([0-9]*)(?:\.([0-9]*))?([^0-9.]+)')


class DurationSyntaxError(ValueError):
    """Raised for strings outside the duration grammar."""


def parse_nanoseconds(text: str) -> int:
    """
    Parse a duration string into signed nanoseconds.

    Args:
        text: Duration such as '10s', '1h30m' or '-0.5ms'

    Returns:
        Total nanoseconds

    Raises:
        DurationSyntaxError: If text is not a valid duration
    """
    rest = text
    negative = False
    if rest[:1] in ('-', '+'):
        negative = rest[0] == '-'
        rest = rest[1:]

    if rest == '0':
        return 0
    if not rest:
        raise DurationSyntaxError(f'invalid duration {text!r}')

    total = 0
    position = 0
    while position < len(rest):
        match = _COMPONENT.match(rest, position)
        if match is None:
            raise DurationSyntaxError(f'invalid duration {text!r}')

        whole, fraction, unit_name = match.groups()
        if not whole and not fraction:
            raise DurationSyntaxError(f'invalid duration {text!r}')

        unit = UNITS.get(unit_name)
        if unit is None:
            raise DurationSyntaxError(f'unknown unit {unit_name!r} in duration {text!r}')

        total += int(whole or '0') * unit
        if fraction:
            total += int(fraction) * unit // 10 ** len(fraction)

        if total > MAX_NANOSECONDS:
            raise DurationSyntaxError(f'invalid duration {text!r}: overflow')
        position = match.end()

    return -total if negative else total


def parse_duration(text: str) -> timedelta:
    """Parse a duration string into a timedelta (microsecond resolution)."""
    nanoseconds = parse_nanoseconds(text)
    magnitude = timedelta(microseconds=abs(nanoseconds) // MICROSECOND)
    return -magnitude if nanoseconds < 0 else magnitude


def _format_fraction(value: int, precision: int) -> str:
    whole, fraction = divmod(value, 10**precision)
    digits = f'{fraction:0{precision}d}'.rstrip('0')
    return f'{whole}.{digits}' if digits else str(whole)


def format_nanoseconds(nanoseconds: int) -> str:
    """Format signed nanoseconds in compact form, largest unit first."""
    sign = '-' if nanoseconds < 0 else ''
    magnitude = abs(nanoseconds)

    if magnitude == 0:
        return '0s'
    if magnitude < MICROSECOND:
        return f'{sign}{magnitude}ns'
    if magnitude < MILLISECOND:
        return f'{sign}{_format_fraction(magnitude, 3)}µs'
    if magnitude < SECOND:
        return f'{sign}{_format_fraction(magnitude, 6)}ms'

    seconds_part = _format_fraction(magnitude % MINUTE, 9) + 's'
    minutes = magnitude // MINUTE
    if not minutes:
        return f'{sign}{seconds_part}'

    hours, minutes = divmod(minutes, 60)
    if not hours:
        return f'{sign}{minutes}m{seconds_part}'
    return f'{sign}{hours}h{minutes}m{seconds_part}'


def format_duration(value: timedelta) -> str:
    """Format a timedelta as a duration string ('1h0m0s', '1.5s', '300ms')."""
    microseconds = (value.days * 86_400 + value.seconds) * 1_000_000 + value.microseconds
    return format_nanoseconds(microseconds * MICROSECOND)
