"""
Path helpers for the hierarchical key namespace.

Keys are '/'-delimited strings. The last segment of a key names a struct
field, a mapping key or a sequence index at that level.
"""

from __future__ import annotations

SEPARATOR = '/'


def join(parent: str, segment: str) -> str:
    """Append one segment to a parent key."""
    return f'{parent.rstrip(SEPARATOR)}{SEPARATOR}{segment}'


def last_segment(key: str) -> str:
    """Return the local name of a key ('/a/b/c' -> 'c')."""
    return key.rstrip(SEPARATOR).rsplit(SEPARATOR, 1)[-1]


def normalize(key: str) -> str:
    """Collapse duplicate separators and force a single leading '/'."""
    parts = [part for part in key.split(SEPARATOR) if part]
    return SEPARATOR + SEPARATOR.join(parts)
