"""
Tests for tag parsing and lookup (kvtree.tags).
"""

from __future__ import annotations

import pytest

from kvtree.markers import IntWidth, Tag
from kvtree.schemas.fields import FieldSpec
from kvtree.tags import find_tag, parse_tag


@pytest.mark.parametrize(
    ('raw', 'expected'),
    [
        (None, FieldSpec(logical_name='port', path_segment='port')),
        ('', FieldSpec(logical_name='port', path_segment='port')),
        ('listen_port', FieldSpec(logical_name='port', path_segment='listen_port')),
        ('listen_port,omitempty', FieldSpec(logical_name='port', path_segment='listen_port', omit_empty=True)),
        (',omitempty', FieldSpec(logical_name='port', path_segment='port', omit_empty=True)),
        ('-', FieldSpec(logical_name='port', path_segment='port', skip=True)),
        ('p,unknown', FieldSpec(logical_name='port', path_segment='p')),
        ('p,unknown,omitempty', FieldSpec(logical_name='port', path_segment='p')),
    ],
)
def test_parse_tag(raw: str | None, expected: FieldSpec) -> None:
    assert parse_tag(raw, 'port') == expected


def test_dash_with_options_is_a_segment_name() -> None:
    spec = parse_tag('-,omitempty', 'port')
    assert spec.path_segment == '-'
    assert spec.omit_empty
    assert not spec.skip


def test_find_tag_prefers_annotation_marker() -> None:
    assert find_tag([IntWidth(8), Tag('a')], {'kvtree': 'b'}) == 'a'


def test_find_tag_falls_back_to_field_metadata() -> None:
    assert find_tag([], {'kvtree': 'b,omitempty'}) == 'b,omitempty'
    assert find_tag([], {'other': 'x'}) is None
    assert find_tag([]) is None
