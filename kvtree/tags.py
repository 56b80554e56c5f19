"""
Tag resolution: raw field annotation string -> FieldSpec.

Syntax:
    'name'            rename the path segment
    'name,omitempty'  rename and tolerate a missing node on decode
    ',omitempty'      keep the attribute name, tolerate a missing node
    '-'               skip the field in both directions

Unknown tokens are ignored so newer annotations stay readable by older code.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from kvtree.markers import METADATA_KEY, Tag
from kvtree.schemas.fields import FieldSpec

SKIP = '-'
OMIT_EMPTY = 'omitempty'


def parse_tag(raw: str | None, field_name: str) -> FieldSpec:
    """
    Parse a raw annotation string for one struct field.

    Args:
        raw: Annotation string, or None when the field carries none
        field_name: Declared attribute name (default path segment)

    Returns:
        FieldSpec for the field
    """
    if raw == SKIP:
        return FieldSpec(logical_name=field_name, path_segment=field_name, skip=True)

    params = (raw or '').split(',')
    segment = params[0] or field_name
    omit_empty = len(params) > 1 and params[1] == OMIT_EMPTY

    return FieldSpec(logical_name=field_name, path_segment=segment, omit_empty=omit_empty)


def find_tag(annotation_metadata: Iterable[Any], field_metadata: Mapping[str, Any] | None = None) -> str | None:
    """
    Locate the raw tag of a field.

    A Tag marker inside Annotated wins over dataclass/attrs field metadata.

    Args:
        annotation_metadata: Extra arguments of the field's Annotated type
        field_metadata: dataclasses.Field.metadata or attrs.Attribute.metadata

    Returns:
        Raw tag string, or None when the field is untagged
    """
    for item in annotation_metadata:
        if isinstance(item, Tag):
            return item.raw

    if field_metadata:
        raw = field_metadata.get(METADATA_KEY)
        if raw is not None:
            return str(raw)

    return None
