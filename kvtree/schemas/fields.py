"""
Per-field mapping rules derived from struct field annotations.
"""

from __future__ import annotations

from kvtree.base_model import StrictModel


class FieldSpec(StrictModel):
    """
    How one struct field maps onto the key tree.

    Derived once per field by kvtree.tags.parse_tag. Skip fields are excluded
    from both encode and decode; omit_empty only relaxes decode (a missing
    node yields the field's zero value instead of KeyNotFoundError).
    """

    logical_name: str  # Attribute name on the struct
    path_segment: str  # Key segment under the struct's path
    omit_empty: bool = False
    skip: bool = False
