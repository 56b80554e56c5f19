"""
Store-facing schemas: nodes and per-request options.

Node mirrors one addressed entry of the key tree. The option models are
forwarded unchanged to the store client on every request.
"""

from __future__ import annotations

import pydantic

from kvtree import paths
from kvtree.base_model import StrictModel

# ==============================================================================
# Nodes
# ==============================================================================


class Node(StrictModel):
    """
    One entry of the key tree: a leaf with a string value or a directory.

    Children are listed in the order the store returned them; their keys are
    the parent key plus one segment.
    """

    key: str
    value: str = ''
    is_dir: bool = False
    children: list[Node] = pydantic.Field(default_factory=list)

    @pydantic.model_validator(mode='after')
    def validate_children_require_dir(self) -> Node:
        """A leaf cannot carry children."""
        if self.children and not self.is_dir:
            raise ValueError(f'Leaf node {self.key} cannot have children')
        return self

    @property
    def segment(self) -> str:
        """Local name of the node (last path segment)."""
        return paths.last_segment(self.key)


# ==============================================================================
# Request Options
# ==============================================================================


class GetOptions(StrictModel):
    """Options for KeysAPI.get."""

    recursive: bool = False  # List the whole subtree, not only direct children
    sorted: bool = False  # Ask the store to sort children by key
    quorum: bool = False  # Linearizable read


class SetOptions(StrictModel):
    """Options for KeysAPI.set."""

    ttl: int | None = None  # Seconds until the key expires
    prev_value: str | None = None  # Compare-and-swap on the current value
    prev_exist: bool | None = None  # Require (True) or forbid (False) an existing key
    dir: bool = False  # Create a directory instead of a leaf

    @pydantic.field_validator('ttl')
    @classmethod
    def validate_ttl(cls, v: int | None) -> int | None:
        """TTL must be positive when set."""
        if v is not None and v <= 0:
            raise ValueError('ttl must be positive')
        return v


class DeleteOptions(StrictModel):
    """Options for KeysAPI.delete."""

    recursive: bool = False  # Delete the whole subtree
    dir: bool = False  # Allow deleting a directory
    prev_value: str | None = None  # Compare-and-delete on the current value
