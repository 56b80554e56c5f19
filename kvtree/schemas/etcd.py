"""
etcd v2 keys API payloads.

Response bodies are owned by the server, so these models accept unknown
fields. Only what the client maps onto Node is modelled.
"""

from __future__ import annotations

import pydantic

from kvtree.base_model import PermissiveModel
from kvtree.schemas.store import Node


class EtcdNode(PermissiveModel):
    """A node as serialized by etcd (the root node carries no key)."""

    key: str = '/'
    value: str | None = None
    dir: bool = False
    nodes: list[EtcdNode] = pydantic.Field(default_factory=list)
    ttl: int | None = None
    expiration: str | None = None
    modifiedIndex: int | None = None
    createdIndex: int | None = None

    def to_node(self) -> Node:
        """Convert to the store-agnostic Node."""
        if self.dir:
            return Node(key=self.key, is_dir=True, children=[child.to_node() for child in self.nodes])
        return Node(key=self.key, value=self.value or '')


class EtcdResponse(PermissiveModel):
    """Successful keys API response."""

    action: str
    node: EtcdNode
    prevNode: EtcdNode | None = None


class EtcdErrorPayload(PermissiveModel):
    """Error body returned with non-2xx responses."""

    errorCode: int
    message: str
    cause: str | None = None
    index: int | None = None
