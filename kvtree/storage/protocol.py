"""
Store client protocol for the hierarchical key tree.

Defines the interface the encoder and decoder consume (in-memory, etcd v2).
Clients must be safe for concurrent use by simultaneous encode/decode calls;
the engine adds no locking of its own.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions


@runtime_checkable
class KeysAPI(Protocol):
    """Protocol for key tree store clients."""

    async def get(self, path: str, options: GetOptions) -> Node:
        """
        Read the node at a key.

        Args:
            path: Key to read
            options: Listing options (recursive, sorted, quorum)

        Returns:
            The node; a directory lists its direct children (or the whole
            subtree when options.recursive is set)

        Raises:
            NodeNotFoundError: If no node exists at path
            StoreError: If the request fails
        """
        ...

    async def set(self, path: str, value: str, options: SetOptions) -> Node:
        """
        Write a leaf value (or create a directory when options.dir is set).

        Missing parent directories are created.

        Args:
            path: Key to write
            value: Leaf string (ignored for directories)
            options: Write options (ttl, compare-and-swap, dir)

        Returns:
            The node as written

        Raises:
            StoreError: If the request fails or a precondition doesn't hold
        """
        ...

    async def delete(self, path: str, options: DeleteOptions) -> None:
        """
        Delete a key.

        Args:
            path: Key to delete
            options: recursive/dir flags and compare-and-delete value

        Raises:
            NodeNotFoundError: If no node exists at path
            StoreError: If the request fails
        """
        ...
