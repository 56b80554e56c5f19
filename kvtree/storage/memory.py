"""
In-memory key tree store.

Implements the KeysAPI protocol over a nested dict, following etcd v2 keys
semantics closely enough to stand in for a real server: parents are created
on write, directories and leaves don't overwrite each other, deletes of
directories need the dir/recursive flags, and TTLs expire keys lazily.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Self

from kvtree import paths
from kvtree.exceptions import NodeNotFoundError, StoreError
from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions

# etcd v2 error codes
COMPARE_FAILED = 101
NOT_A_FILE = 102
NOT_A_DIRECTORY = 104
KEY_EXISTS = 105
ROOT_READ_ONLY = 107
DIRECTORY_NOT_EMPTY = 108


@dataclass
class _Entry:
    value: str = ''
    children: dict[str, _Entry] | None = None  # None for leaves
    expires_at: float | None = None

    @property
    def is_dir(self) -> bool:
        return self.children is not None


class InMemoryStore:
    """Thread-safe in-memory KeysAPI implementation."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Initialize an empty store.

        Args:
            clock: Monotonic clock used for TTL expiry
        """
        self.clock = clock
        self._root = _Entry(children={})
        self._lock = threading.Lock()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """No-op: the store holds no connections."""

    async def get(self, path: str, options: GetOptions) -> Node:
        key = paths.normalize(path)
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                raise NodeNotFoundError(key)
            return self._to_node(key, entry, recursive=options.recursive, sort=options.sorted)

    async def set(self, path: str, value: str, options: SetOptions) -> Node:
        key = paths.normalize(path)
        segments = _segments(key)
        if not segments:
            raise StoreError(key, 'Root is read only', ROOT_READ_ONLY)

        with self._lock:
            parent = self._ensure_parent(key, segments[:-1])
            name = segments[-1]
            existing = self._live_child(parent, name)

            if options.prev_exist is True and existing is None:
                raise NodeNotFoundError(key)
            if options.prev_exist is False and existing is not None:
                raise StoreError(key, 'Key already exists', KEY_EXISTS)
            if options.prev_value is not None:
                if existing is None:
                    raise NodeNotFoundError(key)
                if existing.is_dir or existing.value != options.prev_value:
                    raise StoreError(key, 'Compare failed', COMPARE_FAILED)
            if existing is not None and (existing.is_dir or options.dir):
                raise StoreError(key, 'Not a file', NOT_A_FILE)

            expires_at = self.clock() + options.ttl if options.ttl else None
            if options.dir:
                entry = _Entry(children={}, expires_at=expires_at)
            else:
                entry = _Entry(value=value, expires_at=expires_at)
            parent.children[name] = entry
            return self._to_node(key, entry, recursive=False, sort=False)

    async def delete(self, path: str, options: DeleteOptions) -> None:
        key = paths.normalize(path)
        segments = _segments(key)
        if not segments:
            raise StoreError(key, 'Root is read only', ROOT_READ_ONLY)

        with self._lock:
            parent = self._lookup(paths.SEPARATOR + paths.SEPARATOR.join(segments[:-1]))
            entry = self._live_child(parent, segments[-1]) if parent is not None and parent.is_dir else None
            if entry is None:
                raise NodeNotFoundError(key)

            if options.prev_value is not None and (entry.is_dir or entry.value != options.prev_value):
                raise StoreError(key, 'Compare failed', COMPARE_FAILED)
            if entry.is_dir:
                if not (options.dir or options.recursive):
                    raise StoreError(key, 'Not a file', NOT_A_FILE)
                if entry.children and not options.recursive:
                    raise StoreError(key, 'Directory not empty', DIRECTORY_NOT_EMPTY)

            del parent.children[segments[-1]]

    def snapshot(self) -> dict[str, str]:
        """Every live leaf as {key: value}, sorted by key."""
        with self._lock:
            leaves: dict[str, str] = {}
            self._collect(paths.SEPARATOR, self._root, leaves)
            return dict(sorted(leaves.items()))

    # --------------------------------------------------------------------------
    # Internals (callers hold the lock)
    # --------------------------------------------------------------------------

    def _expired(self, entry: _Entry) -> bool:
        return entry.expires_at is not None and entry.expires_at <= self.clock()

    def _live_child(self, parent: _Entry, name: str) -> _Entry | None:
        child = parent.children.get(name)
        if child is not None and self._expired(child):
            del parent.children[name]
            return None
        return child

    def _lookup(self, key: str) -> _Entry | None:
        entry = self._root
        for segment in _segments(key):
            if not entry.is_dir:
                return None
            entry = self._live_child(entry, segment)
            if entry is None:
                return None
        return entry

    def _ensure_parent(self, key: str, segments: list[str]) -> _Entry:
        entry = self._root
        for segment in segments:
            child = self._live_child(entry, segment)
            if child is None:
                child = _Entry(children={})
                entry.children[segment] = child
            elif not child.is_dir:
                raise StoreError(key, 'Not a directory', NOT_A_DIRECTORY)
            entry = child
        return entry

    def _to_node(self, key: str, entry: _Entry, recursive: bool, sort: bool) -> Node:
        if not entry.is_dir:
            return Node(key=key, value=entry.value)

        names = [name for name in list(entry.children) if self._live_child(entry, name) is not None]
        if sort:
            names.sort()

        children = []
        for name in names:
            child = entry.children[name]
            child_key = paths.join(key, name)
            if child.is_dir and not recursive:
                children.append(Node(key=child_key, is_dir=True))  # listed, not expanded
            else:
                children.append(self._to_node(child_key, child, recursive, sort))
        return Node(key=key, is_dir=True, children=children)

    def _collect(self, key: str, entry: _Entry, leaves: dict[str, str]) -> None:
        for name in list(entry.children):
            child = self._live_child(entry, name)
            if child is None:
                continue
            child_key = paths.join(key, name)
            if child.is_dir:
                self._collect(child_key, child, leaves)
            else:
                leaves[child_key] = child.value


def _segments(key: str) -> list[str]:
    return [segment for segment in key.split(paths.SEPARATOR) if segment]
