"""
Shared fixtures for kvtree tests.

RecordingStore wraps the in-memory store and keeps an ordered log of every
call, so tests can assert on the exact sequence of store operations.
"""

from __future__ import annotations

import pytest

from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions
from kvtree.storage.memory import InMemoryStore


class RecordingStore(InMemoryStore):
    """In-memory store that records (operation, path, options) for each call."""

    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple[str, str, object]] = []

    async def get(self, path: str, options: GetOptions) -> Node:
        self.calls.append(('get', path, options))
        return await super().get(path, options)

    async def set(self, path: str, value: str, options: SetOptions) -> Node:
        self.calls.append(('set', path, options))
        return await super().set(path, value, options)

    async def delete(self, path: str, options: DeleteOptions) -> None:
        self.calls.append(('delete', path, options))
        await super().delete(path, options)

    def operations(self, kind: str | None = None) -> list[tuple[str, str]]:
        """(operation, path) pairs, optionally filtered to one operation."""
        return [(op, path) for op, path, _ in self.calls if kind is None or op == kind]


class RecordingLogger:
    """LoggerProtocol implementation that keeps messages per level."""

    def __init__(self) -> None:
        self.messages: dict[str, list[str]] = {'info': [], 'warning': [], 'error': []}

    async def info(self, message: str) -> None:
        self.messages['info'].append(message)

    async def warning(self, message: str) -> None:
        self.messages['warning'].append(message)

    async def error(self, message: str) -> None:
        self.messages['error'].append(message)


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def logger() -> RecordingLogger:
    return RecordingLogger()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer .env files and shell variables out of the tests."""
    for name in ('LOAD_ENV_FILE', 'CALL_TIMEOUT_SECONDS', 'ETCD_ENDPOINT', 'ETCD_USERNAME', 'ETCD_PASSWORD'):
        monkeypatch.delenv(name, raising=False)
