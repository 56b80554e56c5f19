"""
Tests for the in-memory KeysAPI implementation (kvtree.storage.memory).
"""

from __future__ import annotations

import pytest

from kvtree.exceptions import NodeNotFoundError, StoreError
from kvtree.schemas.store import DeleteOptions, GetOptions, SetOptions
from kvtree.storage.memory import InMemoryStore
from kvtree.storage.protocol import KeysAPI

pytestmark = pytest.mark.asyncio


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


async def test_satisfies_protocol() -> None:
    assert isinstance(InMemoryStore(), KeysAPI)


async def test_set_creates_parents_and_get_lists_children() -> None:
    store = InMemoryStore()
    await store.set('/a/b/c', '1', SetOptions())
    await store.set('/a/d', '2', SetOptions())

    node = await store.get('/a', GetOptions())
    assert node.is_dir
    assert [(child.key, child.is_dir, child.value) for child in node.children] == [
        ('/a/b', True, ''),
        ('/a/d', False, '2'),
    ]
    assert node.children[0].children == []  # not expanded


async def test_recursive_sorted_get() -> None:
    store = InMemoryStore()
    await store.set('/r/z', '1', SetOptions())
    await store.set('/r/a/x', '2', SetOptions())

    node = await store.get('r', GetOptions(recursive=True, sorted=True))
    assert [child.segment for child in node.children] == ['a', 'z']
    assert node.children[0].children[0].value == '2'


async def test_missing_key() -> None:
    with pytest.raises(NodeNotFoundError) as exc_info:
        await InMemoryStore().get('/missing', GetOptions())
    assert exc_info.value.code == 100


async def test_leaf_and_directory_conflicts() -> None:
    store = InMemoryStore()
    await store.set('/leaf', 'v', SetOptions())
    await store.set('/dir', '', SetOptions(dir=True))

    with pytest.raises(StoreError) as exc_info:
        await store.set('/leaf/child', 'x', SetOptions())
    assert exc_info.value.code == 104

    with pytest.raises(StoreError) as exc_info:
        await store.set('/dir', 'x', SetOptions())
    assert exc_info.value.code == 102


async def test_compare_and_swap() -> None:
    store = InMemoryStore()
    await store.set('/k', 'one', SetOptions(prev_exist=False))

    with pytest.raises(StoreError) as exc_info:
        await store.set('/k', 'two', SetOptions(prev_exist=False))
    assert exc_info.value.code == 105

    with pytest.raises(StoreError) as exc_info:
        await store.set('/k', 'two', SetOptions(prev_value='nope'))
    assert exc_info.value.code == 101

    await store.set('/k', 'two', SetOptions(prev_value='one'))
    assert store.snapshot() == {'/k': 'two'}

    with pytest.raises(NodeNotFoundError):
        await store.set('/other', 'x', SetOptions(prev_exist=True))


async def test_delete_rules() -> None:
    store = InMemoryStore()
    await store.set('/d/x', '1', SetOptions())

    with pytest.raises(StoreError) as exc_info:
        await store.delete('/d', DeleteOptions())
    assert exc_info.value.code == 102

    with pytest.raises(StoreError) as exc_info:
        await store.delete('/d', DeleteOptions(dir=True))
    assert exc_info.value.code == 108

    await store.delete('/d', DeleteOptions(recursive=True, dir=True))
    assert store.snapshot() == {}

    with pytest.raises(NodeNotFoundError):
        await store.delete('/d', DeleteOptions(recursive=True))


async def test_root_is_read_only() -> None:
    with pytest.raises(StoreError) as exc_info:
        await InMemoryStore().delete('/', DeleteOptions(recursive=True))
    assert exc_info.value.code == 107


async def test_ttl_expiry() -> None:
    clock = FakeClock()
    store = InMemoryStore(clock=clock)
    await store.set('/session', 'abc', SetOptions(ttl=10))

    clock.now += 9
    assert (await store.get('/session', GetOptions())).value == 'abc'

    clock.now += 1
    with pytest.raises(NodeNotFoundError):
        await store.get('/session', GetOptions())
    assert store.snapshot() == {}


async def test_async_context_manager() -> None:
    async with InMemoryStore() as store:
        await store.set('/k', 'v', SetOptions())
        assert store.snapshot() == {'/k': 'v'}
