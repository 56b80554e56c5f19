"""
Tests for the kvtree command-line interface (kvtree.cli.main).
"""

from __future__ import annotations

import asyncio
import json

import pytest
from typer.testing import CliRunner

from kvtree.cli import main
from kvtree.schemas.store import SetOptions
from kvtree.storage.memory import InMemoryStore

runner = CliRunner()


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> InMemoryStore:
    store = InMemoryStore()
    for key, value in {'/app/name': 'api', '/app/ports/0': '80'}.items():
        asyncio.run(store.set(key, value, SetOptions()))
    monkeypatch.setattr(main, '_build_client', lambda endpoint: store)
    return store


def test_tree(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['tree', '/app'])

    assert result.exit_code == 0
    assert result.output.splitlines() == ['/app/', '  name = api', '  ports/', '    0 = 80']


def test_tree_json(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['tree', '/app', '--format', 'json'])

    assert result.exit_code == 0
    assert json.loads(result.output)['children'][0] == {
        'key': '/app/name',
        'value': 'api',
        'is_dir': False,
        'children': [],
    }


def test_get_leaf(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['get', '/app/name'])

    assert result.exit_code == 0
    assert result.output == 'api\n'


def test_get_directory_fails(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['get', '/app'])

    assert result.exit_code == 1
    assert 'is a directory' in result.output


def test_get_missing_key(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['get', '/missing'])

    assert result.exit_code == 1
    assert 'Error: [100] Key not found' in result.output


def test_set_and_rm(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['set', '/app/mode', 'fast'])
    assert result.exit_code == 0
    assert store.snapshot()['/app/mode'] == 'fast'

    result = runner.invoke(main.app, ['rm', '/app/ports'])
    assert result.exit_code == 1

    result = runner.invoke(main.app, ['rm', '/app/ports', '--recursive'])
    assert result.exit_code == 0
    assert '/app/ports/0' not in store.snapshot()


def test_load_and_dump(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['load', '/doc', '{"name": "api", "ports": [80, 443], "tls": true}'])
    assert result.exit_code == 0
    assert store.snapshot()['/doc/ports/1'] == '443'

    result = runner.invoke(main.app, ['dump', '/doc'])
    assert result.exit_code == 0
    assert json.loads(result.output) == {'name': 'api', 'ports': {'0': '80', '1': '443'}, 'tls': 'true'}


def test_load_rejects_invalid_json(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['load', '/doc', '{not json'])

    assert result.exit_code == 1
    assert 'Error:' in result.output


def test_load_verbose_logs_deletes(store: InMemoryStore) -> None:
    result = runner.invoke(main.app, ['load', '/doc', '{"a": 1}', '--verbose'])

    assert result.exit_code == 0
    assert '[INFO] Deleting subtree /doc before rewrite' in result.output
