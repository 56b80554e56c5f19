#!/usr/bin/env python3
"""
Command-line interface for kvtree.

Browse and edit an etcd v2 key tree, and load or dump JSON documents through
the encoder and decoder.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Literal

import typer

from kvtree.cli.logger import CLILogger
from kvtree.decoder import Decoder
from kvtree.encoder import Encoder
from kvtree.exceptions import KVTreeError
from kvtree.schemas.options import DecodeOptions, EncodeOptions
from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions
from kvtree.storage.etcd import EtcdKeysClient

app = typer.Typer(
    name='kvtree',
    help='Browse and edit a hierarchical key-value store',
    add_completion=False,
)

EndpointOption = typer.Option(None, '--endpoint', '-e', help='Store URL (default: ETCD_ENDPOINT)')
VerboseOption = typer.Option(False, '--verbose', '-v', help='Verbose output')


def _build_client(endpoint: str | None) -> EtcdKeysClient:
    """Create the store client for one command."""
    return EtcdKeysClient(endpoint)


def _fail(error: Exception) -> typer.Exit:
    typer.secho(f'Error: {error}', fg=typer.colors.RED, err=True)
    return typer.Exit(1)


# ==============================================================================
# Raw key commands
# ==============================================================================


@app.command()
def tree(
    path: str = typer.Argument('/', help='Root key to list'),
    format: Literal['text', 'json'] = typer.Option('text', '--format', '-f', help='Output format: text or json'),
    endpoint: str | None = EndpointOption,
) -> None:
    """List a subtree recursively.

    Examples:
        kvtree tree /config
        kvtree tree /config --format json
    """
    asyncio.run(_tree_async(path, format, endpoint))


async def _tree_async(path: str, format: Literal['text', 'json'], endpoint: str | None) -> None:
    """Async implementation of tree command."""
    async with _build_client(endpoint) as client:
        try:
            node = await client.get(path, GetOptions(recursive=True, sorted=True))
        except KVTreeError as e:
            raise _fail(e)

    if format == 'json':
        typer.echo(node.model_dump_json(indent=2))
        return
    _print_node(node, depth=0)


def _print_node(node: Node, depth: int) -> None:
    indent = '  ' * depth
    name = node.key if depth == 0 else node.segment
    if not node.is_dir:
        typer.echo(f'{indent}{name} = {node.value}')
        return
    typer.secho(f'{indent}{name}/', fg=typer.colors.CYAN)
    for child in node.children:
        _print_node(child, depth + 1)


@app.command()
def get(
    path: str = typer.Argument(..., help='Key to read'),
    endpoint: str | None = EndpointOption,
) -> None:
    """Print the value of a leaf key."""
    asyncio.run(_get_async(path, endpoint))


async def _get_async(path: str, endpoint: str | None) -> None:
    """Async implementation of get command."""
    async with _build_client(endpoint) as client:
        try:
            node = await client.get(path, GetOptions())
        except KVTreeError as e:
            raise _fail(e)

    if node.is_dir:
        typer.secho(f'Error: {path} is a directory (use: kvtree tree {path})', fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    typer.echo(node.value)


@app.command('set')
def set_(
    path: str = typer.Argument(..., help='Key to write'),
    value: str = typer.Argument('', help='Leaf value'),
    ttl: int | None = typer.Option(None, '--ttl', help='Seconds until the key expires'),
    dir: bool = typer.Option(False, '--dir', '-d', help='Create a directory instead of a leaf'),
    endpoint: str | None = EndpointOption,
) -> None:
    """Write a leaf value or create a directory."""
    asyncio.run(_set_async(path, value, ttl, dir, endpoint))


async def _set_async(path: str, value: str, ttl: int | None, dir: bool, endpoint: str | None) -> None:
    """Async implementation of set command."""
    async with _build_client(endpoint) as client:
        try:
            node = await client.set(path, value, SetOptions(ttl=ttl, dir=dir))
        except KVTreeError as e:
            raise _fail(e)

    typer.secho(f'✓ {node.key}{"/" if node.is_dir else ""}', fg=typer.colors.GREEN)


@app.command()
def rm(
    path: str = typer.Argument(..., help='Key to delete'),
    recursive: bool = typer.Option(False, '--recursive', '-r', help='Delete a directory and everything under it'),
    endpoint: str | None = EndpointOption,
) -> None:
    """Delete a key."""
    asyncio.run(_rm_async(path, recursive, endpoint))


async def _rm_async(path: str, recursive: bool, endpoint: str | None) -> None:
    """Async implementation of rm command."""
    async with _build_client(endpoint) as client:
        try:
            await client.delete(path, DeleteOptions(recursive=recursive, dir=recursive))
        except KVTreeError as e:
            raise _fail(e)

    typer.secho(f'✓ Deleted {path}', fg=typer.colors.GREEN)


# ==============================================================================
# Document commands
# ==============================================================================


@app.command()
def dump(
    path: str = typer.Argument(..., help='Root key of the document'),
    endpoint: str | None = EndpointOption,
    verbose: bool = VerboseOption,
) -> None:
    """Decode a subtree and print it as JSON.

    Directories become objects and leaves become strings.
    """
    asyncio.run(_dump_async(path, endpoint, verbose))


async def _dump_async(path: str, endpoint: str | None, verbose: bool) -> None:
    """Async implementation of dump command."""
    logger = CLILogger(verbose=verbose)
    async with _build_client(endpoint) as client:
        try:
            document = await Decoder(client, logger).decode(
                path, Any, DecodeOptions(get_options=GetOptions(recursive=True, sorted=True))
            )
        except KVTreeError as e:
            raise _fail(e)

    typer.echo(json.dumps(document, indent=2))


@app.command()
def load(
    path: str = typer.Argument(..., help='Root key to write the document under'),
    document: str = typer.Argument(..., help='JSON document'),
    ttl: int | None = typer.Option(None, '--ttl', help='Seconds until written keys expire'),
    endpoint: str | None = EndpointOption,
    verbose: bool = VerboseOption,
) -> None:
    """Encode a JSON document into the tree.

    Objects and arrays replace whatever was stored at their keys.

    Examples:
        kvtree load /config '{"name": "api", "ports": [80, 443]}'
    """
    try:
        value = json.loads(document)
    except json.JSONDecodeError as e:
        raise _fail(e)
    asyncio.run(_load_async(path, value, ttl, endpoint, verbose))


async def _load_async(path: str, value: Any, ttl: int | None, endpoint: str | None, verbose: bool) -> None:
    """Async implementation of load command."""
    logger = CLILogger(verbose=verbose)
    async with _build_client(endpoint) as client:
        try:
            await Encoder(client, logger).encode(path, value, EncodeOptions(set_options=SetOptions(ttl=ttl)))
        except KVTreeError as e:
            raise _fail(e)

    typer.secho(f'✓ Loaded {path}', fg=typer.colors.GREEN)


def main() -> None:
    """Entry point for CLI."""
    app()


if __name__ == '__main__':
    main()
