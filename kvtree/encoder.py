"""
Encoder: typed value -> key tree writes.

Depth-first, pre-order traversal that turns a value into set calls:

    custom codec   one leaf holding the codec output
    None           nothing is written
    struct         each non-skipped field under '<path>/<segment>'
    sequence       subtree deleted, then '<path>/<index>' per element
    mapping        subtree deleted, then '<path>/<key>' per entry
    primitive      one leaf holding the canonical string

Sequences and mappings are deleted before writing, so a shrinking collection
leaves no orphaned children. Structs are never pre-deleted. A collection
always leaves a directory behind, and each of its entries leaves a node: an
empty collection, or an entry that writes nothing, becomes an empty directory.
None mapping values are dropped; None sequence elements are rejected, since
sequence indices must be dense.

There is no rollback: a failed store call aborts the walk and leaves what was
already written in place.
"""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any

from kvtree import paths
from kvtree.config.etcd import call_timeout
from kvtree.descriptors import (
    CustomCodecDescriptor,
    Descriptor,
    DynamicDescriptor,
    MappingDescriptor,
    OptionalDescriptor,
    PrimitiveDescriptor,
    SequenceDescriptor,
    StructDescriptor,
    UnsupportedDescriptor,
    describe,
)
from kvtree.exceptions import NodeNotFoundError, UnsupportedKindError
from kvtree.protocols import LoggerProtocol, NullLogger
from kvtree.schemas.options import EncodeOptions
from kvtree.schemas.store import DeleteOptions
from kvtree.storage.protocol import KeysAPI

SUBTREE_DELETE = DeleteOptions(recursive=True, dir=True)


class Encoder:
    """Writes typed values into a key tree through a KeysAPI client."""

    def __init__(self, client: KeysAPI, logger: LoggerProtocol | None = None) -> None:
        """
        Initialize encoder.

        Args:
            client: Store client (shared; must tolerate concurrent calls)
            logger: Receives subtree delete events (default: NullLogger)
        """
        self.client = client
        self.logger = logger or NullLogger()

    async def encode(
        self,
        path: str,
        value: Any,
        options: EncodeOptions | None = None,
        *,
        as_type: Any = None,
    ) -> None:
        """
        Encode a value at path.

        Args:
            path: Root key for the value
            value: Value to encode
            options: Per-call options (set options, timeout)
            as_type: Annotation to encode the value as (default: type(value))

        Raises:
            UnsupportedKindError: If the value (or a part of it) has no stored form
            CustomCodecError: If a type's own marshal hook fails
            StoreError: If a store call fails
            TimeoutError: If the call exceeds its deadline
        """
        options = options or EncodeOptions()
        descriptor = describe(as_type if as_type is not None else type(value))

        async with asyncio.timeout(call_timeout(options.timeout)):
            await self._encode(path, value, descriptor, options)

    async def _encode(self, path: str, value: Any, descriptor: Descriptor, options: EncodeOptions) -> bool:
        """Encode one value; returns whether anything was written."""
        if isinstance(descriptor, UnsupportedDescriptor):
            raise UnsupportedKindError(path, descriptor.py_type, descriptor.reason)
        if value is None:
            return False

        match descriptor:
            case CustomCodecDescriptor():
                await self._set(path, descriptor.marshal(value, path), options)

            case OptionalDescriptor(inner=inner):
                return await self._encode(path, value, inner, options)

            case DynamicDescriptor():
                runtime = describe(type(value))
                if isinstance(runtime, DynamicDescriptor):
                    raise UnsupportedKindError(path, type(value), 'value has no concrete shape')
                return await self._encode(path, value, runtime, options)

            case StructDescriptor():
                return await self._encode_struct(path, value, descriptor, options)

            case SequenceDescriptor():
                await self._encode_sequence(path, value, descriptor, options)

            case MappingDescriptor():
                await self._encode_mapping(path, value, descriptor, options)

            case PrimitiveDescriptor():
                try:
                    text = descriptor.format(value)
                except TypeError as e:
                    raise UnsupportedKindError(path, type(value), str(e)) from e
                await self._set(path, text, options)

        return True

    async def _encode_struct(
        self, path: str, value: Any, descriptor: StructDescriptor, options: EncodeOptions
    ) -> bool:
        if not isinstance(value, descriptor.py_type):
            raise UnsupportedKindError(path, type(value), f'expected {descriptor.py_type.__name__} instance')

        wrote = False
        for field in descriptor.fields:
            if field.spec.skip:
                continue
            field_value = getattr(value, field.spec.logical_name)
            field_path = paths.join(path, field.spec.path_segment)
            wrote = await self._encode(field_path, field_value, field.descriptor, options) or wrote
        return wrote

    async def _encode_sequence(
        self, path: str, value: Any, descriptor: SequenceDescriptor, options: EncodeOptions
    ) -> None:
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes, bytearray)):
            raise UnsupportedKindError(path, type(value), 'expected a sequence')
        for index, item in enumerate(value):
            if item is None:
                element_path = paths.join(path, str(index))
                raise UnsupportedKindError(element_path, type(None), 'sequence elements cannot be None')

        await self._delete_subtree(path)
        if not value:
            await self._set_empty_dir(path, options)
            return

        for index, item in enumerate(value):
            await self._encode_entry(paths.join(path, str(index)), item, descriptor.element, options)

    async def _encode_mapping(
        self, path: str, value: Any, descriptor: MappingDescriptor, options: EncodeOptions
    ) -> None:
        if not isinstance(value, Mapping):
            raise UnsupportedKindError(path, type(value), 'expected a mapping')

        segments = [(self._key_segment(path, key, descriptor), item) for key, item in value.items()]

        await self._delete_subtree(path)
        wrote = False
        for segment, item in segments:
            if item is None:
                continue
            await self._encode_entry(paths.join(path, segment), item, descriptor.value, options)
            wrote = True

        if not wrote:
            await self._set_empty_dir(path, options)

    async def _encode_entry(self, path: str, item: Any, descriptor: Descriptor, options: EncodeOptions) -> None:
        """Encode a collection entry; an entry that wrote nothing still gets its node."""
        if not await self._encode(path, item, descriptor, options):
            await self._set_empty_dir(path, options)

    def _key_segment(self, path: str, key: Any, descriptor: MappingDescriptor) -> str:
        """Format a mapping key with the primitive rules used for leaves."""
        key_descriptor = descriptor.key
        if isinstance(key_descriptor, DynamicDescriptor):
            key_descriptor = describe(type(key))
        if not isinstance(key_descriptor, PrimitiveDescriptor):
            raise UnsupportedKindError(path, type(key), 'mapping keys must be primitives')

        try:
            segment = key_descriptor.format(key)
        except TypeError as e:
            raise UnsupportedKindError(path, type(key), str(e)) from e

        if not segment or paths.SEPARATOR in segment:
            raise UnsupportedKindError(path, type(key), f'mapping key {segment!r} is not a valid path segment')
        return segment

    # ==========================================================================
    # Store calls
    # ==========================================================================

    async def _set(self, path: str, text: str, options: EncodeOptions) -> None:
        await self.client.set(path, text, options.set_options)

    async def _set_empty_dir(self, path: str, options: EncodeOptions) -> None:
        await self.client.set(path, '', options.set_options.model_copy(update={'dir': True}))

    async def _delete_subtree(self, path: str) -> None:
        await self.logger.info(f'Deleting subtree {path} before rewrite')
        try:
            await self.client.delete(path, SUBTREE_DELETE)
        except NodeNotFoundError:
            await self.logger.info(f'Nothing to delete at {path}')
