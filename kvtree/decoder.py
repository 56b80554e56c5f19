"""
Decoder: key tree reads -> typed value.

Each structural level is read with one get call and its children are
dispatched by the destination's descriptor. Leaf children come straight from
the parent's listing; directory children are fetched on their own unless the
call asks for recursive gets, in which case the whole subtree arrives at once.

Missing nodes:
    - a child absent from a struct listing is a KeyNotFoundError unless the
      field is omit-empty (or the deprecated skip_missing is set), in which
      case it takes its zero value
    - an absent T | None or Any field decodes to None (None writes nothing)
    - a NodeNotFoundError from the store propagates unless one of the above
      applies
"""

from __future__ import annotations

import asyncio
import re
import warnings
from typing import Any

from kvtree import paths
from kvtree.config.etcd import call_timeout
from kvtree.descriptors import (
    DYNAMIC,
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
    parse_key,
    zero_value,
)
from kvtree.exceptions import (
    KeyNotFoundError,
    NodeNotFoundError,
    NotADirectoryNodeError,
    NotALeafNodeError,
    NotAPointerError,
    ParseError,
    UnsupportedKindError,
)
from kvtree.protocols import LoggerProtocol, NullLogger
from kvtree.schemas.options import DecodeOptions
from kvtree.schemas.store import Node
from kvtree.storage.protocol import KeysAPI

_INDEX = re.compile(r'[0-9]+')

SKIP_MISSING_DEPRECATION = 'DecodeOptions.skip_missing is deprecated, use Tag(",omitempty") on the field instead'


class Decoder:
    """Reads typed values out of a key tree through a KeysAPI client."""

    def __init__(self, client: KeysAPI, logger: LoggerProtocol | None = None) -> None:
        """
        Initialize decoder.

        Args:
            client: Store client (shared; must tolerate concurrent calls)
            logger: Receives zero-value conversions and deprecation warnings
        """
        self.client = client
        self.logger = logger or NullLogger()

    async def decode(self, path: str, target_type: Any, options: DecodeOptions | None = None) -> Any:
        """
        Decode the subtree at path into a fresh value of target_type.

        Args:
            path: Root key of the value
            target_type: Type annotation to decode into
            options: Per-call options (get options, skip_missing, timeout)

        Returns:
            Newly built value

        Raises:
            UnsupportedKindError: If target_type has no stored form
            NodeShapeError: If a node is a leaf where a directory is expected, or vice versa
            KeyNotFoundError: If a required struct field is absent
            ParseError: If a leaf string doesn't match its primitive grammar
            CustomCodecError: If a type's own unmarshal hook fails
            StoreError: If a store call fails (NodeNotFoundError when path is missing)
            TimeoutError: If the call exceeds its deadline
        """
        options = options or DecodeOptions()
        await self._warn_skip_missing(options)
        descriptor = describe(target_type)

        async with asyncio.timeout(call_timeout(options.timeout)):
            return await self._decode(path, descriptor, options)

    async def decode_into(self, path: str, destination: Any, options: DecodeOptions | None = None) -> Any:
        """
        Decode the subtree at path into an existing mutable struct instance.

        Fields that are skipped, or omitted and absent, keep their current
        values. Dynamic (Any) fields decode as the type of their current value.

        Args:
            path: Root key of the value
            destination: Mutable pydantic model, dataclass or attrs instance
            options: Per-call options (get options, skip_missing, timeout)

        Returns:
            The destination instance

        Raises:
            NotAPointerError: If destination is a type, a scalar, a container or frozen
            (plus everything decode() raises)
        """
        options = options or DecodeOptions()
        if isinstance(destination, type):
            raise NotAPointerError(destination)
        descriptor = describe(type(destination))
        if not isinstance(descriptor, StructDescriptor) or descriptor.frozen:
            raise NotAPointerError(destination)

        await self._warn_skip_missing(options)
        async with asyncio.timeout(call_timeout(options.timeout)):
            node = await self._fetch(path, options)
            if node is None:
                return destination
            return await self._decode_struct(node, descriptor, options, into=destination)

    # ==========================================================================
    # Traversal
    # ==========================================================================

    async def _decode(self, path: str, descriptor: Descriptor, options: DecodeOptions, current: Any = None) -> Any:
        """Fetch path, then decode the node."""
        if isinstance(descriptor, UnsupportedDescriptor):
            raise UnsupportedKindError(path, descriptor.py_type, descriptor.reason)

        try:
            node = await self._fetch(path, options)
        except NodeNotFoundError:
            if isinstance(descriptor, OptionalDescriptor):
                return None
            raise

        if node is None:
            return zero_value(descriptor)
        return await self._decode_node(node, descriptor, options, current)

    async def _decode_child(self, child: Node, descriptor: Descriptor, options: DecodeOptions, current: Any = None) -> Any:
        """Decode a listed child, fetching it when the listing didn't expand it."""
        if child.is_dir and not options.get_options.recursive:
            return await self._decode(child.key, descriptor, options, current)
        return await self._decode_node(child, descriptor, options, current)

    async def _decode_node(self, node: Node, descriptor: Descriptor, options: DecodeOptions, current: Any = None) -> Any:
        match descriptor:
            case UnsupportedDescriptor():
                raise UnsupportedKindError(node.key, descriptor.py_type, descriptor.reason)

            case OptionalDescriptor(inner=inner):
                return await self._decode_node(node, inner, options, current)

            case CustomCodecDescriptor():
                _require_leaf(node)
                return descriptor.unmarshal(node.value, node.key)

            case PrimitiveDescriptor():
                _require_leaf(node)
                return descriptor.parse(node.value, node.key)

            case StructDescriptor():
                return await self._decode_struct(node, descriptor, options)

            case MappingDescriptor():
                return await self._decode_mapping(node, descriptor, options)

            case SequenceDescriptor():
                return await self._decode_sequence(node, descriptor, options)

            case DynamicDescriptor():
                return await self._decode_dynamic(node, options, current)

    async def _decode_struct(
        self,
        node: Node,
        descriptor: StructDescriptor,
        options: DecodeOptions,
        into: Any = None,
    ) -> Any:
        _require_dir(node)
        children = {child.segment: child for child in node.children}

        values: dict[str, Any] = {}
        for field in descriptor.fields:
            name = field.spec.logical_name
            if field.spec.skip:
                if into is None:
                    values[name] = field.zero()
                continue

            segment = field.spec.path_segment
            child_path = paths.join(node.key, segment)
            current = getattr(into, name, None) if into is not None else None
            child = children.get(segment)

            if child is None:
                if field.spec.omit_empty or options.skip_missing:
                    await self.logger.info(f'{child_path} not found, using zero value')
                    if into is None:
                        values[name] = field.zero()
                    continue
                if isinstance(field.descriptor, (OptionalDescriptor, DynamicDescriptor)):
                    values[name] = None
                    continue
                raise KeyNotFoundError(node.key, segment)

            try:
                values[name] = await self._decode_child(child, field.descriptor, options, current)
            except NodeNotFoundError:
                # Listed, then gone before the fetch
                if not field.spec.omit_empty:
                    raise
                await self.logger.info(f'{child_path} disappeared, using zero value')
                if into is None:
                    values[name] = field.zero()

        if into is None:
            return descriptor.build(values)
        for name, value in values.items():
            setattr(into, name, value)
        return into

    async def _decode_mapping(self, node: Node, descriptor: MappingDescriptor, options: DecodeOptions) -> dict[Any, Any]:
        _require_dir(node)
        result: dict[Any, Any] = {}
        for child in node.children:
            key = parse_key(descriptor.key, child.segment, child.key)
            result[key] = await self._decode_child(child, descriptor.value, options)
        return result

    async def _decode_sequence(self, node: Node, descriptor: SequenceDescriptor, options: DecodeOptions) -> Any:
        _require_dir(node)
        length = len(node.children)
        items: dict[int, Any] = {}
        for child in node.children:
            index = _parse_index(child.segment, child.key, length)
            items[index] = await self._decode_child(child, descriptor.element, options)

        # Duplicate spellings of one index ("1", "01") leave slots unfilled
        values = [items[index] if index in items else zero_value(descriptor.element) for index in range(length)]
        return descriptor.container(values)

    async def _decode_dynamic(self, node: Node, options: DecodeOptions, current: Any) -> Any:
        if current is not None:
            runtime = describe(type(current))
            if not isinstance(runtime, DynamicDescriptor):
                return await self._decode_node(node, runtime, options)

        if not node.is_dir:
            return node.value
        return {child.segment: await self._decode_child(child, DYNAMIC, options) for child in node.children}

    # ==========================================================================
    # Store calls
    # ==========================================================================

    async def _fetch(self, path: str, options: DecodeOptions) -> Node | None:
        """Get one node; None when it's missing and skip_missing is set."""
        try:
            return await self.client.get(path, options.get_options)
        except NodeNotFoundError:
            if not options.skip_missing:
                raise
            await self.logger.info(f'{path} not found, using zero value')
            return None

    async def _warn_skip_missing(self, options: DecodeOptions) -> None:
        if options.skip_missing:
            warnings.warn(SKIP_MISSING_DEPRECATION, DeprecationWarning, stacklevel=3)
            await self.logger.warning(SKIP_MISSING_DEPRECATION)


def _require_leaf(node: Node) -> None:
    if node.is_dir:
        raise NotALeafNodeError(node.key)


def _require_dir(node: Node) -> None:
    if not node.is_dir:
        raise NotADirectoryNodeError(node.key)


def _parse_index(segment: str, path: str, length: int) -> int:
    if not _INDEX.fullmatch(segment):
        raise ParseError(path, segment, 'sequence index', 'expected a non-negative decimal integer')
    index = int(segment)
    if index >= length:
        raise ParseError(path, segment, 'sequence index', f'out of range for {length} elements')
    return index
