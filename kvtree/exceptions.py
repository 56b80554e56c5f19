"""
Shared exceptions for kvtree.

Every failure of an encode or decode call surfaces as one of these. The first
error met along the depth-first walk aborts the call; nothing is aggregated.

Exception Hierarchy:
    KVTreeError (base)
    ├── NotAPointerError (decode destination cannot be written to)
    ├── UnsupportedKindError (callables, channel-like objects, unknown types)
    ├── NodeShapeError (node kind contradicts the destination shape)
    │   ├── NotADirectoryNodeError (container expected, leaf found)
    │   └── NotALeafNodeError (scalar expected, directory found)
    ├── KeyNotFoundError (required child absent from a directory listing)
    ├── ParseError (leaf string rejected by the primitive grammar)
    ├── StoreError (passthrough from the store client)
    │   └── NodeNotFoundError (no node at the requested key)
    └── CustomCodecError (a type's own bulk marshal/unmarshal failed)
"""

from __future__ import annotations


class KVTreeError(Exception):
    """Base exception for all kvtree errors."""


class NotAPointerError(KVTreeError):
    """Raised when decode_into receives a destination it cannot mutate."""

    def __init__(self, destination: object) -> None:
        self.destination = destination
        super().__init__(
            f'Destination of type {type(destination).__name__} cannot be decoded into. '
            f'Pass a mutable struct instance, or call decode() with a type instead.'
        )


class UnsupportedKindError(KVTreeError):
    """Raised when a value or type has no mapping onto the key tree."""

    def __init__(self, path: str, kind: object, reason: str = '') -> None:
        self.path = path
        self.kind = kind
        name = getattr(kind, '__name__', None) or repr(kind)
        message = f"Can't map {name} at {path}"
        if reason:
            message += f': {reason}'
        super().__init__(message)


class NodeShapeError(KVTreeError):
    """Base exception for node kind mismatches."""


class NotADirectoryNodeError(NodeShapeError):
    """Raised when a struct, mapping or sequence meets a leaf node."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'{path} is not a directory')


class NotALeafNodeError(NodeShapeError):
    """Raised when a scalar or custom codec value meets a directory node."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f'{path} is a directory, expected a leaf value')


class KeyNotFoundError(KVTreeError):
    """Raised when a required struct field has no child node."""

    def __init__(self, path: str, segment: str) -> None:
        self.path = path
        self.segment = segment
        super().__init__(f"Required key '{segment}' not found under {path}")


class ParseError(KVTreeError):
    """Raised when a leaf string doesn't match the destination's grammar."""

    def __init__(self, path: str, raw: str, target: str, reason: str = '') -> None:
        self.path = path
        self.raw = raw
        self.target = target
        message = f'Cannot parse {raw!r} as {target} at {path}'
        if reason:
            message += f': {reason}'
        super().__init__(message)


class StoreError(KVTreeError):
    """Raised by store clients for any failed request."""

    def __init__(self, path: str, message: str, code: int | None = None) -> None:
        self.path = path
        self.code = code
        self.message = message
        prefix = f'[{code}] ' if code is not None else ''
        super().__init__(f'{prefix}{message} ({path})')


class NodeNotFoundError(StoreError):
    """Raised by store clients when no node exists at the requested key."""

    def __init__(self, path: str, message: str = 'Key not found', code: int | None = 100) -> None:
        super().__init__(path, message, code)


class CustomCodecError(KVTreeError):
    """Raised when a type's own marshal/unmarshal hook fails."""

    def __init__(self, path: str, kind: type, direction: str) -> None:
        self.path = path
        self.kind = kind
        self.direction = direction
        super().__init__(f'{kind.__name__}.{direction} failed at {path}')
