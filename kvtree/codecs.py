"""
Custom codec dispatch.

A type can take over its whole subtree by advertising a bulk codec, in which
case the value is stored as a single leaf holding the codec's output instead
of being decomposed field by field.

Two capabilities are recognized:
    JSON-like  marshal_json(self) -> bytes | str
               unmarshal_json(cls, data: bytes) -> instance  (classmethod)
    text       marshal_text(self) -> bytes | str
               unmarshal_text(cls, data: bytes) -> instance  (classmethod)

A type must provide both halves of a capability for it to count. When a type
provides both capabilities, the JSON-like one is used in both directions.

Types the caller doesn't own (datetime, UUID, ...) get codecs through the
registry, which takes precedence over protocol methods and is matched along
the type's MRO.
"""

from __future__ import annotations

import datetime
import decimal
import pathlib
import threading
import uuid
from collections.abc import Callable
from typing import Any, Literal, Protocol, Self, runtime_checkable

import attrs

CodecKind = Literal['json', 'text']


@runtime_checkable
class JSONMarshaler(Protocol):
    """Bulk JSON-like codec over the raw leaf bytes."""

    def marshal_json(self) -> bytes | str: ...

    @classmethod
    def unmarshal_json(cls, data: bytes) -> Self: ...


@runtime_checkable
class TextMarshaler(Protocol):
    """Bulk text codec over the raw leaf bytes."""

    def marshal_text(self) -> bytes | str: ...

    @classmethod
    def unmarshal_text(cls, data: bytes) -> Self: ...


@attrs.define(frozen=True)
class Codec:
    """Resolved marshal/unmarshal pair for one type."""

    kind: CodecKind
    marshal: Callable[[Any], bytes | str]
    unmarshal: Callable[[type, bytes], Any]  # (destination type, leaf bytes)

    def encode(self, value: Any) -> str:
        """Marshal a value and normalize the result to leaf text."""
        out = self.marshal(value)
        if isinstance(out, bytes):
            return out.decode('utf-8')
        if not isinstance(out, str):
            raise TypeError(f'marshal_{self.kind} returned {type(out).__name__}, expected str or bytes')
        return out

    def decode(self, destination: type, raw: str) -> Any:
        """Unmarshal leaf text into an instance of destination."""
        return self.unmarshal(destination, raw.encode('utf-8'))


_JSON_PROTOCOL = Codec(
    kind='json',
    marshal=lambda value: value.marshal_json(),
    unmarshal=lambda cls, data: cls.unmarshal_json(data),
)

_TEXT_PROTOCOL = Codec(
    kind='text',
    marshal=lambda value: value.marshal_text(),
    unmarshal=lambda cls, data: cls.unmarshal_text(data),
)

# ==============================================================================
# Registry
# ==============================================================================

_registry: dict[type, Codec] = {}
_registry_lock = threading.Lock()
_generation = 0


def register_codec(
    tp: type,
    marshal: Callable[[Any], bytes | str],
    unmarshal: Callable[[type, bytes], Any],
    kind: CodecKind = 'text',
) -> None:
    """
    Register a bulk codec for a type (and its subclasses).

    Args:
        tp: Type to register
        marshal: value -> leaf bytes or text
        unmarshal: (destination type, leaf bytes) -> value
        kind: 'json' or 'text' (informational, reported by descriptors)
    """
    global _generation
    with _registry_lock:
        _registry[tp] = Codec(kind=kind, marshal=marshal, unmarshal=unmarshal)
        _generation += 1


def unregister_codec(tp: type) -> None:
    """Remove a registered codec. Missing registrations are ignored."""
    global _generation
    with _registry_lock:
        if _registry.pop(tp, None) is not None:
            _generation += 1


def registry_generation() -> int:
    """Counter bumped on every registry change (descriptor caches key on it)."""
    return _generation


def find_codec(tp: type) -> Codec | None:
    """
    Find the bulk codec for a type, if it has one.

    Registered codecs first (nearest class in the MRO), then the JSON-like
    protocol, then the text protocol.
    """
    for base in tp.__mro__:
        codec = _registry.get(base)
        if codec is not None:
            return codec

    if _has_methods(tp, 'marshal_json', 'unmarshal_json'):
        return _JSON_PROTOCOL
    if _has_methods(tp, 'marshal_text', 'unmarshal_text'):
        return _TEXT_PROTOCOL
    return None


def _has_methods(tp: type, *names: str) -> bool:
    return all(callable(getattr(tp, name, None)) for name in names)


# ==============================================================================
# Built-in registrations
# ==============================================================================


def _iso(value: Any) -> str:
    return value.isoformat()


def _from_iso(cls: type, data: bytes) -> Any:
    return cls.fromisoformat(data.decode('utf-8'))


def _from_str(cls: type, data: bytes) -> Any:
    return cls(data.decode('utf-8'))


register_codec(datetime.datetime, _iso, _from_iso)
register_codec(datetime.date, _iso, _from_iso)
register_codec(datetime.time, _iso, _from_iso)
register_codec(uuid.UUID, str, _from_str)
register_codec(decimal.Decimal, str, _from_str)
register_codec(pathlib.PurePath, str, _from_str)
