"""
Field markers for key-tree mapping.

Markers ride inside typing.Annotated (the same pattern Pydantic v2 uses for
its own metadata), so one annotation serves Pydantic models, dataclasses and
attrs classes alike.

Example:
    class Server(BaseModel):
        host: Annotated[str, Tag('host_name')]
        port: UInt16
        weight: Annotated[Float32, Tag(',omitempty')]
        cache: Annotated[dict[str, str], Tag('-')]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

# Metadata key for dataclasses.field(metadata=...) and attrs.field(metadata=...)
METADATA_KEY = 'kvtree'


@dataclass(frozen=True)
class Tag:
    """Per-field annotation: 'name', 'name,omitempty', ',omitempty' or '-'."""

    raw: str


@dataclass(frozen=True)
class IntWidth:
    """Restrict an int to a fixed bit width when parsing leaf values."""

    bits: int
    signed: bool = True

    @property
    def bounds(self) -> tuple[int, int]:
        if self.signed:
            return -(1 << (self.bits - 1)), (1 << (self.bits - 1)) - 1
        return 0, (1 << self.bits) - 1


@dataclass(frozen=True)
class FloatWidth:
    """Restrict a float to single (32) or double (64) precision range."""

    bits: int


# Fixed-width scalar aliases
type Int8 = Annotated[int, IntWidth(8)]
type Int16 = Annotated[int, IntWidth(16)]
type Int32 = Annotated[int, IntWidth(32)]
type Int64 = Annotated[int, IntWidth(64)]
type UInt8 = Annotated[int, IntWidth(8, signed=False)]
type UInt16 = Annotated[int, IntWidth(16, signed=False)]
type UInt32 = Annotated[int, IntWidth(32, signed=False)]
type UInt64 = Annotated[int, IntWidth(64, signed=False)]
type Float32 = Annotated[float, FloatWidth(32)]
type Float64 = Annotated[float, FloatWidth(64)]
