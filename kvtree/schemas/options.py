"""
Per-call options for Encoder.encode and Decoder.decode.

These replace both instance-level configuration and context-smuggled store
options: everything a call needs is threaded through explicitly.
"""

from __future__ import annotations

import pydantic

from kvtree.base_model import StrictModel
from kvtree.schemas.store import GetOptions, SetOptions


class EncodeOptions(StrictModel):
    """Options for one encode call."""

    set_options: SetOptions = pydantic.Field(default_factory=SetOptions)
    timeout: float | None = None  # Seconds for the whole call (None: settings default)

    @pydantic.field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError('timeout must be positive')
        return v


class DecodeOptions(StrictModel):
    """Options for one decode call."""

    get_options: GetOptions = pydantic.Field(default_factory=GetOptions)
    # Deprecated: treat every missing node as its zero value. Use Tag(',omitempty').
    skip_missing: bool = False
    timeout: float | None = None  # Seconds for the whole call (None: settings default)

    @pydantic.field_validator('timeout')
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError('timeout must be positive')
        return v
