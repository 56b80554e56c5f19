"""
Shared Pydantic base model for strict validation.

All Pydantic models owned by kvtree (store nodes, call options, field specs)
inherit from StrictModel.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Base model with strict validation settings."""

    model_config = ConfigDict(
        extra='forbid',  # Raise error on unexpected fields
        strict=True,  # Strict type validation
        frozen=True,  # Immutable (cannot modify after creation)
    )


class PermissiveModel(BaseModel):
    """
    Base model for payloads owned by external systems (e.g. etcd responses).

    Accepts unknown fields so new server-side attributes don't break parsing.
    """

    model_config = ConfigDict(
        extra='allow',  # Accept unknown fields (graceful fallback)
        strict=True,  # Strict type coercion for known fields
        frozen=True,  # Immutable after creation
    )
