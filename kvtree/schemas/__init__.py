"""Pydantic schemas shared by the engine and the store clients."""

from kvtree.schemas.fields import FieldSpec
from kvtree.schemas.options import DecodeOptions, EncodeOptions
from kvtree.schemas.store import DeleteOptions, GetOptions, Node, SetOptions

__all__ = [
    'DecodeOptions',
    'DeleteOptions',
    'EncodeOptions',
    'FieldSpec',
    'GetOptions',
    'Node',
    'SetOptions',
]
