"""
kvtree: map typed Python values onto a hierarchical key-value store.

    encoder = Encoder(client)
    await encoder.encode('/config/server', server)

    decoder = Decoder(client)
    server = await decoder.decode('/config/server', Server)
"""

from kvtree.codecs import JSONMarshaler, TextMarshaler, register_codec, unregister_codec
from kvtree.decoder import Decoder
from kvtree.descriptors import describe
from kvtree.duration import format_duration, parse_duration
from kvtree.encoder import Encoder
from kvtree.exceptions import (
    CustomCodecError,
    KeyNotFoundError,
    KVTreeError,
    NodeNotFoundError,
    NodeShapeError,
    NotADirectoryNodeError,
    NotALeafNodeError,
    NotAPointerError,
    ParseError,
    StoreError,
    UnsupportedKindError,
)
from kvtree.markers import (
    METADATA_KEY,
    Float32,
    Float64,
    FloatWidth,
    Int8,
    Int16,
    Int32,
    Int64,
    IntWidth,
    Tag,
    UInt8,
    UInt16,
    UInt32,
    UInt64,
)
from kvtree.protocols import LoggerProtocol, NullLogger, StdlibLogger
from kvtree.schemas import DecodeOptions, DeleteOptions, EncodeOptions, FieldSpec, GetOptions, Node, SetOptions
from kvtree.storage import EtcdKeysClient, InMemoryStore, KeysAPI
from kvtree.tags import parse_tag

__all__ = [
    'METADATA_KEY',
    'CustomCodecError',
    'DecodeOptions',
    'Decoder',
    'DeleteOptions',
    'EncodeOptions',
    'Encoder',
    'EtcdKeysClient',
    'FieldSpec',
    'Float32',
    'Float64',
    'FloatWidth',
    'GetOptions',
    'InMemoryStore',
    'Int8',
    'Int16',
    'Int32',
    'Int64',
    'IntWidth',
    'JSONMarshaler',
    'KVTreeError',
    'KeyNotFoundError',
    'KeysAPI',
    'LoggerProtocol',
    'Node',
    'NodeNotFoundError',
    'NodeShapeError',
    'NotADirectoryNodeError',
    'NotALeafNodeError',
    'NotAPointerError',
    'NullLogger',
    'ParseError',
    'SetOptions',
    'StdlibLogger',
    'StoreError',
    'Tag',
    'TextMarshaler',
    'UInt8',
    'UInt16',
    'UInt32',
    'UInt64',
    'UnsupportedKindError',
    'describe',
    'format_duration',
    'parse_duration',
    'parse_tag',
    'register_codec',
    'unregister_codec',
]
