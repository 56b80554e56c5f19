"""
Encode-then-decode behaviour across the whole engine, against the in-memory store.
"""

from __future__ import annotations

import dataclasses
import enum
import json
import uuid
from datetime import UTC, datetime, timedelta
from typing import Annotated

import attrs
import pydantic
import pytest

from kvtree.decoder import Decoder
from kvtree.encoder import Encoder
from kvtree.exceptions import KeyNotFoundError
from kvtree.markers import Float32, Int64, Tag, UInt16
from kvtree.schemas.store import DeleteOptions, SetOptions
from kvtree.storage.memory import InMemoryStore
from tests.conftest import RecordingStore

pytestmark = pytest.mark.asyncio


class Transport(enum.StrEnum):
    TCP = 'tcp'
    UDP = 'udp'


class Listener(pydantic.BaseModel):
    port: UInt16
    protocol: Transport = Transport.TCP
    idle_timeout: timedelta = timedelta(seconds=30)


@attrs.define
class Quota:
    requests: Int64
    burst: Float32 = 0.0


@dataclasses.dataclass
class Service:
    field_1: Annotated[str, Tag('field_1')]
    listeners: list[Listener]
    quotas: dict[str, Quota]
    owners: tuple[str, ...] = ()
    created: datetime | None = None
    instance_id: uuid.UUID | None = None
    fallback: Service | None = None
    enabled: bool = True
    notes: Annotated[str, Tag('-')] = ''
    nickname: Annotated[str, Tag(',omitempty')] = ''


@dataclasses.dataclass
class Coverage:
    fallback: Service | None = None
    owner: str | None = None


class Coordinates:
    """Speaks both bulk codecs; the JSON one must win."""

    def __init__(self, lat: float, lon: float) -> None:
        self.lat = lat
        self.lon = lon

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Coordinates) and (self.lat, self.lon) == (other.lat, other.lon)

    def marshal_json(self) -> str:
        return json.dumps([self.lat, self.lon])

    @classmethod
    def unmarshal_json(cls, data: bytes) -> Coordinates:
        lat, lon = json.loads(data)
        return cls(lat, lon)

    def marshal_text(self) -> str:
        raise AssertionError('text codec must not be used')

    @classmethod
    def unmarshal_text(cls, data: bytes) -> Coordinates:
        raise AssertionError('text codec must not be used')


@dataclasses.dataclass
class Site:
    name: str
    location: Coordinates


def make_service() -> Service:
    return Service(
        field_1='api',
        listeners=[Listener(port=80), Listener(port=53, protocol=Transport.UDP, idle_timeout=timedelta(minutes=2))],
        quotas={'free': Quota(requests=100), 'paid': Quota(requests=10**12, burst=2.5)},
        owners=('ops', 'dev'),
        created=datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC),
        instance_id=uuid.UUID('12345678-1234-5678-1234-567812345678'),
        fallback=Service(field_1='backup', listeners=[], quotas={}),
    )


async def test_nested_round_trip() -> None:
    store = InMemoryStore()
    service = make_service()

    await Encoder(store).encode('/services/api', service)
    decoded = await Decoder(store).decode('/services/api', Service)

    assert decoded == service


@pytest.mark.parametrize(
    ('value', 'annotation'),
    [
        (42, int),
        (-3.75, float),
        (True, bool),
        ('with spaces and ünïcode', str),
        (timedelta(hours=1, microseconds=5), timedelta),
        (Transport.UDP, Transport),
        ([10, 20, 30], list[int]),
        ({'a': ['x'], 'b': []}, dict[str, list[str]]),
        ({1: True, 2: False}, dict[int, bool]),
        ([[1], [2, 3]], list[list[int]]),
        (None, int | None),
    ],
)
async def test_round_trip(value: object, annotation: object) -> None:
    store = InMemoryStore()
    await Encoder(store).encode('/v', value, as_type=annotation)
    if value is None:
        assert store.snapshot() == {}
        return
    assert await Decoder(store).decode('/v', annotation) == value


async def test_tag_renaming_on_the_wire() -> None:
    store = InMemoryStore()
    await Encoder(store).encode('/s', make_service())

    leaves = store.snapshot()
    assert leaves['/s/field_1'] == 'api'
    assert '/s/notes' not in leaves


async def test_skipped_field_decodes_to_default() -> None:
    store = InMemoryStore()
    service = dataclasses.replace(make_service(), notes='private')

    await Encoder(store).encode('/s', service)
    await store.set('/s/notes', 'planted', SetOptions())
    decoded = await Decoder(store).decode('/s', Service)

    assert decoded.notes == ''


async def test_omit_empty_versus_required() -> None:
    store = InMemoryStore()
    await Encoder(store).encode('/s', make_service())

    await store.delete('/s/nickname', DeleteOptions())
    assert (await Decoder(store).decode('/s', Service)).nickname == ''

    await store.delete('/s/enabled', DeleteOptions())
    with pytest.raises(KeyNotFoundError):
        await Decoder(store).decode('/s', Service)


async def test_sequence_index_fidelity(store: RecordingStore) -> None:
    await Encoder(store).encode('/s', [10, 20], as_type=list[int])
    assert store.snapshot() == {'/s/0': '10', '/s/1': '20'}

    await store.delete('/s/0', DeleteOptions())
    await store.set('/s/0', '10', SetOptions())  # now listed after /s/1
    assert await Decoder(store).decode('/s', list[int]) == [10, 20]


async def test_mapping_key_type_drives_parsing(store: RecordingStore) -> None:
    await store.set('/m/10', 'a', SetOptions())
    await store.set('/m/20', 'b', SetOptions())

    assert await Decoder(store).decode('/m', dict[int, str]) == {10: 'a', 20: 'b'}
    assert await Decoder(store).decode('/m', dict[str, str]) == {'10': 'a', '20': 'b'}


async def test_duration_and_integer_grammars(store: RecordingStore) -> None:
    await store.set('/d', '10s', SetOptions())
    await store.set('/i', '10', SetOptions())

    assert await Decoder(store).decode('/d', timedelta) == timedelta(seconds=10)
    assert await Decoder(store).decode('/i', Int64) == 10


async def test_custom_codec_prefers_json(store: RecordingStore) -> None:
    site = Site(name='hq', location=Coordinates(52.5, 13.4))

    await Encoder(store).encode('/site', site)
    assert store.snapshot()['/site/location'] == '[52.5, 13.4]'
    assert await Decoder(store).decode('/site', Site) == site


async def test_destructive_rewrite(store: RecordingStore) -> None:
    encoder = Encoder(store)
    await encoder.encode('/s', [1, 2, 3, 4, 5], as_type=list[int])
    await encoder.encode('/s', [7, 8, 9], as_type=list[int])

    assert store.snapshot() == {'/s/0': '7', '/s/1': '8', '/s/2': '9'}
    assert await Decoder(store).decode('/s', list[int]) == [7, 8, 9]


async def test_empty_collections_round_trip(store: RecordingStore) -> None:
    empty = Service(field_1='e', listeners=[], quotas={})

    await Encoder(store).encode('/e', empty)
    assert await Decoder(store).decode('/e', Service) == empty

async def test_none_mapping_values_are_dropped(store: RecordingStore) -> None:
    encoder = Encoder(store)
    await encoder.encode('/only', {'a': None}, as_type=dict[str, int | None])
    await encoder.encode('/mixed', {'a': None, 'b': 1}, as_type=dict[str, int | None])

    decoder = Decoder(store)
    assert await decoder.decode('/only', dict[str, int | None]) == {}
    assert await decoder.decode('/mixed', dict[str, int | None]) == {'b': 1}


async def test_entries_that_write_nothing_keep_their_slot(store: RecordingStore) -> None:
    quiet = Service(field_1='q', listeners=[], quotas={})
    fallbacks = [Coverage(), Coverage(fallback=quiet), Coverage()]

    await Encoder(store).encode('/cov', fallbacks, as_type=list[Coverage])
    assert await Decoder(store).decode('/cov', list[Coverage]) == fallbacks

