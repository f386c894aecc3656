"""Fixed-size person records and a generator of random ones."""

from __future__ import annotations

import random
import struct
from dataclasses import dataclass
from typing import Iterator

NAME_SIZE = 15
SURNAME_SIZE = 20
CITY_SIZE = 20
RANDOM_ID_LIMIT = 1000

_LAYOUT = struct.Struct(f"<i{NAME_SIZE}s{SURNAME_SIZE}s{CITY_SIZE}sx")
RECORD_SIZE = _LAYOUT.size

NAMES = (
    "Alexandros",
    "Sofia",
    "Dimitris",
    "Anna",
    "Konstantinos",
    "Maria",
    "Georgios",
    "Eleni",
    "Petros",
    "Evangelia",
)

SURNAMES = (
    "Papadopoulos",
    "Georgiou",
    "Dimitriou",
    "Anagnostopoulos",
    "Karagiannis",
    "Mavromatis",
    "Nikolaou",
    "Christodoulou",
    "Kostopoulos",
    "Stamatopoulos",
)

CITIES = (
    "Athina",
    "Patra",
    "Irakleio",
    "Larisa",
    "Volos",
    "Ioannina",
    "Chania",
    "Kalamata",
    "Rodos",
)


def _encode(value: str, size: int, field: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) >= size:
        raise ValueError(f"{field} must be shorter than {size} bytes: {value!r}")
    return raw


def _decode(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class Record:
    """A person with an integer key."""

    id: int
    name: str
    surname: str
    city: str

    def pack(self) -> bytes:
        """Encode the record into its fixed-size binary form."""
        if not -(2**31) <= self.id < 2**31:
            raise ValueError(f"id out of range: {self.id}")
        return _LAYOUT.pack(
            self.id,
            _encode(self.name, NAME_SIZE, "name"),
            _encode(self.surname, SURNAME_SIZE, "surname"),
            _encode(self.city, CITY_SIZE, "city"),
        )

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> Record:
        """Decode a record from the start of ``data``."""
        if len(data) < RECORD_SIZE:
            raise ValueError(f"need {RECORD_SIZE} bytes, got {len(data)}")
        key, name, surname, city = _LAYOUT.unpack_from(data)
        return cls(key, _decode(name), _decode(surname), _decode(city))


class RecordGenerator:
    """Produces records with random names, either numbered or with random ids."""

    def __init__(self, seed: int | None = None, random_ids: bool = False) -> None:
        self._rng = random.Random(seed)
        self._random_ids = random_ids
        self._next_id = 0

    def next_record(self) -> Record:
        """Return the next generated record."""
        if self._random_ids:
            key = self._rng.randrange(RANDOM_ID_LIMIT)
        else:
            key = self._next_id
            self._next_id += 1
        name = self._rng.choice(NAMES)
        surname = self._rng.choice(SURNAMES)
        city = self._rng.choice(CITIES)
        return Record(key, name, surname, city)

    def __iter__(self) -> Iterator[Record]:
        while True:
            yield self.next_record()


def format_record(record: Record) -> str:
    """Render a record as ``(id, name, surname, city)``."""
    return f"({record.id}, {record.name}, {record.surname}, {record.city})"