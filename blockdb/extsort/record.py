"""Fixed-size person records ordered by name and surname, with a random generator."""

from __future__ import annotations

import random
import struct
from dataclasses import dataclass
from typing import Iterator

NAME_SIZE = 15
SURNAME_SIZE = 15
CITY_SIZE = 15
DELIMITER = b"\n"

# name, surname, city, padding to align the id, id, delimiter, trailing padding.
_LAYOUT = struct.Struct(f"<{NAME_SIZE}s{SURNAME_SIZE}s{CITY_SIZE}sxxxi2sxx")
SORT_RECORD_SIZE = _LAYOUT.size

# How many leading entries of each table the generator draws from.
NAME_CHOICES = 100
SURNAME_CHOICES = 82
CITY_CHOICES = 50

NAMES = (
    "Yannis", "Christofos", "Sofia", "Marianna", "Vagelis", "Maria", "Iosif", "Dionisis",
    "Konstantina", "Theofilos", "Giorgos", "Dimitris", "Eleni", "Nikos", "Panagiotis",
    "Despina", "Apostolos", "Eirini", "Antonis", "Katerina", "Alexandros", "Anastasia",
    "Leonidas", "Paraskevi", "Petros", "Eva", "Ioannis", "Stavroula", "Spyros", "Elisavet",
    "Andreas", "Efi", "Themis", "Aspasia", "Kostas", "Marina", "Giannis", "Vasiliki",
    "Dimitra", "Stefanos", "Rania", "Nikolaos", "Ioulia", "Charalambos", "Chrysa",
    "Thanasis", "Georgia", "Michalis", "Zoi", "Konstantinos", "Daphne", "Pavlos",
    "Xristina", "Kyriakos", "Loukia", "Sotiris", "Kalliopi", "Efthimis", "Fotini",
    "Alexandra", "Giorgis", "Danae", "Vasileios", "Magda", "Eleni", "Manolis", "Anna",
    "Dionysios", "Parthena", "Dimitroula", "Georgios", "Argyro", "Aggelos", "Angeliki",
    "Ioanna", "Christina", "Antonia", "Vassilis", "Ifigeneia", "Xenophon", "Eleftheria",
    "Achilleas", "Polina", "Nefeli", "Ioannis", "Melina", "Christos", "Olga", "Aikaterini",
    "Athanasios", "Irini", "Nikola", "Dora", "Elektra", "Rafail", "Klio", "Thalia",
    "Anastasios", "Violeta", "Efstathios",
)

SURNAMES = (
    "Ioannidis", "Svingos", "Karvounari", "Rezkalla", "Nikolopoulos", "Berreta", "Koronis",
    "Gaitanis", "Oikonomou", "Mailis", "Michas", "Halatsis", "Papadopoulos", "Pappas",
    "Georgiou", "Nikolaidis", "Katsaros", "Zervas", "Livanos", "Makris", "Papageorgiou",
    "Sarantopoulos", "Konstantinidis", "Antonopoulos", "Petrakis", "Apostolou",
    "Daskalakis", "Manolopoulos", "Papadakis", "Stamatakis", "Sotiriou", "Economou",
    "Tsilimparis", "Vlachos", "Mavridis", "Samaras", "Zachariadis", "Makridis",
    "Stavropoulos", "Diamantopoulos", "Matsoukas", "Fotopoulos", "Papantonis", "Gkikas",
    "Vourlis", "Apostolopoulos", "Papaioannou", "Sidiropoulos", "Maragos", "Gkotsis",
    "Papazoglou", "Antoniou", "Vasilakis", "Papoutsi", "Papageorgiou", "Papadellis",
    "Papazachariou", "Gkouskos", "Zachariou", "Paraskevopoulos", "Papadimitriou",
    "Stavrou", "Lamprou", "Kostopoulos", "Fotinakis", "Theodorou", "Gkogkas", "Papazisis",
    "Laskaris", "Gkizas", "Dellis", "Tsigaridas", "Papamichael", "Trikalinos",
    "Zafiriadis", "Kalliris", "Nastou", "Tsekouras", "Makrakis", "Tsimiklis",
    "Papanikolaou", "Saroglou", "Papaloukas",
)

CITIES = (
    "Athens", "Thessaloniki", "Patras", "Heraklion", "Larissa", "Volos", "Ioannina",
    "Komotini", "Rhodes", "Chania", "Kavala", "Serres", "Drama", "Veria", "Trikala",
    "Lamia", "Kozani", "Alexandroupoli", "Katerini", "Kalamata", "Mytilene", "Chalcis",
    "Sparta", "Kos", "Pyrgos", "Argos", "Livadeia", "Preveza", "Amaliada", "Karpenisi",
    "Xanthi", "Karditsa", "Ptolemaida", "Grevena", "Corfu", "Florina", "Nafplio", "Edessa",
    "Rethymno", "Kalymnos", "Naxos", "Arta", "Korinthos", "Chios", "Syros", "Kilkis",
    "Thiva", "Piraeus", "Eleusina", "Chalkida", "Peristeri", "Marousi", "Kallithea",
    "Acharnes", "Nea Ionia", "Ilioupoli", "Vrilissia", "Papagou", "Glyfada", "Kifisia",
    "Kalamaria", "Thermaikos", "Serres", "Drama", "Agrinio", "Chalcis", "Myrina",
    "Gaziosmanpasa", "Usak", "SanFran", "LosAngeles", "NewYork", "Tokyo", "London",
    "Paris", "Berlin", "Madrid", "Rome", "Sydney", "Toronto", "Dubai", "Mumbai", "Beijing",
    "Moscow", "Cairo", "RioDeJaneiro", "BuenosAires", "MexicoCity",
)


def _encode(value: str, size: int, field: str) -> bytes:
    raw = value.encode("utf-8")
    if len(raw) > size:
        raise ValueError(f"{field} must be at most {size} bytes: {value!r}")
    return raw


def _decode(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class SortRecord:
    """A person record sorted by name, then surname."""

    name: str
    surname: str
    city: str
    id: int

    def pack(self) -> bytes:
        """Encode the record into its fixed-size binary form."""
        if not -(2**31) <= self.id < 2**31:
            raise ValueError(f"id out of range: {self.id}")
        return _LAYOUT.pack(
            _encode(self.name, NAME_SIZE, "name"),
            _encode(self.surname, SURNAME_SIZE, "surname"),
            _encode(self.city, CITY_SIZE, "city"),
            self.id,
            DELIMITER,
        )

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> SortRecord:
        """Decode a record from the start of ``data``."""
        if len(data) < SORT_RECORD_SIZE:
            raise ValueError(f"need {SORT_RECORD_SIZE} bytes, got {len(data)}")
        name, surname, city, key, _ = _LAYOUT.unpack_from(data)
        return cls(_decode(name), _decode(surname), _decode(city), key)


class SortRecordGenerator:
    """Produces consecutively numbered records with random names and cities."""

    def __init__(self, seed: int | None = None) -> None:
        self._rng = random.Random(seed)
        self._next_id = 0

    def next_record(self) -> SortRecord:
        """Return the next generated record."""
        key = self._next_id
        self._next_id += 1
        name = NAMES[self._rng.randrange(NAME_CHOICES)]
        surname = SURNAMES[self._rng.randrange(SURNAME_CHOICES)]
        city = CITIES[self._rng.randrange(CITY_CHOICES)]
        return SortRecord(name, surname, city, key)

    def __iter__(self) -> Iterator[SortRecord]:
        while True:
            yield self.next_record()


def format_sort_record(record: SortRecord) -> str:
    """Render a record as ``id,name,surname,city``."""
    return f"{record.id},{record.name},{record.surname},{record.city}"


def records_in_order(first: SortRecord, second: SortRecord) -> bool:
    """Whether ``first`` may come before ``second`` when ordering by name and surname."""
    return (first.name, first.surname) <= (second.name, second.surname)