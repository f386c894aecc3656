from itertools import islice

import pytest

from blockdb.record import (
    CITIES,
    NAMES,
    RANDOM_ID_LIMIT,
    RECORD_SIZE,
    SURNAMES,
    Record,
    RecordGenerator,
    format_record,
)


def test_pack_has_fixed_size():
    assert len(Record(5, "Anna", "Georgiou", "Patra").pack()) == RECORD_SIZE
    assert len(Record(0, "", "", "").pack()) == RECORD_SIZE


def test_pack_starts_with_little_endian_id():
    assert Record(1, "A", "B", "C").pack()[:5] == b"\x01\x00\x00\x00A"


def test_round_trip():
    record = Record(42, "Konstantinos", "Anagnostopoulos", "Ioannina")
    assert Record.unpack(record.pack()) == record


def test_unpack_ignores_trailing_bytes():
    record = Record(-3, "Sofia", "Nikolaou", "Rodos")
    assert Record.unpack(record.pack() + b"trailing") == record


def test_longest_name_fits():
    record = Record(1, "n" * 14, "s" * 19, "c" * 19)
    assert Record.unpack(record.pack()) == record


@pytest.mark.parametrize(
    "record",
    [
        Record(1, "n" * 15, "x", "y"),
        Record(1, "x", "s" * 20, "y"),
        Record(1, "x", "y", "c" * 20),
        Record(2**31, "x", "y", "z"),
    ],
)
def test_pack_rejects_oversized_fields(record):
    with pytest.raises(ValueError):
        record.pack()


def test_unpack_rejects_short_data():
    with pytest.raises(ValueError):
        Record.unpack(b"\0" * (RECORD_SIZE - 1))


def test_sequential_ids():
    generator = RecordGenerator(seed=7)
    assert [generator.next_record().id for _ in range(5)] == list(range(5))


def test_random_ids_stay_in_range():
    records = list(islice(RecordGenerator(seed=3, random_ids=True), 300))
    assert all(0 <= r.id < RANDOM_ID_LIMIT for r in records)


def test_generated_fields_come_from_tables():
    for record in islice(RecordGenerator(seed=11), 100):
        assert record.name in NAMES
        assert record.surname in SURNAMES
        assert record.city in CITIES
        assert Record.unpack(record.pack()) == record


def test_seed_makes_generation_repeatable():
    first = list(islice(RecordGenerator(seed=99, random_ids=True), 20))
    second = list(islice(RecordGenerator(seed=99, random_ids=True), 20))
    assert first == second


def test_format_record():
    assert format_record(Record(7, "Anna", "Georgiou", "Patra")) == "(7, Anna, Georgiou, Patra)"