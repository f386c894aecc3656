import pytest

from blockdb.blockfile import BlockFileError, BlockManager, ErrorCode
from blockdb.extsort.heap import RECORDS_PER_BLOCK, SortHeapFile
from blockdb.extsort.record import SortRecord, SortRecordGenerator, format_sort_record


@pytest.fixture
def manager():
    with BlockManager() as block_manager:
        yield block_manager


def _records(count, seed=1):
    generator = SortRecordGenerator(seed=seed)
    return [generator.next_record() for _ in range(count)]


def test_capacity_per_block(manager, tmp_path):
    with SortHeapFile.create(manager, tmp_path / "cap.db") as heap:
        assert heap.max_records_per_block() == 9


def test_new_file_is_empty(manager, tmp_path):
    with SortHeapFile.create(manager, tmp_path / "h.db") as heap:
        assert heap.last_block_id() == 0
        assert heap.total_records == 0
        assert heap.max_records_per_block() == RECORDS_PER_BLOCK
        assert heap.format_entries() == ""


def test_insert_fills_blocks_in_order(manager, tmp_path):
    records = _records(RECORDS_PER_BLOCK + 1)
    with SortHeapFile.create(manager, tmp_path / "h.db") as heap:
        block_ids = [heap.insert(record) for record in records]
        assert block_ids == [1] * RECORDS_PER_BLOCK + [2]
        assert heap.last_block_id() == 2
        assert heap.record_count(1) == RECORDS_PER_BLOCK
        assert heap.record_count(2) == 1
        assert heap.total_records == len(records)
        assert heap.get_record(2, 0) == records[-1]
        assert [heap.get_record(1, c) for c in range(RECORDS_PER_BLOCK)] == records[:-1]


def test_update_record(manager, tmp_path):
    records = _records(3)
    replacement = SortRecord("Zoi", "Zervas", "Kos", 99)
    with SortHeapFile.create(manager, tmp_path / "h.db") as heap:
        for record in records:
            heap.insert(record)
        heap.update_record(1, 1, replacement)
        assert heap.get_record(1, 1) == replacement
        assert heap.get_record(1, 0) == records[0]
        assert heap.get_record(1, 2) == records[2]


def test_out_of_range_access_raises(manager, tmp_path):
    with SortHeapFile.create(manager, tmp_path / "h.db") as heap:
        heap.insert(_records(1)[0])
        with pytest.raises(IndexError):
            heap.get_record(1, 1)
        with pytest.raises(IndexError):
            heap.get_record(2, 0)
        with pytest.raises(IndexError):
            heap.record_count(0)
        with pytest.raises(IndexError):
            heap.update_record(1, 5, _records(1)[0])


def test_reopen_keeps_contents(manager, tmp_path):
    path = tmp_path / "h.db"
    records = _records(RECORDS_PER_BLOCK + 3)
    with SortHeapFile.create(manager, path) as heap:
        for record in records:
            heap.insert(record)
    with SortHeapFile.open(manager, path) as heap:
        assert heap.last_block_id() == 2
        assert heap.total_records == len(records)
        assert heap.get_record(2, 2) == records[-1]
        heap.insert(records[0])
        assert heap.record_count(2) == 4


def test_create_existing_file_fails(manager, tmp_path):
    path = tmp_path / "h.db"
    SortHeapFile.create(manager, path).close()
    with pytest.raises(BlockFileError) as info:
        SortHeapFile.create(manager, path)
    assert info.value.code == ErrorCode.FILE_ALREADY_EXISTS


def test_format_block_and_entries(manager, tmp_path):
    records = _records(RECORDS_PER_BLOCK + 2)
    with SortHeapFile.create(manager, tmp_path / "h.db") as heap:
        for record in records:
            heap.insert(record)
        expected = "".join(f"{format_sort_record(r)}\n" for r in records)
        assert heap.format_entries() == expected
        assert heap.format_block(2).splitlines() == [format_sort_record(r) for r in records[-2:]]


def test_documented_block_count(manager, tmp_path):
    generator = SortRecordGenerator(seed=12569874)
    with SortHeapFile.create(manager, tmp_path / "test1.db") as heap:
        for _ in range(4608):
            heap.insert(generator.next_record())
        assert heap.last_block_id() == 512