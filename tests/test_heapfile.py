import pytest

from blockdb.blockfile import BLOCK_SIZE, BlockFileError, BlockManager, ErrorCode
from blockdb.heapfile import RECORDS_PER_BLOCK, HeapFile, main
from blockdb.record import RECORD_SIZE, Record, RecordGenerator


def _records(count, seed=1):
    generator = RecordGenerator(seed=seed)
    return [generator.next_record() for _ in range(count)]


def test_full_block_holds_records_per_block(tmp_path):
    with BlockManager() as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            capacity = heap.records_per_block
            assert capacity * RECORD_SIZE < BLOCK_SIZE
            ids = [heap.insert(r) for r in _records(capacity)]
            assert ids == [1] * capacity
            assert heap.number_of_blocks == 1
            assert heap.last_block == 1


def test_insert_fills_blocks_in_order(tmp_path):
    with BlockManager() as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            assert heap.records_per_block == RECORDS_PER_BLOCK
            ids = [heap.insert(r) for r in _records(RECORDS_PER_BLOCK + 1)]
            assert ids[:RECORDS_PER_BLOCK] == [1] * RECORDS_PER_BLOCK
            assert ids[-1] == 2
            assert heap.number_of_blocks == 2
            assert heap.last_block == 2


def test_every_record_is_found(tmp_path):
    records = _records(50)
    with BlockManager() as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            block_ids = [heap.insert(r) for r in records]
            assert block_ids == sorted(block_ids)
            for record in records:
                matches, blocks_read = heap.get_all_entries(record.id)
                assert matches == [record]
                assert blocks_read == heap.number_of_blocks


def test_records_survive_reopen(tmp_path):
    path = tmp_path / "heap.db"
    records = _records(30, seed=5)
    with BlockManager() as manager:
        with HeapFile.create(manager, path) as heap:
            for record in records:
                heap.insert(record)
            state = (heap.last_block, heap.number_of_blocks, heap.first_block)
    with BlockManager() as manager:
        with HeapFile.open(manager, path) as heap:
            assert (heap.last_block, heap.number_of_blocks, heap.first_block) == state
            for record in records:
                assert heap.get_all_entries(record.id)[0] == [record]
            extra = Record(999, "Anna", "Georgiou", "Volos")
            heap.insert(extra)
            assert heap.get_all_entries(999)[0] == [extra]


def test_duplicate_ids_are_all_returned(tmp_path):
    first = Record(4, "Anna", "Georgiou", "Patra")
    second = Record(4, "Maria", "Nikolaou", "Volos")
    with BlockManager() as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            heap.insert(first)
            for record in _records(20):
                heap.insert(Record(record.id + 100, record.name, record.surname, record.city))
            heap.insert(second)
            assert heap.get_all_entries(4)[0] == [first, second]
            assert heap.get_all_entries(-1)[0] == []


def test_small_buffer_is_enough(tmp_path):
    records = _records(60, seed=9)
    with BlockManager(buffer_size=2) as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            for record in records:
                heap.insert(record)
            assert heap.get_all_entries(records[-1].id)[0] == [records[-1]]


def test_empty_heap_search(tmp_path):
    with BlockManager() as manager:
        with HeapFile.create(manager, tmp_path / "heap.db") as heap:
            assert heap.get_all_entries(0) == ([], 0)


def test_create_existing_file_fails(tmp_path):
    path = tmp_path / "heap.db"
    with BlockManager() as manager:
        HeapFile.create(manager, path).close()
        with pytest.raises(BlockFileError) as info:
            HeapFile.create(manager, path)
        assert info.value.code == ErrorCode.FILE_ALREADY_EXISTS


def test_open_file_without_header_fails(tmp_path):
    path = tmp_path / "bare.db"
    with BlockManager() as manager:
        manager.create_file(path)
        with pytest.raises(BlockFileError) as info:
            HeapFile.open(manager, path)
        assert info.value.code == ErrorCode.INVALID_BLOCK_NUMBER_ERROR


def test_close_twice_fails(tmp_path):
    with BlockManager() as manager:
        heap = HeapFile.create(manager, tmp_path / "heap.db")
        heap.close()
        with pytest.raises(BlockFileError) as info:
            heap.close()
        assert info.value.code == ErrorCode.INVALID_FILE_ERROR


def test_main_runs_and_reruns(tmp_path, capsys):
    path = tmp_path / "data.db"
    assert main(["--file", str(path), "--records", "40"]) == 0
    out = capsys.readouterr().out
    assert "Insert Entries" in out
    assert "Searching for:" in out
    assert main(["--file", str(path), "--records", "40"]) == 0
    captured = capsys.readouterr()
    assert "already exists" in captured.err
    assert "RUN PrintAllEntries" in captured.out


def test_main_rejects_no_records(tmp_path):
    with pytest.raises(SystemExit):
        main(["--file", str(tmp_path / "data.db"), "--records", "0"])