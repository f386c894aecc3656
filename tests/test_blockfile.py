import pytest

from blockdb.blockfile import (
    BLOCK_SIZE,
    BlockFileError,
    BlockManager,
    ErrorCode,
    ReplacementPolicy,
)


def _fill(file, count):
    for i in range(count):
        block = file.allocate_block()
        block.data[:4] = bytes([i + 1] * 4)
        block.mark_dirty()
        file.unpin(block)


def test_blocks_survive_reopen(tmp_path):
    path = tmp_path / "blocks.db"
    with BlockManager() as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        _fill(file, 10)
        assert file.block_count() == 10
        file.close()
    assert path.stat().st_size == 10 * BLOCK_SIZE
    with BlockManager() as manager:
        file = manager.open_file(path)
        assert file.block_count() == 10
        for i in range(10):
            with file.pinned(i) as block:
                assert bytes(block.data[:4]) == bytes([i + 1] * 4)
                assert len(block.data) == BLOCK_SIZE
        file.close()


@pytest.mark.parametrize("policy", list(ReplacementPolicy))
def test_eviction_writes_dirty_blocks(tmp_path, policy):
    path = tmp_path / "evict.db"
    with BlockManager(policy, buffer_size=2) as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        _fill(file, 6)
        for i in range(6):
            with file.pinned(i) as block:
                assert bytes(block.data[:4]) == bytes([i + 1] * 4)


def test_changes_without_dirty_flag_are_dropped(tmp_path):
    path = tmp_path / "clean.db"
    with BlockManager(buffer_size=1) as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        _fill(file, 2)
        with file.pinned(0) as block:
            block.data[0] = 99
        with file.pinned(1):
            pass
        with file.pinned(0) as block:
            assert block.data[0] == 1


def test_full_memory(tmp_path):
    path = tmp_path / "full.db"
    with BlockManager(buffer_size=2) as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        first = file.allocate_block()
        second = file.allocate_block()
        with pytest.raises(BlockFileError) as info:
            file.allocate_block()
        assert info.value.code == ErrorCode.FULL_MEMORY_ERROR
        assert file.block_count() == 2
        file.unpin(first)
        file.unpin(second)


def test_same_block_is_shared_while_pinned(tmp_path):
    path = tmp_path / "shared.db"
    with BlockManager() as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        _fill(file, 1)
        a = file.get_block(0)
        b = file.get_block(0)
        assert a is b
        assert a.pin_count == 2
        file.unpin(a)
        file.unpin(b)
        assert a.pin_count == 0


@pytest.mark.parametrize("number", [-1, 0, 3])
def test_invalid_block_number(tmp_path, number):
    path = tmp_path / "empty.db"
    with BlockManager() as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        with pytest.raises(BlockFileError) as info:
            file.get_block(number)
        assert info.value.code == ErrorCode.INVALID_BLOCK_NUMBER_ERROR


def test_create_existing_file(tmp_path):
    path = tmp_path / "twice.db"
    with BlockManager() as manager:
        manager.create_file(path)
        with pytest.raises(BlockFileError) as info:
            manager.create_file(path)
        assert info.value.code == ErrorCode.FILE_ALREADY_EXISTS


def test_open_missing_file(tmp_path):
    with BlockManager() as manager:
        with pytest.raises(BlockFileError) as info:
            manager.open_file(tmp_path / "missing.db")
        assert info.value.code == ErrorCode.ERROR


def test_close_with_pinned_block(tmp_path):
    path = tmp_path / "pinned.db"
    with BlockManager() as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        block = file.allocate_block()
        with pytest.raises(BlockFileError) as info:
            file.close()
        assert info.value.code == ErrorCode.AVAILABLE_PIN_BLOCKS_ERROR
        file.unpin(block)
        file.close()
        with pytest.raises(BlockFileError) as info:
            file.block_count()
        assert info.value.code == ErrorCode.INVALID_FILE_ERROR


def test_open_files_limit(tmp_path):
    path = tmp_path / "limit.db"
    with BlockManager(max_open_files=1) as manager:
        manager.create_file(path)
        manager.open_file(path)
        with pytest.raises(BlockFileError) as info:
            manager.open_file(path)
        assert info.value.code == ErrorCode.OPEN_FILES_LIMIT_ERROR


def test_unpin_unpinned_block(tmp_path):
    path = tmp_path / "unpin.db"
    with BlockManager() as manager:
        manager.create_file(path)
        file = manager.open_file(path)
        block = file.allocate_block()
        file.unpin(block)
        with pytest.raises(BlockFileError) as info:
            file.unpin(block)
        assert info.value.code == ErrorCode.ERROR


def test_manager_close_closes_files(tmp_path):
    path = tmp_path / "managed.db"
    manager = BlockManager()
    manager.create_file(path)
    file = manager.open_file(path)
    _fill(file, 3)
    manager.close()
    assert file.closed
    assert path.stat().st_size == 3 * BLOCK_SIZE
    with pytest.raises(BlockFileError) as info:
        manager.create_file(tmp_path / "other.db")
    assert info.value.code == ErrorCode.ERROR


def test_invalid_buffer_size():
    with pytest.raises(ValueError):
        BlockManager(buffer_size=0)