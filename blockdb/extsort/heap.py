"""Heap files of sortable records, addressed by block and slot."""

from __future__ import annotations

import os
import struct

from blockdb.blockfile import BLOCK_SIZE, Block, BlockFile, BlockFileError, BlockManager
from blockdb.extsort.record import SORT_RECORD_SIZE, SortRecord, format_sort_record

# Header in block 0: last block id, total records, records per block.
_HEADER = struct.Struct("<iii")
# Record count stored at the end of every data block.
_COUNT = struct.Struct("<i")
_COUNT_OFFSET = BLOCK_SIZE - _COUNT.size

RECORDS_PER_BLOCK = _COUNT_OFFSET // SORT_RECORD_SIZE


def _slot(cursor: int) -> slice:
    return slice(cursor * SORT_RECORD_SIZE, (cursor + 1) * SORT_RECORD_SIZE)


class SortHeapFile:
    """An open heap file whose data blocks start at block 1."""

    def __init__(
        self, file: BlockFile, last_block_id: int, total_records: int, block_capacity: int
    ) -> None:
        self._file = file
        self._last_block_id = last_block_id
        self.total_records = total_records
        self._capacity = block_capacity

    @classmethod
    def create(cls, manager: BlockManager, path: str | os.PathLike[str]) -> SortHeapFile:
        """Create an empty heap file and return it open."""
        manager.create_file(path)
        file = manager.open_file(path)
        block = file.allocate_block()
        try:
            _HEADER.pack_into(block.data, 0, 0, 0, RECORDS_PER_BLOCK)
            block.mark_dirty()
        finally:
            file.unpin(block)
        return cls(file, 0, 0, RECORDS_PER_BLOCK)

    @classmethod
    def open(cls, manager: BlockManager, path: str | os.PathLike[str]) -> SortHeapFile:
        """Open an existing heap file, reading its header from block 0."""
        file = manager.open_file(path)
        try:
            with file.pinned(0) as block:
                last, total, capacity = _HEADER.unpack_from(block.data)
        except BlockFileError:
            file.close()
            raise
        return cls(file, last, total, capacity)

    def _check_block(self, block_id: int) -> None:
        if not 1 <= block_id <= self._last_block_id:
            raise IndexError(f"no data block {block_id}; data blocks are 1..{self._last_block_id}")

    @staticmethod
    def _count(block: Block) -> int:
        return _COUNT.unpack_from(block.data, _COUNT_OFFSET)[0]

    def insert(self, record: SortRecord) -> int:
        """Append a record and return the id of the block holding it."""
        payload = record.pack()
        if self._last_block_id == 0 or self.record_count(self._last_block_id) >= self._capacity:
            block = self._file.allocate_block()
        else:
            block = self._file.get_block(self._last_block_id)
        try:
            count = self._count(block)
            block.data[_slot(count)] = payload
            _COUNT.pack_into(block.data, _COUNT_OFFSET, count + 1)
            block.mark_dirty()
        finally:
            self._file.unpin(block)
        self._last_block_id = block.block_num
        self.total_records += 1
        return block.block_num

    def get_record(self, block_id: int, cursor: int) -> SortRecord:
        """Return the record at slot ``cursor`` of block ``block_id``."""
        self._check_block(block_id)
        with self._file.pinned(block_id) as block:
            count = self._count(block)
            if not 0 <= cursor < count:
                raise IndexError(f"block {block_id} has no record {cursor}")
            return SortRecord.unpack(block.data[_slot(cursor)])

    def update_record(self, block_id: int, cursor: int, record: SortRecord) -> None:
        """Replace the record at slot ``cursor`` of block ``block_id``."""
        payload = record.pack()
        self._check_block(block_id)
        with self._file.pinned(block_id) as block:
            count = self._count(block)
            if not 0 <= cursor < count:
                raise IndexError(f"block {block_id} has no record {cursor}")
            block.data[_slot(cursor)] = payload
            block.mark_dirty()

    def record_count(self, block_id: int) -> int:
        """Number of records stored in block ``block_id``."""
        self._check_block(block_id)
        with self._file.pinned(block_id) as block:
            return self._count(block)

    def last_block_id(self) -> int:
        """Id of the last data block, 0 when the file holds no records."""
        return self._last_block_id

    def max_records_per_block(self) -> int:
        """Number of records that fit in one block."""
        return self._capacity

    def _block_records(self, block_id: int) -> list[SortRecord]:
        self._check_block(block_id)
        with self._file.pinned(block_id) as block:
            return [
                SortRecord.unpack(block.data[_slot(cursor)]) for cursor in range(self._count(block))
            ]

    def format_block(self, block_id: int) -> str:
        """Describe the records of one block, one per line."""
        return "".join(f"{format_sort_record(r)}\n" for r in self._block_records(block_id))

    def format_entries(self) -> str:
        """Describe every record in the file, one per line."""
        return "".join(
            self.format_block(block_id) for block_id in range(1, self._last_block_id + 1)
        )

    def close(self) -> None:
        """Store the header and close the file."""
        with self._file.pinned(0) as block:
            _HEADER.pack_into(
                block.data, 0, self._last_block_id, self.total_records, self._capacity
            )
            block.mark_dirty()
        self._file.close()

    def __enter__(self) -> SortHeapFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()