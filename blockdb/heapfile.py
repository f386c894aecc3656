"""Heap files: unordered records appended block by block."""

from __future__ import annotations

import argparse
import os
import random
import struct
import sys

from blockdb.blockfile import (
    BLOCK_SIZE,
    Block,
    BlockFile,
    BlockFileError,
    BlockManager,
    ErrorCode,
    ReplacementPolicy,
)
from blockdb.record import RECORD_SIZE, Record, RecordGenerator, format_record

# Header in block 0: last block, number of data blocks, records per block, first data block.
_HEADER = struct.Struct("<iiii")
# Trailer at the end of every data block: record count, free bytes, next block.
_BLOCK_INFO = struct.Struct("<iiq")
_INFO_OFFSET = BLOCK_SIZE - _BLOCK_INFO.size

RECORDS_PER_BLOCK = (BLOCK_SIZE - _BLOCK_INFO.size) // RECORD_SIZE


class HeapFile:
    """An open heap file of records."""

    def __init__(
        self,
        file: BlockFile,
        last_block: int,
        number_of_blocks: int,
        records_per_block: int,
        first_block: int,
    ) -> None:
        self._file = file
        self.last_block = last_block
        self.number_of_blocks = number_of_blocks
        self.records_per_block = records_per_block
        self.first_block = first_block

    @classmethod
    def create(cls, manager: BlockManager, path: str | os.PathLike[str]) -> HeapFile:
        """Create an empty heap file and return it open."""
        manager.create_file(path)
        file = manager.open_file(path)
        block = file.allocate_block()
        try:
            _HEADER.pack_into(block.data, 0, 0, 0, RECORDS_PER_BLOCK, -1)
            block.mark_dirty()
        finally:
            file.unpin(block)
        return cls(file, 0, 0, RECORDS_PER_BLOCK, -1)

    @classmethod
    def open(cls, manager: BlockManager, path: str | os.PathLike[str]) -> HeapFile:
        """Open an existing heap file, reading its header from block 0."""
        file = manager.open_file(path)
        try:
            with file.pinned(0) as block:
                last, count, per_block, first = _HEADER.unpack_from(block.data)
        except BlockFileError:
            file.close()
            raise
        return cls(file, last, count, per_block, first)

    @staticmethod
    def _start_block(block: Block, payload: bytes) -> None:
        block.data[:RECORD_SIZE] = payload
        _BLOCK_INFO.pack_into(
            block.data, _INFO_OFFSET, 1, BLOCK_SIZE - RECORD_SIZE - _BLOCK_INFO.size, -1
        )
        block.mark_dirty()

    def insert(self, record: Record) -> int:
        """Append a record and return the number of the block holding it."""
        payload = record.pack()
        if self.last_block == 0:
            block = self._file.allocate_block()
            try:
                self._start_block(block, payload)
            finally:
                self._file.unpin(block)
            self.number_of_blocks += 1
            self.last_block = block.block_num
            self.first_block = block.block_num
            return self.last_block

        last = self._file.get_block(self.last_block)
        try:
            count, free, next_block = _BLOCK_INFO.unpack_from(last.data, _INFO_OFFSET)
            if free < RECORD_SIZE:
                new = self._file.allocate_block()
                try:
                    self._start_block(new, payload)
                finally:
                    self._file.unpin(new)
                _BLOCK_INFO.pack_into(last.data, _INFO_OFFSET, count, free, new.block_num)
                last.mark_dirty()
                self.number_of_blocks += 1
                self.last_block = self._file.block_count() - 1
            else:
                start = count * RECORD_SIZE
                last.data[start : start + RECORD_SIZE] = payload
                _BLOCK_INFO.pack_into(
                    last.data, _INFO_OFFSET, count + 1, free - RECORD_SIZE, next_block
                )
                last.mark_dirty()
        finally:
            self._file.unpin(last)
        return self.last_block

    def get_all_entries(self, value: int) -> tuple[list[Record], int]:
        """Return the records whose id equals ``value`` and the number of blocks read."""
        matches = []
        for block_id in range(1, self.number_of_blocks + 1):
            with self._file.pinned(block_id) as block:
                count = _BLOCK_INFO.unpack_from(block.data, _INFO_OFFSET)[0]
                for slot in range(count):
                    record = Record.unpack(
                        memoryview(block.data)[slot * RECORD_SIZE : (slot + 1) * RECORD_SIZE]
                    )
                    if record.id == value:
                        matches.append(record)
        return matches, self.number_of_blocks

    def close(self) -> None:
        """Store the header and close the file."""
        with self._file.pinned(0) as block:
            _HEADER.pack_into(
                block.data,
                0,
                self.last_block,
                self.number_of_blocks,
                self.records_per_block,
                self.first_block,
            )
            block.mark_dirty()
        self._file.close()

    def __enter__(self) -> HeapFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def main(argv: list[str] | None = None) -> int:
    """Fill a heap file with random records and search it for one id."""
    parser = argparse.ArgumentParser(description="Insert random records into a heap file.")
    parser.add_argument("--file", default="data.db", help="heap file to create")
    parser.add_argument("--records", type=int, default=1000, help="number of records")
    parser.add_argument("--seed", type=int, default=12569874, help="random seed")
    args = parser.parse_args(argv)
    if args.records < 1:
        parser.error("--records must be at least 1")

    generator = RecordGenerator(seed=args.seed)
    with BlockManager(ReplacementPolicy.LRU) as manager:
        try:
            heap = HeapFile.create(manager, args.file)
        except BlockFileError as exc:
            if exc.code != ErrorCode.FILE_ALREADY_EXISTS:
                raise
            print(exc, file=sys.stderr)
            heap = HeapFile.open(manager, args.file)
        with heap:
            print("Insert Entries")
            for _ in range(args.records):
                heap.insert(generator.next_record())
            print("RUN PrintAllEntries")
            target = random.Random(args.seed).randrange(args.records)
            print(f"\nSearching for: {target}")
            matches, _ = heap.get_all_entries(target)
            for record in matches:
                print(format_record(record))
    return 0