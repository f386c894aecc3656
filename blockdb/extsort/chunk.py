"""Chunks: runs of consecutive data blocks of a heap file, read as one sequence."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from blockdb.extsort.heap import SortHeapFile
from blockdb.extsort.record import SortRecord, format_sort_record


@dataclass(frozen=True)
class Chunk:
    """The blocks ``from_block_id`` to ``to_block_id`` (inclusive) of a heap file."""

    heap: SortHeapFile
    from_block_id: int
    to_block_id: int

    @property
    def blocks_in_chunk(self) -> int:
        return self.to_block_id - self.from_block_id + 1

    @property
    def records_in_chunk(self) -> int:
        return sum(self.heap.record_count(block_id) for block_id in self._block_ids())

    def _block_ids(self) -> range:
        return range(self.from_block_id, self.to_block_id + 1)

    def records(self) -> Iterator[SortRecord]:
        """Yield the chunk's records in storage order."""
        for block_id in self._block_ids():
            for cursor in range(self.heap.record_count(block_id)):
                yield self.heap.get_record(block_id, cursor)

    def _locate(self, i: int) -> tuple[int, int]:
        if i < 0:
            raise IndexError(f"record index must not be negative: {i}")
        remaining = i
        for block_id in self._block_ids():
            count = self.heap.record_count(block_id)
            if remaining < count:
                return block_id, remaining
            remaining -= count
        raise IndexError(f"chunk has no record {i}")

    def get_record(self, i: int) -> SortRecord:
        """Return the ``i``-th record of the chunk."""
        block_id, cursor = self._locate(i)
        return self.heap.get_record(block_id, cursor)

    def update_record(self, i: int, record: SortRecord) -> None:
        """Replace the ``i``-th record of the chunk."""
        block_id, cursor = self._locate(i)
        self.heap.update_record(block_id, cursor, record)

    def format(self) -> str:
        """Describe the chunk's records, each with its slot within its block."""
        lines = []
        for block_id in self._block_ids():
            for cursor in range(self.heap.record_count(block_id)):
                record = self.heap.get_record(block_id, cursor)
                lines.append(f"Record {cursor}: {format_sort_record(record)}\n")
        return "".join(lines)


def iter_chunks(heap: SortHeapFile, blocks_in_chunk: int) -> Iterator[Chunk]:
    """Yield consecutive chunks of ``blocks_in_chunk`` data blocks; the last may be shorter."""
    if blocks_in_chunk < 1:
        raise ValueError(f"blocks_in_chunk must be at least 1, got {blocks_in_chunk}")
    last = heap.last_block_id()
    for start in range(1, last + 1, blocks_in_chunk):
        yield Chunk(heap, start, min(start + blocks_in_chunk - 1, last))