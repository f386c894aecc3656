"""Sorting the chunks of a heap file in place by name and surname."""

from __future__ import annotations

from typing import Iterator

from blockdb.extsort.chunk import Chunk, iter_chunks
from blockdb.extsort.heap import SortHeapFile
from blockdb.extsort.record import SortRecord


def _sort_key(record: SortRecord) -> tuple[str, str]:
    return (record.name, record.surname)


def should_swap(first: SortRecord, second: SortRecord) -> bool:
    """Whether ``first`` must move after ``second`` when ordering by name, then surname."""
    return _sort_key(first) > _sort_key(second)


def _positions(chunk: Chunk) -> Iterator[tuple[int, int]]:
    heap = chunk.heap
    for block_id in range(chunk.from_block_id, chunk.to_block_id + 1):
        for cursor in range(heap.record_count(block_id)):
            yield block_id, cursor


def sort_chunk(chunk: Chunk) -> None:
    """Sort the records of one chunk in place; records with equal keys keep their order."""
    ordered = sorted(chunk.records(), key=_sort_key)
    for (block_id, cursor), record in zip(_positions(chunk), ordered):
        chunk.heap.update_record(block_id, cursor, record)


def sort_file_in_chunks(heap: SortHeapFile, blocks_in_chunk: int) -> None:
    """Sort every chunk of ``blocks_in_chunk`` data blocks of the heap file."""
    for chunk in iter_chunks(heap, blocks_in_chunk):
        sort_chunk(chunk)