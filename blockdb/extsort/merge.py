"""Merging groups of sorted chunks of one heap file into another."""

from __future__ import annotations

import heapq
from itertools import islice

from blockdb.extsort.chunk import iter_chunks
from blockdb.extsort.heap import SortHeapFile
from blockdb.extsort.record import SortRecord


def _sort_key(record: SortRecord) -> tuple[str, str]:
    return (record.name, record.surname)


def merge(
    input_heap: SortHeapFile, chunk_size: int, b_way: int, output_heap: SortHeapFile
) -> None:
    """Merge every ``b_way`` sorted chunks of ``chunk_size`` blocks into ``output_heap``.

    Each group of chunks becomes one sorted run in the output. Among equal
    records, those of an earlier chunk come first.
    """
    if b_way < 1:
        raise ValueError(f"b_way must be at least 1, got {b_way}")
    chunks = iter_chunks(input_heap, chunk_size)
    while group := list(islice(chunks, b_way)):
        runs = [chunk.records() for chunk in group]
        for record in heapq.merge(*runs, key=_sort_key):
            output_heap.insert(record)