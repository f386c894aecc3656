"""Sort heap files externally and report the sorted runs after each phase."""

from __future__ import annotations

import argparse
import os
import sys

from blockdb.blockfile import BlockFileError, BlockManager, ReplacementPolicy
from blockdb.extsort.heap import SortHeapFile
from blockdb.extsort.merge import merge
from blockdb.extsort.record import SortRecord, SortRecordGenerator, records_in_order
from blockdb.extsort.sort import sort_file_in_chunks

SEED = 12569874

_DEFAULT_RUNS = (
    ("./test1.db", 4608, 1, 2),
    ("./test2.db", 11520, 5, 4),
)


def _check_parameters(chunk_size: int, b_way: int) -> None:
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be at least 1, got {chunk_size}")
    if b_way < 2:
        raise ValueError(f"b_way must be at least 2, got {b_way}")


def populate_heap_file(
    manager: BlockManager, path: str | os.PathLike[str], total_records: int
) -> SortHeapFile:
    """Create a heap file, fill it with seeded random records and return it open."""
    if total_records < 0:
        raise ValueError(f"total_records must not be negative, got {total_records}")
    heap = SortHeapFile.create(manager, path)
    generator = SortRecordGenerator(seed=SEED)
    for _ in range(total_records):
        heap.insert(generator.next_record())
    return heap


def merge_phases(
    manager: BlockManager,
    path: str | os.PathLike[str],
    heap: SortHeapFile,
    chunk_size: int,
    b_way: int,
) -> list[str]:
    """Merge runs of ``chunk_size`` blocks ``b_way`` at a time until one run remains.

    Phase ``i`` writes ``<path><i>.db``. Every heap involved, ``heap`` included,
    is closed on return. Returns the paths of the files written, in order.
    """
    _check_parameters(chunk_size, b_way)
    base = os.fspath(path)
    outputs: list[str] = []
    current = heap
    try:
        while chunk_size < current.last_block_id():
            out_path = f"{base}{len(outputs) + 1}.db"
            output = SortHeapFile.create(manager, out_path)
            outputs.append(out_path)
            try:
                merge(current, chunk_size, b_way, output)
            except BaseException:
                output.close()
                raise
            current.close()
            current = output
            chunk_size *= b_way
    finally:
        current.close()
    return outputs


def _block_records(heap: SortHeapFile, block_id: int) -> list[SortRecord]:
    return [heap.get_record(block_id, cursor) for cursor in range(heap.record_count(block_id))]


def count_chunks(manager: BlockManager, path: str | os.PathLike[str]) -> int | None:
    """Count the sorted runs of a heap file.

    Returns ``None`` when the file has no data blocks or a block is not sorted.
    """
    with SortHeapFile.open(manager, path) as heap:
        last = heap.last_block_id()
        if last < 1:
            return None
        runs = 0
        previous: SortRecord | None = None
        for block_id in range(1, last + 1):
            records = _block_records(heap, block_id)
            if not all(records_in_order(a, b) for a, b in zip(records, records[1:])):
                return None
            if not records:
                continue
            if previous is not None and not records_in_order(previous, records[0]):
                runs += 1
            previous = records[-1]
        return runs + 1


def _show(count: int | None) -> int:
    return -1 if count is None else count


def run_sort(
    manager: BlockManager,
    path: str | os.PathLike[str],
    total_records: int,
    chunk_size: int,
    b_way: int,
) -> list[str]:
    """Create, sort and merge a heap file; return report lines on its chunks per phase."""
    _check_parameters(chunk_size, b_way)
    name = os.fspath(path)
    heap = populate_heap_file(manager, name, total_records)
    lines = [f"File {name} has {heap.last_block_id()} blocks"]
    try:
        sort_file_in_chunks(heap, chunk_size)
    except BaseException:
        heap.close()
        raise
    outputs = merge_phases(manager, name, heap, chunk_size, b_way)
    lines.append(
        f"After the sort phase, file {name} has {_show(count_chunks(manager, name))} chunk(s)"
    )
    for phase, out_path in enumerate(outputs, 1):
        count = _show(count_chunks(manager, out_path))
        lines.append(
            f"After the merge phase {phase}, the output file {out_path} has {count} chunk(s)"
        )
    return lines


def main(argv: list[str] | None = None) -> int:
    """Run external merge sorts and print the chunk count after every phase."""
    parser = argparse.ArgumentParser(description="External merge sort of heap files.")
    parser.add_argument("--file", default=None, help="heap file to create and sort")
    parser.add_argument("--records", type=int, default=4608, help="number of records")
    parser.add_argument("--chunk-size", type=int, default=1, help="blocks per initial run")
    parser.add_argument("--b-way", type=int, default=2, help="runs merged at a time")
    args = parser.parse_args(argv)
    if args.records < 0:
        parser.error("--records must not be negative")
    if args.chunk_size < 1:
        parser.error("--chunk-size must be at least 1")
    if args.b_way < 2:
        parser.error("--b-way must be at least 2")

    runs = (
        [(args.file, args.records, args.chunk_size, args.b_way)]
        if args.file is not None
        else list(_DEFAULT_RUNS)
    )
    try:
        with BlockManager(ReplacementPolicy.LRU) as manager:
            for path, records, chunk_size, b_way in runs:
                for line in run_sort(manager, path, records, chunk_size, b_way):
                    print(line)
    except BlockFileError as exc:
        print(exc, file=sys.stderr)
        return int(exc.code)
    return 0