# blockdb

blockdb stores fixed-size records in files made of 512-byte blocks. It
builds three kinds of file organisation on one buffered block layer:

- **Heap files** (`blockdb.heapfile`): records appended block after block,
  searched by a full scan.
- **B+ tree files** (`blockdb.bplus`): records kept in sorted data blocks
  under a tree of index blocks, with lookups by key and rejection of
  duplicate keys.
- **External merge sort** (`blockdb.extsort`): a heap file sorted by name
  and surname, first chunk by chunk, then by repeated b-way merges into new
  files until one sorted run is left.

## Installation

```
pip install .
```

The package has no runtime dependencies. Tests run with pytest:

```
pip install ".[test]"
pytest
```

## The block layer

`blockdb.blockfile.BlockManager` holds a buffer of blocks in memory
(100 by default) and, when it needs room, evicts an unpinned block by an
LRU or MRU policy (`ReplacementPolicy`). Files are created and opened
through it; each open `BlockFile` hands out `Block` objects that stay
pinned until they are unpinned, and `BlockFile.pinned(n)` pins a block for
the length of a `with` statement. Changed blocks are marked with
`mark_dirty()` and written back when evicted or when their file is closed.
Failures raise `BlockFileError`, whose `code` is an `ErrorCode`, for
example `FILE_ALREADY_EXISTS`, `INVALID_BLOCK_NUMBER_ERROR`,
`FULL_MEMORY_ERROR` or `AVAILABLE_PIN_BLOCKS_ERROR`.

```python
from blockdb.blockfile import BlockManager, ReplacementPolicy

with BlockManager(ReplacementPolicy.LRU, 100, 100) as manager:
    manager.create_file("blocks.db")
    blocks = manager.open_file("blocks.db")
    block = blocks.allocate_block()
    block.data[:5] = b"hello"
    block.mark_dirty()
    blocks.unpin(block)
    print(blocks.block_count())   # 1
    blocks.close()
```

## Records

`blockdb.record.Record` is a frozen dataclass with `id`, `name`, `surname`
and `city`; `pack()` and `Record.unpack()` convert it to and from its
fixed-size binary form. `RecordGenerator(seed, random_ids)` produces
records with random names, surnames and cities, numbered from 0 or, with
`random_ids=True`, with random ids below 1000. `format_record` renders a
record as `(id, name, surname, city)`.

## Heap files

`HeapFile.create` makes a new heap file and returns it open;
`HeapFile.open` opens an existing one. `insert` returns the number of the
block that took the record, and `get_all_entries(value)` returns the
records whose id equals `value` together with the number of data blocks
read. Closing the file stores its header in block 0.

```python
from blockdb.blockfile import BlockManager, ReplacementPolicy
from blockdb.heapfile import HeapFile
from blockdb.record import RecordGenerator, format_record

with BlockManager(ReplacementPolicy.LRU, 100, 100) as manager:
    with HeapFile.create(manager, "data.db") as heap:
        generator = RecordGenerator(12569874, False)
        for _ in range(1000):
            heap.insert(generator.next_record())
        matches, blocks_read = heap.get_all_entries(42)
        for record in matches:
            print(format_record(record))
```

## B+ tree files

`blockdb.bplus.tree.BPlusFile` inserts records in key order, splitting
data and index blocks as they fill, and raises `DuplicateKeyError` when a
key is already present. `get(key)` returns the record or `None`, and
`find_data_block(key)` returns the data block a key belongs in.
`set_capacity` lowers the number of records per data block and keys per
index block, which makes trees grow taller with fewer records;
`format_block` and `format_tree` render blocks of the tree as text.

```python
from blockdb.blockfile import BlockManager, ReplacementPolicy
from blockdb.bplus.tree import BPlusFile
from blockdb.record import Record

with BlockManager(ReplacementPolicy.LRU, 100, 100) as manager:
    with BPlusFile.create(manager, "tree.db") as tree:
        for key in range(1, 101):
            tree.insert(Record(id=key, name=f"name_{key}",
                               surname=f"surname_{key}", city=f"city_{key}"))
        print(tree.get(42))
        print(tree.get(105))   # None
```

The node-level functions live in `blockdb.bplus.node` (`DataNode`,
`TreeInfo`, `create_data_node`, `insert_record`, `split_data_node`) and
`blockdb.bplus.index` (`IndexNode`, `create_index_node`, `insert_key`,
`split_index_node`, `update_parents`).

## External merge sort

`blockdb.extsort` works on `SortHeapFile`s of `SortRecord`s, ordered by
name and then surname. `iter_chunks` splits a heap file into chunks of
consecutive data blocks, `sort_file_in_chunks` sorts each chunk in place,
and `merge` merges every `b_way` sorted chunks of one file into a single
run of another.

`blockdb.extsort.runner.run_sort` puts these together: it fills a heap
file with generated records, sorts it in chunks of `chunk_size` blocks,
merges `b_way` chunks at a time into `<path>1.db`, `<path>2.db`, … until
one run is left, and returns report lines on how many sorted chunks each
file holds. `count_chunks` counts the sorted runs of a file, returning
`None` (reported as `-1`) when a block is not sorted in itself.

```python
from blockdb.blockfile import BlockManager
from blockdb.extsort.runner import run_sort

with BlockManager() as manager:
    for line in run_sort(manager, "sorted.db", 4608, 1, 2):
        print(line)
```

## Commands

Each demonstration program is installed as a command:

```
blockdb-heap
blockdb-bplus
blockdb-sort
```

- `blockdb-heap [--file data.db] [--records 1000] [--seed 12569874]` fills
  a heap file with generated records (appending if the file exists) and
  prints the entries that match a random id.
- `blockdb-bplus [--file data.db] [--records 2325] [--seed N] [--search 156]
  [--tree PATH] [--max-records-per-block N] [--max-keys-per-index N]`
  builds a new B+ tree file from records with random ids, skipping
  duplicates, optionally writes a description of the tree to `--tree`,
  then reopens the file and looks up `--search`.
- `blockdb-sort [--file PATH] [--records 4608] [--chunk-size 1] [--b-way 2]`
  runs the external merge sort and prints the chunk count after the sort
  phase and after every merge phase. Without `--file` it runs two sorts,
  on `./test1.db` and `./test2.db`.

The commands create new files and stop with an error if the B+ tree or
sort files already exist.

## What it does not do

Records can only be added and updated in place: neither heap files nor
B+ tree files support deleting records, and B+ tree lookups are by single
key, with no range scans. Files are meant for one process at a time; there
is no locking and no server.