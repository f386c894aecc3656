"""B+ tree files: records kept in key order in leaf blocks under an index."""

from __future__ import annotations

import argparse
import os
import sys
from bisect import bisect_right
from pathlib import Path

from blockdb.blockfile import BlockFile, BlockFileError, BlockManager, ReplacementPolicy
from blockdb.bplus.index import (
    KEY_CAPACITY,
    IndexNode,
    create_index_node,
    format_index_node,
    insert_key,
    is_full,
    split_index_node,
)
from blockdb.bplus.node import (
    NO_BLOCK,
    RECORD_CAPACITY,
    DataNode,
    TreeInfo,
    create_data_node,
    format_data_node,
    insert_record,
    is_data_node,
    split_data_node,
)
from blockdb.record import Record, RecordGenerator, format_record


class DuplicateKeyError(ValueError):
    """Raised when a record's key is already present in the tree."""


class BPlusFile:
    """An open B+ tree file; its metadata lives in block 0."""

    def __init__(self, file: BlockFile, info: TreeInfo) -> None:
        self.file = file
        self.info = info

    @classmethod
    def create(cls, manager: BlockManager, path: str | os.PathLike[str]) -> BPlusFile:
        """Create an empty B+ tree file and return it open."""
        manager.create_file(path)
        file = manager.open_file(path)
        info = TreeInfo.default()
        block = file.allocate_block()
        try:
            payload = info.pack()
            block.data[: len(payload)] = payload
            block.mark_dirty()
        finally:
            file.unpin(block)
        return cls(file, info)

    @classmethod
    def open(cls, manager: BlockManager, path: str | os.PathLike[str]) -> BPlusFile:
        """Open an existing B+ tree file, reading its metadata from block 0."""
        file = manager.open_file(path)
        try:
            with file.pinned(0) as block:
                info = TreeInfo.unpack(block.data)
        except (BlockFileError, ValueError):
            file.close()
            raise
        return cls(file, info)

    def _store_info(self) -> None:
        with self.file.pinned(0) as block:
            payload = self.info.pack()
            block.data[: len(payload)] = payload
            block.mark_dirty()

    def insert(self, record: Record) -> int:
        """Insert a record and return the id of the data block that holds it."""
        info = self.info
        if info.height == 0:
            node_id = create_data_node(self.file)
            insert_record(self.file, node_id, record)
            info.root_block = node_id
            info.height = 1
            return node_id

        if self.get(record.id) is not None:
            raise DuplicateKeyError(f"a record with id {record.id} already exists")

        target = self.find_data_block(record.id)
        node = DataNode.read(self.file, target)
        if node.num_records < info.max_records_per_block:
            insert_record(self.file, target, record)
            return target

        parent_id = node.parent_id
        if parent_id == NO_BLOCK:
            parent_id = create_index_node(self.file)
            info.height += 1
            info.root_block = parent_id
            node.parent_id = parent_id
            node.write(self.file)

        new_id = split_data_node(self.file, target, record)
        new_node = DataNode.read(self.file, new_id)
        key_up = new_node.min_key

        if not is_full(self.file, parent_id, info):
            new_node.parent_id = parent_id
            new_node.write(self.file)
            insert_key(self.file, parent_id, key_up, target, new_id)
        else:
            split_index_node(self.file, info, parent_id, key_up, new_id)

        return self.find_data_block(record.id)

    def get(self, key: int) -> Record | None:
        """Return the record with the given key, or ``None`` if there is none."""
        if self.info.height == 0:
            return None
        node = DataNode.read(self.file, self.find_data_block(key))
        return next((record for record in node.records if record.id == key), None)

    def find_data_block(self, key: int) -> int:
        """Return the id of the data block in which ``key`` belongs."""
        if self.info.height == 0:
            raise LookupError("the tree is empty")
        block_id = self.info.root_block
        for _ in range(self.info.height - 1):
            node = IndexNode.read(self.file, block_id)
            block_id = node.children[bisect_right(node.keys, key)]
        return block_id

    def set_capacity(self, max_records_per_block: int, max_keys_per_index: int) -> None:
        """Lower the capacity of data and index nodes and store it in block 0."""
        if not 1 <= max_records_per_block <= RECORD_CAPACITY:
            raise ValueError(
                f"max_records_per_block must be between 1 and {RECORD_CAPACITY}, "
                f"got {max_records_per_block}"
            )
        if not 2 <= max_keys_per_index <= KEY_CAPACITY:
            raise ValueError(
                f"max_keys_per_index must be between 2 and {KEY_CAPACITY}, "
                f"got {max_keys_per_index}"
            )
        self.info.max_records_per_block = max_records_per_block
        self.info.max_keys_per_index = max_keys_per_index
        self._store_info()

    def format_block(self, block_id: int) -> str:
        """Describe one data or index block as text."""
        if is_data_node(self.file, block_id):
            return format_data_node(self.file, block_id)
        return format_index_node(self.file, block_id)

    def _root_parent(self) -> int:
        if self.info.height == 0:
            return NO_BLOCK
        root = self.info.root_block
        if is_data_node(self.file, root):
            return DataNode.read(self.file, root).parent_id
        return IndexNode.read(self.file, root).parent_id

    def format_tree(self) -> str:
        """Describe the tree's metadata and every block as text."""
        count = self.file.block_count()
        parts = [
            "\nPrinting B+ Tree\n\n",
            "METADATA\n",
            f"---Root block: {self.info.root_block}\n",
            f"---Height: {self.info.height}\n",
            f"---parent of root: {self._root_parent()}\n",
            f"---Number of blocks: {count}\n\n-------------------\n",
        ]
        parts.extend(self.format_block(block_id) for block_id in range(1, count))
        return "".join(parts)

    def close(self) -> None:
        """Store the metadata and close the file."""
        self._store_info()
        self.file.close()

    def __enter__(self) -> BPlusFile:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def main(argv: list[str] | None = None) -> int:
    """Fill a B+ tree file with random records, then look one key up."""
    parser = argparse.ArgumentParser(description="Insert random records into a B+ tree file.")
    parser.add_argument("--file", default="data.db", help="B+ tree file to create")
    parser.add_argument("--records", type=int, default=2325, help="number of records")
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    parser.add_argument("--search", type=int, default=156, help="key to look up")
    parser.add_argument("--tree", default=None, help="write a description of the tree here")
    parser.add_argument("--max-records-per-block", type=int, default=None)
    parser.add_argument("--max-keys-per-index", type=int, default=None)
    args = parser.parse_args(argv)
    if args.records < 0:
        parser.error("--records must not be negative")

    generator = RecordGenerator(seed=args.seed, random_ids=True)
    try:
        with BlockManager(ReplacementPolicy.LRU) as manager:
            with BPlusFile.create(manager, args.file) as tree:
                if args.max_records_per_block is not None or args.max_keys_per_index is not None:
                    tree.set_capacity(
                        args.max_records_per_block or tree.info.max_records_per_block,
                        args.max_keys_per_index or tree.info.max_keys_per_index,
                    )
                for _ in range(args.records):
                    try:
                        tree.insert(generator.next_record())
                    except DuplicateKeyError:
                        pass
                if args.tree:
                    Path(args.tree).write_text(tree.format_tree())

        with BlockManager(ReplacementPolicy.LRU) as manager:
            with BPlusFile.open(manager, args.file) as tree:
                print(f"Searching for: {args.search}")
                found = tree.get(args.search)
                if found is not None:
                    print(format_record(found))
    except BlockFileError as exc:
        print(exc, file=sys.stderr)
        return int(exc.code)
    return 0