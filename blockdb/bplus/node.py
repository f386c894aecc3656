"""B+ tree file metadata and the data (leaf) nodes that hold records."""

from __future__ import annotations

import struct
from bisect import bisect_right
from dataclasses import dataclass, field

from blockdb.blockfile import BLOCK_SIZE, Block, BlockFile
from blockdb.record import RECORD_SIZE, Record, format_record

# Leaf header: is_data_node, num_records, block_id, next_block, min_key, parent_id.
DATA_NODE_HEADER = struct.Struct("<6i")
# Index header: is_data_node, num_keys, block_id, parent_id.
INDEX_NODE_HEADER_SIZE = 16
KEY_SIZE = 4
NO_BLOCK = -1

RECORD_CAPACITY = (BLOCK_SIZE - DATA_NODE_HEADER.size) // RECORD_SIZE

_FLAG = struct.Struct("<i")
_INFO = struct.Struct("<6i")


@dataclass
class TreeInfo:
    """Metadata of a B+ tree file, kept in block 0."""

    root_block: int
    height: int
    record_size: int
    key_size: int
    max_records_per_block: int
    max_keys_per_index: int

    @classmethod
    def default(cls) -> TreeInfo:
        """Metadata of an empty tree with capacities derived from the block size."""
        total_elements = (BLOCK_SIZE - INDEX_NODE_HEADER_SIZE) // KEY_SIZE
        return cls(
            root_block=0,
            height=0,
            record_size=RECORD_SIZE,
            key_size=KEY_SIZE,
            max_records_per_block=RECORD_CAPACITY,
            max_keys_per_index=(total_elements - 1) // 2,
        )

    def pack(self) -> bytes:
        """Encode the metadata into its binary form."""
        return _INFO.pack(
            self.root_block,
            self.height,
            self.record_size,
            self.key_size,
            self.max_records_per_block,
            self.max_keys_per_index,
        )

    @classmethod
    def unpack(cls, data: bytes | bytearray | memoryview) -> TreeInfo:
        """Decode metadata from the start of ``data``."""
        if len(data) < _INFO.size:
            raise ValueError(f"need {_INFO.size} bytes, got {len(data)}")
        return cls(*_INFO.unpack_from(data))


@dataclass
class DataNode:
    """A leaf block: sorted records plus links to its sibling and parent."""

    block_id: int
    records: list[Record] = field(default_factory=list)
    next_block: int = NO_BLOCK
    min_key: int = NO_BLOCK
    parent_id: int = NO_BLOCK

    @property
    def num_records(self) -> int:
        return len(self.records)

    @classmethod
    def read(cls, file: BlockFile, block_id: int) -> DataNode:
        """Load the data node stored in ``block_id``."""
        with file.pinned(block_id) as block:
            return cls._from_block(block)

    @classmethod
    def _from_block(cls, block: Block) -> DataNode:
        flag, count, _, next_block, min_key, parent_id = DATA_NODE_HEADER.unpack_from(block.data)
        if flag != 1:
            raise ValueError(f"block {block.block_num} is not a data node")
        if not 0 <= count <= RECORD_CAPACITY:
            raise ValueError(f"block {block.block_num} holds an invalid record count {count}")
        start = DATA_NODE_HEADER.size
        records = [
            Record.unpack(block.data[offset : offset + RECORD_SIZE])
            for offset in range(start, start + count * RECORD_SIZE, RECORD_SIZE)
        ]
        return cls(block.block_num, records, next_block, min_key, parent_id)

    def write(self, file: BlockFile) -> None:
        """Store this node in its block."""
        if len(self.records) > RECORD_CAPACITY:
            raise ValueError(
                f"a data node holds at most {RECORD_CAPACITY} records, got {len(self.records)}"
            )
        payload = b"".join(record.pack() for record in self.records)
        with file.pinned(self.block_id) as block:
            DATA_NODE_HEADER.pack_into(
                block.data,
                0,
                1,
                len(self.records),
                self.block_id,
                self.next_block,
                self.min_key,
                self.parent_id,
            )
            start = DATA_NODE_HEADER.size
            block.data[start : start + len(payload)] = payload
            block.mark_dirty()


def is_data_node(file: BlockFile, block_id: int) -> bool:
    """Whether ``block_id`` holds a data node rather than an index node."""
    with file.pinned(block_id) as block:
        return _FLAG.unpack_from(block.data)[0] == 1


def create_data_node(file: BlockFile) -> int:
    """Append an empty data node to the file and return its block id."""
    block = file.allocate_block()
    try:
        DATA_NODE_HEADER.pack_into(
            block.data, 0, 1, 0, block.block_num, NO_BLOCK, NO_BLOCK, NO_BLOCK
        )
        block.mark_dirty()
    finally:
        file.unpin(block)
    return block.block_num


def insert_record(file: BlockFile, block_id: int, record: Record) -> DataNode:
    """Insert a record in key order into a data node that has room; return the node."""
    node = DataNode.read(file, block_id)
    keys = [existing.id for existing in node.records]
    node.records.insert(bisect_right(keys, record.id), record)
    node.min_key = record.id if len(node.records) == 1 else min(node.min_key, record.id)
    node.write(file)
    return node


def split_data_node(file: BlockFile, block_id: int, record: Record) -> int:
    """Split a full data node in two, placing ``record`` in order; return the new node's id."""
    node = DataNode.read(file, block_id)
    count = len(node.records)
    if count == 0:
        raise ValueError(f"cannot split the empty data node {block_id}")
    keys = [existing.id for existing in node.records]
    combined = list(node.records)
    combined.insert(bisect_right(keys, record.id), record)
    # The old node keeps the larger half when the total is odd.
    keep = count // 2 + 1

    new_id = create_data_node(file)
    new = DataNode(
        new_id,
        combined[keep:],
        next_block=node.next_block,
        min_key=combined[keep].id,
    )
    node.records = combined[:keep]
    node.next_block = new_id
    node.min_key = node.records[0].id
    node.write(file)
    new.write(file)
    return new_id


def format_data_node(file: BlockFile, block_id: int) -> str:
    """Describe a data node's metadata and records as text."""
    node = DataNode.read(file, block_id)
    lines = [
        f"Block id: {node.block_id}",
        f"Number of records: {node.num_records}",
        f"Next block: {node.next_block}",
        f"Parent id: {node.parent_id}",
    ]
    lines.extend(format_record(record) for record in node.records)
    return "\n".join(lines) + "\n\n"