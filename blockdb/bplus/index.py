"""Index (internal) nodes of the B+ tree: keys and pointers to child blocks."""

from __future__ import annotations

import struct
from bisect import bisect_right
from dataclasses import dataclass, field

from blockdb.blockfile import BLOCK_SIZE, Block, BlockFile
from blockdb.bplus.node import (
    INDEX_NODE_HEADER_SIZE,
    KEY_SIZE,
    NO_BLOCK,
    DataNode,
    TreeInfo,
    is_data_node,
)

# Index header: is_data_node, num_keys, block_id, parent_id.
INDEX_NODE_HEADER = struct.Struct("<4i")
_INT = struct.Struct("<i")

SLOT_CAPACITY = (BLOCK_SIZE - INDEX_NODE_HEADER_SIZE) // KEY_SIZE
KEY_CAPACITY = (SLOT_CAPACITY - 1) // 2


@dataclass
class IndexNode:
    """An internal block: ``children[i]`` holds keys below ``keys[i]``, the last child the rest."""

    block_id: int
    keys: list[int] = field(default_factory=list)
    children: list[int] = field(default_factory=list)
    parent_id: int = NO_BLOCK

    @property
    def num_keys(self) -> int:
        return len(self.keys)

    @classmethod
    def read(cls, file: BlockFile, block_id: int) -> IndexNode:
        """Load the index node stored in ``block_id``."""
        with file.pinned(block_id) as block:
            return cls._from_block(block)

    @classmethod
    def _from_block(cls, block: Block) -> IndexNode:
        flag, count, _, parent_id = INDEX_NODE_HEADER.unpack_from(block.data)
        if flag != 0:
            raise ValueError(f"block {block.block_num} is not an index node")
        if not 0 <= count <= KEY_CAPACITY:
            raise ValueError(f"block {block.block_num} holds an invalid key count {count}")
        slots = 2 * count + 1 if count else 0
        values = struct.unpack_from(f"<{slots}i", block.data, INDEX_NODE_HEADER_SIZE)
        return cls(block.block_num, list(values[1::2]), list(values[0::2]), parent_id)

    def write(self, file: BlockFile) -> None:
        """Store this node in its block."""
        if len(self.keys) > KEY_CAPACITY:
            raise ValueError(
                f"an index node holds at most {KEY_CAPACITY} keys, got {len(self.keys)}"
            )
        if self.keys or self.children:
            if len(self.children) != len(self.keys) + 1:
                raise ValueError(
                    f"{len(self.keys)} keys need {len(self.keys) + 1} children, "
                    f"got {len(self.children)}"
                )
        slots = [self.children[0]] if self.children else []
        for key, child in zip(self.keys, self.children[1:]):
            slots.extend((key, child))
        with file.pinned(self.block_id) as block:
            INDEX_NODE_HEADER.pack_into(
                block.data, 0, 0, len(self.keys), self.block_id, self.parent_id
            )
            struct.pack_into(f"<{len(slots)}i", block.data, INDEX_NODE_HEADER_SIZE, *slots)
            block.mark_dirty()


def create_index_node(file: BlockFile) -> int:
    """Append an empty index node to the file and return its block id."""
    block = file.allocate_block()
    try:
        INDEX_NODE_HEADER.pack_into(block.data, 0, 0, 0, block.block_num, NO_BLOCK)
        block.mark_dirty()
    finally:
        file.unpin(block)
    return block.block_num


def insert_key(
    file: BlockFile, node_id: int, key: int, left_child_id: int, right_child_id: int
) -> IndexNode:
    """Insert ``key`` with ``right_child_id`` to its right into an index node with room.

    ``left_child_id`` is used only when the node is empty, as its first pointer.
    """
    node = IndexNode.read(file, node_id)
    if not node.keys:
        node.keys = [key]
        node.children = [left_child_id, right_child_id]
    else:
        pos = bisect_right(node.keys, key)
        node.keys.insert(pos, key)
        node.children.insert(pos + 1, right_child_id)
    node.write(file)
    return node


def is_full(file: BlockFile, node_id: int, info: TreeInfo) -> bool:
    """Whether the index node has reached the tree's key limit."""
    return IndexNode.read(file, node_id).num_keys >= info.max_keys_per_index


def _set_parent(file: BlockFile, block_id: int, parent_id: int) -> None:
    if is_data_node(file, block_id):
        data_node = DataNode.read(file, block_id)
        data_node.parent_id = parent_id
        data_node.write(file)
    else:
        index_node = IndexNode.read(file, block_id)
        index_node.parent_id = parent_id
        index_node.write(file)


def update_parents(file: BlockFile, parent_id: int) -> None:
    """Point every child of the index node ``parent_id`` back at it."""
    for child_id in IndexNode.read(file, parent_id).children:
        _set_parent(file, child_id, parent_id)


def split_index_node(
    file: BlockFile, info: TreeInfo, node_id: int, key: int, child_id: int
) -> int:
    """Split a full index node while inserting ``key`` and ``child_id``.

    The middle key moves up into the parent, which is split in turn when full,
    or becomes a new root. ``info`` is updated when the tree grows. Returns the
    id of the last index node created by a split.
    """
    node = IndexNode.read(file, node_id)
    count = node.num_keys
    if count < 2:
        raise ValueError(f"cannot split index node {node_id} with {count} key(s)")
    split_point = count // 2
    pos = bisect_right(node.keys, key)

    keys = list(node.keys)
    keys.insert(pos, key)
    children = list(node.children)
    children.insert(pos + 1, child_id)
    key_up = keys[split_point]

    new_id = create_index_node(file)
    node.keys = keys[:split_point]
    node.children = children[: split_point + 1]
    new = IndexNode(new_id, keys[split_point + 1 :], children[split_point + 1 :])
    node.write(file)
    new.write(file)

    _set_parent(file, child_id, node_id if pos < split_point else new_id)
    update_parents(file, new_id)

    if node.parent_id == NO_BLOCK:
        root_id = create_index_node(file)
        insert_key(file, root_id, key_up, node_id, new_id)
        info.root_block = root_id
        info.height += 1
        _set_parent(file, node_id, root_id)
        _set_parent(file, new_id, root_id)
    elif not is_full(file, node.parent_id, info):
        insert_key(file, node.parent_id, key_up, node_id, new_id)
        _set_parent(file, new_id, node.parent_id)
    else:
        return split_index_node(file, info, node.parent_id, key_up, new_id)
    return new_id


def format_index_node(file: BlockFile, node_id: int) -> str:
    """Describe an index node's metadata, keys and pointers as text."""
    node = IndexNode.read(file, node_id)
    header = "\n".join(
        [
            f"Block id: {node.block_id}",
            f"Number of keys: {node.num_keys}",
            f"Parent id: {node.parent_id}",
        ]
    )
    pointers = ""
    if node.keys:
        pointers = f"{node.children[0]} | " + "".join(
            f"Key: {key} | {child} | " for key, child in zip(node.keys, node.children[1:])
        )
    return f"{header}\n{pointers}\n\n"