"""Block-structured file storage with a shared, pinned buffer pool."""

from __future__ import annotations

import os
from collections import OrderedDict
from contextlib import contextmanager
from enum import Enum, IntEnum
from typing import BinaryIO, Iterator

BLOCK_SIZE = 512
BUFFER_SIZE = 100
MAX_OPEN_FILES = 100


class ErrorCode(IntEnum):
    """Failure kinds reported by the block layer."""

    OK = 0
    OPEN_FILES_LIMIT_ERROR = 1
    INVALID_FILE_ERROR = 2
    ACTIVE_ERROR = 3
    FILE_ALREADY_EXISTS = 4
    FULL_MEMORY_ERROR = 5
    INVALID_BLOCK_NUMBER_ERROR = 6
    AVAILABLE_PIN_BLOCKS_ERROR = 7
    ERROR = 8


_MESSAGES = {
    ErrorCode.OK: "no error",
    ErrorCode.OPEN_FILES_LIMIT_ERROR: "the maximum number of files is already open",
    ErrorCode.INVALID_FILE_ERROR: "the file descriptor does not belong to an open file",
    ErrorCode.ACTIVE_ERROR: "the block layer is active and cannot be initialised",
    ErrorCode.FILE_ALREADY_EXISTS: "the file cannot be created because it already exists",
    ErrorCode.FULL_MEMORY_ERROR: "the buffer is full of pinned blocks",
    ErrorCode.INVALID_BLOCK_NUMBER_ERROR: "the requested block does not exist in the file",
    ErrorCode.AVAILABLE_PIN_BLOCKS_ERROR: "the file cannot be closed while it has pinned blocks",
    ErrorCode.ERROR: "block layer error",
}


class ReplacementPolicy(Enum):
    """Which unpinned block the buffer gives up when it needs room."""

    LRU = "lru"
    MRU = "mru"


class BlockFileError(Exception):
    """Raised when a block-layer operation fails."""

    def __init__(self, code: ErrorCode, detail: str = "") -> None:
        self.code = code
        message = _MESSAGES[code]
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class Block:
    """One buffered block; its ``data`` may be changed while it is pinned."""

    def __init__(self, file: BlockFile, block_num: int, data: bytes | None = None) -> None:
        self.file = file
        self.block_num = block_num
        self.data = bytearray(data) if data is not None else bytearray(BLOCK_SIZE)
        self.dirty = False
        self.pin_count = 0

    def mark_dirty(self) -> None:
        """Record that the data changed and must be written back."""
        self.dirty = True

    def __repr__(self) -> str:
        return (
            f"Block(file={self.file.descriptor}, block_num={self.block_num}, "
            f"dirty={self.dirty}, pin_count={self.pin_count})"
        )


class BlockFile:
    """An open file made of fixed-size blocks."""

    def __init__(self, manager: BlockManager, path: str, handle: BinaryIO, descriptor: int) -> None:
        self._manager = manager
        self._handle = handle
        self.path = path
        self.descriptor = descriptor
        self._count = os.fstat(handle.fileno()).st_size // BLOCK_SIZE
        self.closed = False

    def _check_open(self) -> None:
        if self.closed:
            raise BlockFileError(ErrorCode.INVALID_FILE_ERROR, self.path)

    def block_count(self) -> int:
        """Number of blocks in the file."""
        self._check_open()
        return self._count

    def allocate_block(self) -> Block:
        """Append a zeroed block to the file and return it pinned."""
        self._check_open()
        block = self._manager._pin(self, self._count, fresh=True)
        self._count += 1
        return block

    def get_block(self, block_num: int) -> Block:
        """Return the block with the given number, pinned."""
        self._check_open()
        if not 0 <= block_num < self._count:
            raise BlockFileError(
                ErrorCode.INVALID_BLOCK_NUMBER_ERROR, f"block {block_num} of {self.path}"
            )
        return self._manager._pin(self, block_num)

    def unpin(self, block: Block) -> None:
        """Release one pin on a block so that the buffer may evict it."""
        self._check_open()
        if block.file is not self or block.pin_count <= 0:
            raise BlockFileError(ErrorCode.ERROR, f"block {block.block_num} is not pinned")
        block.pin_count -= 1

    @contextmanager
    def pinned(self, block_num: int) -> Iterator[Block]:
        """Pin a block for the duration of a ``with`` statement."""
        block = self.get_block(block_num)
        try:
            yield block
        finally:
            self.unpin(block)

    def close(self) -> None:
        """Write back this file's buffered blocks and close it."""
        self._manager._close_file(self)

    def _read_block(self, block_num: int) -> bytes:
        self._handle.seek(block_num * BLOCK_SIZE)
        data = self._handle.read(BLOCK_SIZE)
        return data.ljust(BLOCK_SIZE, b"\0")

    def _write_block(self, block: Block) -> None:
        self._handle.seek(block.block_num * BLOCK_SIZE)
        self._handle.write(block.data)
        block.dirty = False

    def _finish(self) -> None:
        self._handle.truncate(self._count * BLOCK_SIZE)
        self._handle.flush()
        self._handle.close()
        self.closed = True


class BlockManager:
    """Owns the buffer pool and the set of open block files."""

    def __init__(
        self,
        policy: ReplacementPolicy = ReplacementPolicy.LRU,
        buffer_size: int = BUFFER_SIZE,
        max_open_files: int = MAX_OPEN_FILES,
    ) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        if max_open_files < 1:
            raise ValueError("max_open_files must be at least 1")
        self.policy = policy
        self.buffer_size = buffer_size
        self.max_open_files = max_open_files
        self._frames: OrderedDict[tuple[int, int], Block] = OrderedDict()
        self._files: dict[int, BlockFile] = {}
        self._next_descriptor = 0
        self._active = True

    def _check_active(self) -> None:
        if not self._active:
            raise BlockFileError(ErrorCode.ERROR, "the block layer has been closed")

    def create_file(self, path: str | os.PathLike[str]) -> None:
        """Create an empty block file; fail if it already exists."""
        self._check_active()
        try:
            with open(path, "xb"):
                pass
        except FileExistsError:
            raise BlockFileError(ErrorCode.FILE_ALREADY_EXISTS, os.fspath(path)) from None

    def open_file(self, path: str | os.PathLike[str]) -> BlockFile:
        """Open an existing block file."""
        self._check_active()
        if len(self._files) >= self.max_open_files:
            raise BlockFileError(ErrorCode.OPEN_FILES_LIMIT_ERROR)
        name = os.fspath(path)
        try:
            handle = open(name, "r+b")
        except OSError as exc:
            raise BlockFileError(ErrorCode.ERROR, f"{name}: {exc.strerror}") from exc
        file = BlockFile(self, name, handle, self._next_descriptor)
        self._next_descriptor += 1
        self._files[file.descriptor] = file
        return file

    def close(self) -> None:
        """Close every open file, writing back all buffered blocks."""
        if not self._active:
            return
        for file in list(self._files.values()):
            self._close_file(file)
        self._active = False

    def __enter__(self) -> BlockManager:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def _pin(self, file: BlockFile, block_num: int, fresh: bool = False) -> Block:
        key = (file.descriptor, block_num)
        block = self._frames.get(key)
        if block is None:
            self._make_room()
            data = None if fresh else file._read_block(block_num)
            block = Block(file, block_num, data)
            self._frames[key] = block
        else:
            self._frames.move_to_end(key)
        if fresh:
            block.dirty = True
        block.pin_count += 1
        return block

    def _make_room(self) -> None:
        if len(self._frames) < self.buffer_size:
            return
        frames = self._frames.values()
        order = iter(frames) if self.policy is ReplacementPolicy.LRU else reversed(frames)
        victim = next((block for block in order if block.pin_count == 0), None)
        if victim is None:
            raise BlockFileError(ErrorCode.FULL_MEMORY_ERROR)
        self._evict(victim)

    def _evict(self, block: Block) -> None:
        if block.dirty:
            block.file._write_block(block)
        del self._frames[(block.file.descriptor, block.block_num)]

    def _close_file(self, file: BlockFile) -> None:
        if file.closed or self._files.get(file.descriptor) is not file:
            raise BlockFileError(ErrorCode.INVALID_FILE_ERROR, file.path)
        blocks = [block for block in self._frames.values() if block.file is file]
        if any(block.pin_count > 0 for block in blocks):
            raise BlockFileError(ErrorCode.AVAILABLE_PIN_BLOCKS_ERROR, file.path)
        for block in blocks:
            self._evict(block)
        file._finish()
        del self._files[file.descriptor]