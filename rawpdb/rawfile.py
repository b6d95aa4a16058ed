"""Access to the stream directory of an MSF/PDB file."""

from __future__ import annotations

import os
import struct

from rawpdb.bits import is_power_of_two
from rawpdb.msf import DirectMSFStream
from rawpdb.types import NIL_PAGE_SIZE, ErrorCode, PDBError, SuperBlock


def _block_count(size: int, block_size: int) -> int:
    return -(-size // block_size)


def _read_u32_array(data: bytes, offset: int, count: int, what: str) -> tuple[int, ...]:
    layout = struct.Struct(f"<{count}I")
    if offset + layout.size > len(data):
        raise PDBError(ErrorCode.INVALID_STREAM, f"stream directory truncated while reading {what}")
    return layout.unpack_from(data, offset)


class RawFile:
    """An MSF container: the super block plus the directory of its streams."""

    def __init__(self, data) -> None:
        self._data = memoryview(data)
        self._super_block = SuperBlock.from_bytes(self._data)
        block_size = self._super_block.block_size
        if not is_power_of_two(block_size):
            raise PDBError(
                ErrorCode.INVALID_SUPER_BLOCK,
                f"block size {block_size} is not a power of two",
            )

        # the super block lists the blocks holding the indices of the directory blocks
        directory_block_count = self._super_block.directory_block_count
        index_stream = DirectMSFStream(
            self._data,
            block_size,
            self._super_block.directory_block_indices,
            directory_block_count * 4,
        )
        directory_indices = _read_u32_array(
            index_stream.read_all(), 0, directory_block_count, "directory block indices"
        )
        directory = DirectMSFStream(
            self._data, block_size, directory_indices, self._super_block.directory_size
        ).read_all()

        (stream_count,) = _read_u32_array(directory, 0, 1, "the stream count")
        self._stream_sizes = _read_u32_array(directory, 4, stream_count, "stream sizes")

        offset = 4 + 4 * stream_count
        stream_blocks = []
        for raw_size in self._stream_sizes:
            size = 0 if raw_size == NIL_PAGE_SIZE else raw_size
            count = _block_count(size, block_size)
            stream_blocks.append(_read_u32_array(directory, offset, count, "stream blocks"))
            offset += 4 * count
        self._stream_blocks = tuple(stream_blocks)

    @classmethod
    def from_path(cls, path: str | os.PathLike) -> "RawFile":
        """Load a PDB file from disk."""
        with open(path, "rb") as handle:
            return cls(handle.read())

    @property
    def super_block(self) -> SuperBlock:
        """The MSF super block."""
        return self._super_block

    @property
    def block_size(self) -> int:
        """Size of one MSF block in bytes."""
        return self._super_block.block_size

    @property
    def stream_count(self) -> int:
        """Number of streams in the file."""
        return len(self._stream_sizes)

    def _check_index(self, stream_index: int) -> None:
        if not 0 <= stream_index < len(self._stream_sizes):
            raise PDBError(
                ErrorCode.INVALID_STREAM_INDEX,
                f"stream index {stream_index} out of range [0, {len(self._stream_sizes)})",
            )

    def stream_size(self, stream_index: int) -> int:
        """Return the size of a stream, treating nil streams as empty."""
        self._check_index(stream_index)
        size = self._stream_sizes[stream_index]
        return 0 if size == NIL_PAGE_SIZE else size

    def create_stream(self, stream_index: int, stream_size: int | None = None) -> DirectMSFStream:
        """Return a direct view of a stream, optionally limited to its first bytes."""
        full_size = self.stream_size(stream_index)
        if stream_size is None:
            stream_size = full_size
        elif stream_size > full_size:
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"requested size {stream_size} exceeds stream {stream_index} size {full_size}",
            )
        return DirectMSFStream(
            self._data, self.block_size, self._stream_blocks[stream_index], stream_size
        )

    def read_stream(self, stream_index: int, stream_size: int | None = None) -> bytes:
        """Return the contents of a stream as one contiguous bytes object."""
        return self.create_stream(stream_index, stream_size).read_all()