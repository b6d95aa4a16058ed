"""Direct, block-scattered access to MSF streams."""

from __future__ import annotations

from collections.abc import Sequence

from rawpdb.bits import find_first_set_bit, is_power_of_two
from rawpdb.types import ErrorCode, PDBError


class DirectMSFStream:
    """Reads a stream whose data is spread over non-contiguous MSF blocks.

    The stream keeps no read position, so it can be shared freely.
    """

    def __init__(self, data, block_size: int, block_indices: Sequence[int], size: int) -> None:
        if block_size <= 0 or not is_power_of_two(block_size):
            raise ValueError(f"MSF block size must be a power of two, got {block_size}")
        if size < 0:
            raise ValueError(f"stream size must not be negative, got {size}")
        self._data = memoryview(data)
        self._block_size = block_size
        self._block_shift = find_first_set_bit(block_size)
        self._block_indices = tuple(block_indices)
        self._size = size
        needed = -(-size // block_size)
        if len(self._block_indices) < needed:
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"stream of {size} bytes needs {needed} blocks, got {len(self._block_indices)}",
            )

    @property
    def block_size(self) -> int:
        """Size of one MSF block in bytes."""
        return self._block_size

    @property
    def size(self) -> int:
        """Size of the stream in bytes."""
        return self._size

    def __len__(self) -> int:
        return self._size

    def read(self, size: int, offset: int) -> bytes:
        """Read ``size`` bytes starting at ``offset`` within the stream."""
        if size < 0 or offset < 0:
            raise ValueError("size and offset must not be negative")
        if offset + size > self._size:
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"read of {size} bytes at {offset} exceeds stream size {self._size}",
            )
        chunks = []
        index, within = self.block_index_for_offset(offset)
        remaining = size
        while remaining:
            start = self.data_offset_for(index, within)
            count = min(remaining, self._block_size - within)
            chunk = self._data[start:start + count]
            if len(chunk) != count:
                raise PDBError(ErrorCode.INVALID_STREAM, f"block {self._block_indices[index]} lies outside the file")
            chunks.append(chunk)
            remaining -= count
            index += 1
            within = 0
        return b"".join(chunks)

    def read_all(self) -> bytes:
        """Read the whole stream into one contiguous bytes object."""
        return self.read(self._size, 0)

    def block_index_for_offset(self, offset: int) -> tuple[int, int]:
        """Return the stream block number and offset within it for a stream offset."""
        return offset >> self._block_shift, offset & (self._block_size - 1)

    def data_offset_for(self, index: int, offset_within_block: int) -> int:
        """Return the file offset of a position given by block number and offset."""
        return (self._block_indices[index] << self._block_shift) + offset_within_block