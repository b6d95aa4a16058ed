"""The source info sub-stream of the DBI stream."""

from __future__ import annotations

import struct

from rawpdb.msf import DirectMSFStream
from rawpdb.types import ErrorCode, PDBError


def _array(fmt: str, count: int, data: bytes, offset: int) -> tuple[int, ...]:
    layout = struct.Struct(f"<{count}{fmt}")
    if offset + layout.size > len(data):
        raise PDBError(ErrorCode.INVALID_STREAM, "source info sub-stream is truncated")
    return layout.unpack_from(data, offset)


class SourceFileStream:
    """Lists the source files that contributed to each module."""

    def __init__(self, stream: DirectMSFStream, size: int, offset: int) -> None:
        data = stream.read(size, offset)
        (module_count,) = _array("H", 1, data, 0)
        # the 16-bit total file count is obsolete; the real count is summed up below
        read_offset = 4

        self._module_indices = _array("H", module_count, data, read_offset)
        read_offset += 2 * module_count

        self._module_file_counts = _array("H", module_count, data, read_offset)
        read_offset += 2 * module_count

        file_count = sum(self._module_file_counts)
        self._file_name_offsets = _array("I", file_count, data, read_offset)
        read_offset += 4 * file_count

        self._string_table = bytes(data[read_offset:])

    @property
    def module_count(self) -> int:
        """Number of modules described by the stream."""
        return len(self._module_indices)

    @property
    def source_file_count(self) -> int:
        """Total number of file entries over all modules."""
        return len(self._file_name_offsets)

    def module_filename_offsets(self, module_index: int) -> tuple[int, ...]:
        """Return the string table offsets of the files of one module."""
        if not 0 <= module_index < self.module_count:
            raise IndexError(f"module index {module_index} out of range")
        start = self._module_indices[module_index]
        count = self._module_file_counts[module_index]
        return self._file_name_offsets[start:start + count]

    def filename(self, filename_offset: int) -> str:
        """Return the NUL-terminated file name stored at an offset."""
        if not 0 <= filename_offset < len(self._string_table):
            raise IndexError(f"filename offset {filename_offset} outside string table")
        end = self._string_table.find(b"\0", filename_offset)
        if end < 0:
            end = len(self._string_table)
        return self._string_table[filename_offset:end].decode("utf-8", errors="replace")