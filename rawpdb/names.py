"""The "/names" string table stream."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

from rawpdb.rawfile import RawFile
from rawpdb.types import ErrorCode, PDBError


@dataclass(frozen=True)
class NamesHeader:
    """Header of the names stream."""

    magic: int
    hash_version: int
    size: int

    SIZE: ClassVar[int] = 12
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "NamesHeader":
        if offset < 0 or offset + cls.SIZE > len(data):
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"need {cls.SIZE} bytes at offset {offset}, have {len(data)}",
            )
        return cls(*cls._LAYOUT.unpack_from(data, offset))


class NamesStream:
    """String table holding the file names referenced by line information."""

    def __init__(self, file: RawFile, stream_index: int) -> None:
        data = file.read_stream(stream_index)
        self._header = NamesHeader.from_bytes(data, 0)
        self._string_table = bytes(data[NamesHeader.SIZE:])

    @property
    def header(self) -> NamesHeader:
        """The header of the stream."""
        return self._header

    def filename(self, filename_offset: int) -> str:
        """Return the NUL-terminated file name stored at an offset."""
        if not 0 <= filename_offset < len(self._string_table):
            raise IndexError(f"filename offset {filename_offset} outside string table")
        end = self._string_table.find(b"\0", filename_offset)
        if end < 0:
            end = len(self._string_table)
        return self._string_table[filename_offset:end].decode("utf-8", errors="replace")