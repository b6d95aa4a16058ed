"""The PDB info stream."""

from __future__ import annotations

import struct

from rawpdb.names import NamesStream
from rawpdb.rawfile import RawFile
from rawpdb.types import ErrorCode, FeatureCode, InfoHeader, PDBError

_INFO_STREAM_INDEX = 1
_NAMES_STREAM_NAME = "/names"


def _u32s(data, offset: int, count: int) -> tuple[int, ...]:
    layout = struct.Struct(f"<{count}I")
    if offset < 0 or offset + layout.size > len(data):
        raise PDBError(
            ErrorCode.INVALID_STREAM,
            f"info stream needs {layout.size} bytes at offset {offset}, has {len(data)}",
        )
    return layout.unpack_from(data, offset)


def _name_at(string_table: bytes, offset: int) -> str:
    if not 0 <= offset < len(string_table):
        raise PDBError(
            ErrorCode.INVALID_STREAM, f"named stream offset {offset} outside string table"
        )
    end = string_table.find(b"\0", offset)
    if end < 0:
        end = len(string_table)
    return string_table[offset:end].decode("utf-8", errors="replace")


def _enum_or_int(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


class InfoStream:
    """Header, named stream map and feature codes of the PDB info stream."""

    def __init__(self, file: RawFile) -> None:
        data = file.read_stream(_INFO_STREAM_INDEX)
        self._header = InfoHeader.from_bytes(data, 0)
        offset = InfoHeader.SIZE

        # named stream map: string table followed by a serialized hash table
        (length,) = _u32s(data, offset, 1)
        offset += 4
        if offset + length > len(data):
            raise PDBError(ErrorCode.INVALID_STREAM, "named stream string table truncated")
        string_table = bytes(data[offset:offset + length])
        offset += length

        size, _capacity = _u32s(data, offset, 2)
        offset += 8
        for _ in range(2):  # present and deleted bit vectors
            (word_count,) = _u32s(data, offset, 1)
            offset += 4 + 4 * word_count

        entries = _u32s(data, offset, 2 * size)
        offset += 8 * size
        self._named_streams = {
            _name_at(string_table, string_offset): stream_index
            for string_offset, stream_index in zip(entries[::2], entries[1::2])
        }
        self._names_stream_index = self._named_streams.get(_NAMES_STREAM_NAME, 0)

        # the remaining bytes are feature codes
        codes = _u32s(data, offset, (len(data) - offset) // 4)
        self._feature_codes = tuple(_enum_or_int(FeatureCode, code) for code in codes)

    @property
    def header(self) -> InfoHeader:
        """The header of the stream."""
        return self._header

    @property
    def named_streams(self) -> dict[str, int]:
        """Stream indices keyed by stream name, e.g. "/names" or "/LinkInfo"."""
        return dict(self._named_streams)

    @property
    def feature_codes(self) -> tuple[FeatureCode | int, ...]:
        """The feature codes at the end of the stream."""
        return self._feature_codes

    @property
    def names_stream_index(self) -> int:
        """Index of the "/names" stream, or 0 if there is none."""
        return self._names_stream_index

    @property
    def uses_debug_fast_link(self) -> bool:
        """Whether the PDB was linked with /DEBUG:FASTLINK."""
        return FeatureCode.MINIMAL_DEBUG_INFO in self._feature_codes

    def has_names_stream(self) -> bool:
        """Whether the file has a "/names" stream."""
        return self._names_stream_index != 0

    def create_names_stream(self, file: RawFile) -> NamesStream:
        """Open the "/names" string table stream."""
        if not self.has_names_stream():
            raise PDBError(ErrorCode.INVALID_STREAM_INDEX, "the file has no /names stream")
        return NamesStream(file, self._names_stream_index)