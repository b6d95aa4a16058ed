"""The global and public symbol hash streams."""

from __future__ import annotations

from rawpdb.dbi_types import SymbolRecord
from rawpdb.rawfile import RawFile
from rawpdb.types import HashRecord, HashTableHeader, PublicStreamHeader


def _read_hash_records(data: bytes, start: int, count: int) -> tuple[HashRecord, ...]:
    return tuple(
        HashRecord.from_bytes(data, offset)
        for offset in range(start, start + count * HashRecord.SIZE, HashRecord.SIZE)
    )


def _record_for(symbol_records, hash_record: HashRecord) -> SymbolRecord:
    # hash record offsets are one-based and point at the record header
    return SymbolRecord.from_bytes(symbol_records, hash_record.offset - 1)


class GlobalSymbolStream:
    """Hash records of the global symbols."""

    def __init__(self, file: RawFile, stream_index: int, count: int) -> None:
        data = file.read_stream(stream_index)
        self._hash_header = HashTableHeader.from_bytes(data, 0)
        self._records = _read_hash_records(data, HashTableHeader.SIZE, count)

    @property
    def hash_header(self) -> HashTableHeader:
        """The hash table header at the start of the stream."""
        return self._hash_header

    @property
    def records(self) -> tuple[HashRecord, ...]:
        """All hash records of the stream."""
        return self._records

    def get_record(self, symbol_records, hash_record: HashRecord) -> SymbolRecord:
        """Return the symbol record a hash record points at in the symbol record stream data."""
        return _record_for(symbol_records, hash_record)


class PublicSymbolStream:
    """Hash records of the public symbols."""

    def __init__(self, file: RawFile, stream_index: int, count: int) -> None:
        data = file.read_stream(stream_index)
        self._header = PublicStreamHeader.from_bytes(data, 0)
        self._hash_header = HashTableHeader.from_bytes(data, PublicStreamHeader.SIZE)
        self._records = _read_hash_records(
            data, PublicStreamHeader.SIZE + HashTableHeader.SIZE, count
        )

    @property
    def header(self) -> PublicStreamHeader:
        """The public stream header."""
        return self._header

    @property
    def hash_header(self) -> HashTableHeader:
        """The hash table header following the public stream header."""
        return self._hash_header

    @property
    def records(self) -> tuple[HashRecord, ...]:
        """All hash records of the stream."""
        return self._records

    def get_record(self, symbol_records, hash_record: HashRecord) -> SymbolRecord:
        """Return the symbol record a hash record points at in the symbol record stream data."""
        return _record_for(symbol_records, hash_record)