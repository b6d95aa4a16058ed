"""The symbol part of a module's stream."""

from __future__ import annotations

import struct
from collections.abc import Iterator

from rawpdb.bits import round_up_to_multiple
from rawpdb.dbi_types import SymbolRecord, SymbolRecordKind
from rawpdb.rawfile import RawFile
from rawpdb.types import ErrorCode, PDBError

_SIGNATURE_SIZE = 4


class ModuleSymbolStream:
    """The CodeView symbol records of one module.

    Only the symbol part of the module stream is read; line information and
    global references that follow it are left out.
    """

    def __init__(self, file: RawFile, stream_index: int, symbol_stream_size: int) -> None:
        self._data = file.read_stream(stream_index, symbol_stream_size)

    def __len__(self) -> int:
        return len(self._data)

    @property
    def signature(self) -> int:
        """The 4-byte signature at the start of the stream."""
        if len(self._data) < _SIGNATURE_SIZE:
            raise PDBError(ErrorCode.INVALID_STREAM, "module stream too small for its signature")
        return struct.unpack_from("<I", self._data, 0)[0]

    def record_at(self, offset: int) -> SymbolRecord:
        """Return the record starting at a stream offset."""
        return SymbolRecord.from_bytes(self._data, offset)

    def get_parent_record(self, record) -> SymbolRecord:
        """Return the record referenced by a decoded symbol's ``parent`` field."""
        return self.record_at(record.parent)

    def get_end_record(self, record) -> SymbolRecord:
        """Return the record referenced by a decoded symbol's ``end`` field."""
        return self.record_at(record.end)

    def find_record(self, kind: SymbolRecordKind | int) -> SymbolRecord | None:
        """Return the first record of the given kind, or ``None``."""
        return next((record for record in self.symbols() if record.kind == kind), None)

    def symbols(self) -> Iterator[SymbolRecord]:
        """Yield every symbol record in stream order."""
        offset = _SIGNATURE_SIZE
        while offset < len(self._data):
            record = self.record_at(offset)
            yield record
            offset = round_up_to_multiple(
                offset + SymbolRecord.HEADER_SIZE + record.record_size, 4
            )

    def __iter__(self) -> Iterator[SymbolRecord]:
        return self.symbols()