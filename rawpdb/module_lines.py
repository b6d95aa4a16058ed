"""The C13 line information part of a module's stream."""

from __future__ import annotations

import struct
from collections.abc import Iterator
from dataclasses import dataclass
from typing import ClassVar

from rawpdb.bits import round_up_to_multiple
from rawpdb.dbi_types import ChecksumKind, DebugSubsectionKind, InlineeSourceLineKind
from rawpdb.rawfile import RawFile
from rawpdb.types import ErrorCode, PDBError

_SUBSECTION_HEADER = struct.Struct("<II")
_INLINEE_KIND = struct.Struct("<I")


def _unpack(layout: struct.Struct, data, offset: int) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise PDBError(
            ErrorCode.INVALID_STREAM,
            f"line data needs {layout.size} bytes at offset {offset}, have {len(data)}",
        )
    return layout.unpack_from(data, offset)


def _enum_or_int(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class LinesHeader:
    """Header of an S_LINES subsection."""

    section_offset: int
    section_index: int
    flags: int
    code_size: int

    SIZE: ClassVar[int] = 12
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IHHI")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "LinesHeader":
        return cls(*_unpack(cls._LAYOUT, data, offset))

    @property
    def has_columns(self) -> bool:
        """Whether the line blocks carry column information."""
        return bool(self.flags & 1)


@dataclass(frozen=True)
class LineSection:
    """A C13 debug subsection: its kind, size, stream offset and payload."""

    kind: DebugSubsectionKind | int
    size: int
    offset: int
    data: bytes

    HEADER_SIZE: ClassVar[int] = 8

    @property
    def lines_header(self) -> LinesHeader:
        """The lines header at the start of an S_LINES payload."""
        return LinesHeader.from_bytes(self.data, 0)

    @property
    def inlinee_kind(self) -> InlineeSourceLineKind | int:
        """The layout of an S_INLINEELINES payload."""
        (kind,) = _unpack(_INLINEE_KIND, self.data, 0)
        return _enum_or_int(InlineeSourceLineKind, kind)


@dataclass(frozen=True)
class LinesFileBlockHeader:
    """Header of one block of lines belonging to a single source file."""

    file_checksum_offset: int
    num_lines: int
    size: int

    SIZE: ClassVar[int] = 12
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "LinesFileBlockHeader":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class Line:
    """A mapping from a code offset to a source line."""

    offset: int
    line_start: int
    delta_line_end: int
    is_statement: bool

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<II")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "Line":
        code_offset, bits = _unpack(cls._LAYOUT, data, offset)
        return cls(code_offset, bits & 0xFFFFFF, (bits >> 24) & 0x7F, bool(bits >> 31))


@dataclass(frozen=True)
class Column:
    """Start and end column of a line entry."""

    start: int
    end: int

    SIZE: ClassVar[int] = 4
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HH")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "Column":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class LinesBlock:
    """A block of lines, with columns if the block stores them."""

    header: LinesFileBlockHeader
    lines: tuple[Line, ...]
    columns: tuple[Column, ...] | None


@dataclass(frozen=True)
class FileChecksum:
    """A source file entry of an S_FILECHECKSUMS subsection."""

    filename_offset: int
    checksum_size: int
    checksum_kind: ChecksumKind | int
    checksum: bytes
    offset: int = 0

    HEADER_SIZE: ClassVar[int] = 6
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IBB")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "FileChecksum":
        filename_offset, size, kind = _unpack(cls._LAYOUT, data, offset)
        start = offset + cls.HEADER_SIZE
        if start + size > len(data):
            raise PDBError(ErrorCode.INVALID_STREAM, f"file checksum at {offset} is truncated")
        return cls(
            filename_offset, size, _enum_or_int(ChecksumKind, kind),
            bytes(data[start:start + size]), offset,
        )


@dataclass(frozen=True)
class InlineeSourceLine:
    """Source location of an inlined function."""

    inlinee: int
    file_checksum_offset: int
    line_number: int

    SIZE: ClassVar[int] = 12
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "InlineeSourceLine":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class InlineeSourceLineEx:
    """Source location of an inlined function, with extra file references."""

    inlinee: int
    file_checksum_offset: int
    line_number: int
    extra_file_checksum_offsets: tuple[int, ...]

    HEADER_SIZE: ClassVar[int] = 16
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IIII")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "InlineeSourceLineEx":
        inlinee, checksum_offset, line_number, extra = _unpack(cls._LAYOUT, data, offset)
        extras = _unpack(struct.Struct(f"<{extra}I"), data, offset + cls.HEADER_SIZE)
        return cls(inlinee, checksum_offset, line_number, extras)

    @property
    def extra_lines(self) -> int:
        """Number of extra file checksum offsets."""
        return len(self.extra_file_checksum_offsets)


class ModuleLineStream:
    """The C13 debug subsections of one module's stream."""

    def __init__(
        self, file: RawFile, stream_index: int, stream_size: int, c13_line_info_offset: int
    ) -> None:
        self._data = file.read_stream(stream_index, stream_size)
        self._c13_offset = c13_line_info_offset

    def __len__(self) -> int:
        return len(self._data)

    def sections(self) -> Iterator[LineSection]:
        """Yield every debug subsection in stream order."""
        offset = self._c13_offset
        while offset < len(self._data):
            kind, size = _unpack(_SUBSECTION_HEADER, self._data, offset)
            start = offset + LineSection.HEADER_SIZE
            if start + size > len(self._data):
                raise PDBError(ErrorCode.INVALID_STREAM, f"subsection at {offset} is truncated")
            yield LineSection(
                _enum_or_int(DebugSubsectionKind, kind), size, offset,
                bytes(self._data[start:start + size]),
            )
            offset = round_up_to_multiple(start + size, 4)

    def __iter__(self) -> Iterator[LineSection]:
        return self.sections()

    @staticmethod
    def _require_kind(section: LineSection, kind: DebugSubsectionKind) -> None:
        if section.kind != kind:
            raise ValueError(f"subsection kind {section.kind!r} is not {kind.name}")

    @staticmethod
    def _section_end(section: LineSection) -> int:
        return round_up_to_multiple(section.offset + LineSection.HEADER_SIZE + section.size, 4)

    def lines_blocks(self, section: LineSection) -> Iterator[LinesBlock]:
        """Yield the blocks of lines of an S_LINES subsection."""
        self._require_kind(section, DebugSubsectionKind.S_LINES)
        header_end = self._section_end(section)
        offset = round_up_to_multiple(
            section.offset + LineSection.HEADER_SIZE + LinesHeader.SIZE, 4
        )
        while offset < header_end:
            block_header = LinesFileBlockHeader.from_bytes(self._data, offset)
            lines_start = offset + LinesFileBlockHeader.SIZE
            lines = tuple(
                Line.from_bytes(self._data, lines_start + i * Line.SIZE)
                for i in range(block_header.num_lines)
            )
            columns_offset = LinesFileBlockHeader.SIZE + block_header.num_lines * Line.SIZE
            columns = None
            if columns_offset < block_header.size:
                columns = tuple(
                    Column.from_bytes(self._data, offset + columns_offset + i * Column.SIZE)
                    for i in range(block_header.num_lines)
                )
            yield LinesBlock(block_header, lines, columns)
            offset = round_up_to_multiple(offset + block_header.size, 4)
        if offset != header_end:
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"lines blocks end at {offset}, subsection ends at {header_end}",
            )

    def file_checksums(self, section: LineSection) -> Iterator[FileChecksum]:
        """Yield the file entries of an S_FILECHECKSUMS subsection."""
        self._require_kind(section, DebugSubsectionKind.S_FILECHECKSUMS)
        header_end = self._section_end(section)
        offset = round_up_to_multiple(section.offset + LineSection.HEADER_SIZE, 4)
        while offset < header_end:
            checksum = FileChecksum.from_bytes(self._data, offset)
            yield checksum
            offset = round_up_to_multiple(
                offset + FileChecksum.HEADER_SIZE + checksum.checksum_size, 4
            )
        if offset != header_end:
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"file checksums end at {offset}, subsection ends at {header_end}",
            )

    def _inlinee_start(self, section: LineSection, kind: InlineeSourceLineKind) -> int:
        self._require_kind(section, DebugSubsectionKind.S_INLINEELINES)
        if section.inlinee_kind != kind:
            raise ValueError(f"inlinee line kind {section.inlinee_kind!r} is not {kind.name}")
        return round_up_to_multiple(
            section.offset + LineSection.HEADER_SIZE + _INLINEE_KIND.size, 4
        )

    def inlinee_source_lines(self, section: LineSection) -> Iterator[InlineeSourceLine]:
        """Yield the entries of an S_INLINEELINES subsection of the plain layout."""
        offset = self._inlinee_start(section, InlineeSourceLineKind.SIGNATURE)
        header_end = self._section_end(section)
        while offset < header_end:
            yield InlineeSourceLine.from_bytes(self._data, offset)
            offset = round_up_to_multiple(offset + InlineeSourceLine.SIZE, 4)

    def inlinee_source_lines_ex(self, section: LineSection) -> Iterator[InlineeSourceLineEx]:
        """Yield the entries of an S_INLINEELINES subsection of the extended layout."""
        offset = self._inlinee_start(section, InlineeSourceLineKind.SIGNATURE_EX)
        header_end = self._section_end(section)
        while offset < header_end:
            entry = InlineeSourceLineEx.from_bytes(self._data, offset)
            yield entry
            offset = round_up_to_multiple(
                offset + InlineeSourceLineEx.HEADER_SIZE + 4 * entry.extra_lines, 4
            )