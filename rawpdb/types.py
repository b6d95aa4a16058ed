"""Core on-disk structures of the MSF/PDB container."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

#: Stream size that marks a "nil" stream without any data.
NIL_PAGE_SIZE = 0xFFFFFFFF


class ErrorCode(enum.IntEnum):
    """Reasons a PDB file or one of its streams is rejected."""

    SUCCESS = 0
    INVALID_SUPER_BLOCK = 1
    INVALID_FREE_BLOCK_MAP = 2
    INVALID_STREAM = 3
    INVALID_SIGNATURE = 4
    INVALID_STREAM_INDEX = 5
    UNKNOWN_VERSION = 6


class PDBError(Exception):
    """Raised when PDB data is malformed or unsupported."""

    def __init__(self, code: ErrorCode, message: str | None = None) -> None:
        self.code = ErrorCode(code)
        super().__init__(message if message is not None else self.code.name)


class FeatureCode(enum.IntEnum):
    """Feature codes stored at the end of the PDB info stream."""

    VC110 = 20091201
    VC140 = 20140508
    NO_TYPE_MERGE = 0x4D544F4E  # "NOTM"
    MINIMAL_DEBUG_INFO = 0x494E494D  # "MINI", linked with /DEBUG:FASTLINK


class PdbVersion(enum.IntEnum):
    """Versions of the PDB info stream header."""

    VC2 = 19941610
    VC4 = 19950623
    VC41 = 19950814
    VC50 = 19960307
    VC98 = 19970604
    VC70_DEP = 19990604
    VC70 = 20000404
    VC80 = 20030901
    VC110 = 20091201
    VC140 = 20140508


def _unpack(layout: struct.Struct, data, offset: int) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise PDBError(
            ErrorCode.INVALID_STREAM,
            f"need {layout.size} bytes at offset {offset}, have {len(data)}",
        )
    return layout.unpack_from(data, offset)


def _enum_or_int(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


@dataclass(frozen=True)
class Guid:
    """A 16-byte GUID as laid out in memory."""

    data1: int
    data2: int
    data3: int
    data4: bytes

    SIZE: ClassVar[int] = 16
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IHH8s")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "Guid":
        d1, d2, d3, d4 = _unpack(cls._LAYOUT, data, offset)
        return cls(d1, d2, d3, bytes(d4))

    def __str__(self) -> str:
        return (
            f"{self.data1:08X}-{self.data2:04X}-{self.data3:04X}-"
            f"{self.data4[:2].hex().upper()}-{self.data4[2:].hex().upper()}"
        )


@dataclass(frozen=True)
class ImageSectionHeader:
    """A section header of the original executable image."""

    name: bytes
    virtual_size: int
    virtual_address: int
    size_of_raw_data: int
    pointer_to_raw_data: int
    pointer_to_relocations: int
    pointer_to_linenumbers: int
    number_of_relocations: int
    number_of_linenumbers: int
    characteristics: int

    SIZE: ClassVar[int] = 40
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<8sIIIIIIHHI")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "ImageSectionHeader":
        fields = _unpack(cls._LAYOUT, data, offset)
        return cls(bytes(fields[0]), *fields[1:])

    @property
    def physical_address(self) -> int:
        """The same field as ``virtual_size``, under its other name."""
        return self.virtual_size

    @property
    def section_name(self) -> str:
        """The section name without trailing NUL padding."""
        return self.name.split(b"\0", 1)[0].decode("utf-8", errors="replace")


@dataclass(frozen=True)
class SuperBlock:
    """The MSF super block at the very start of a PDB file."""

    file_magic: bytes
    block_size: int
    free_block_map_index: int
    block_count: int
    directory_size: int
    unknown: int
    directory_block_indices: tuple[int, ...]

    MAGIC: ClassVar[bytes] = b"Microsoft C/C++ MSF 7.00\r\n\x1a\x44\x53\x00"
    SIZE: ClassVar[int] = 52
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<30s2xIIIII")

    @classmethod
    def from_bytes(cls, data) -> "SuperBlock":
        if len(data) < cls.SIZE:
            raise PDBError(ErrorCode.INVALID_SUPER_BLOCK, "file too small for a super block")
        magic, block_size, fbm, block_count, dir_size, unknown = cls._LAYOUT.unpack_from(data, 0)
        if block_size == 0:
            raise PDBError(ErrorCode.INVALID_SUPER_BLOCK, "block size is zero")
        directory_blocks = -(-dir_size // block_size)
        index_blocks = -(-(directory_blocks * 4) // block_size)
        end = cls.SIZE + 4 * index_blocks
        if len(data) < end:
            raise PDBError(ErrorCode.INVALID_SUPER_BLOCK, "directory block indices truncated")
        indices = struct.unpack_from(f"<{index_blocks}I", data, cls.SIZE)
        return cls(bytes(magic), block_size, fbm, block_count, dir_size, unknown, indices)

    @property
    def magic_is_valid(self) -> bool:
        """Whether the file starts with the MSF 7.00 signature."""
        return self.file_magic == self.MAGIC

    @property
    def directory_block_count(self) -> int:
        """Number of blocks occupied by the stream directory."""
        return -(-self.directory_size // self.block_size)


@dataclass(frozen=True)
class InfoHeader:
    """Header of the PDB info stream."""

    version: PdbVersion | int
    signature: int
    age: int
    guid: Guid

    SIZE: ClassVar[int] = 28
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<III")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "InfoHeader":
        version, signature, age = _unpack(cls._LAYOUT, data, offset)
        guid = Guid.from_bytes(data, offset + cls._LAYOUT.size)
        return cls(_enum_or_int(PdbVersion, version), signature, age, guid)


@dataclass(frozen=True)
class PublicStreamHeader:
    """Header of the public symbol stream."""

    sym_hash: int
    addr_map: int
    thunk_count: int
    size_of_thunk: int
    isect_thunk_table: int
    offset_thunk_table: int
    section_count: int

    SIZE: ClassVar[int] = 28
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IIIIH2xIH2x")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "PublicStreamHeader":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class HashTableHeader:
    """Header of the hash tables in the public and global symbol streams."""

    signature: int
    version: int
    size: int
    bucket_count: int

    SIGNATURE: ClassVar[int] = 0xFFFFFFFF
    VERSION: ClassVar[int] = 0xEFFE0000 + 19990810
    SIZE: ClassVar[int] = 16
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IIII")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "HashTableHeader":
        return cls(*_unpack(cls._LAYOUT, data, offset))

    @property
    def is_valid(self) -> bool:
        """Whether signature and version match the known hash table format."""
        return self.signature == self.SIGNATURE and self.version == self.VERSION


@dataclass(frozen=True)
class HashRecord:
    """A hash record pointing into the symbol record stream (1-based offset)."""

    offset: int
    cref: int

    SIZE: ClassVar[int] = 8
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<II")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "HashRecord":
        return cls(*_unpack(cls._LAYOUT, data, offset))