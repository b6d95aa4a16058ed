"""Structures and CodeView enumerations of the DBI stream."""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import ClassVar

from rawpdb.types import ErrorCode, PDBError


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


class DBIVersion(enum.IntEnum):
    """Versions of the DBI stream header."""

    VC41 = 930803
    V50 = 19960307
    V60 = 19970606
    V70 = 19990903
    V110 = 20091201


class SectionContributionVersion(enum.IntEnum):
    """Versions of the section contribution sub-stream."""

    VER60 = 0xEFFE0000 + 19970605
    V2 = 0xEFFE0000 + 20140516


class SymbolRecordKind(enum.IntEnum):
    """CodeView symbol record kinds that can appear in a DBI stream."""

    S_END = 0x0006
    S_SKIP = 0x0007
    S_FRAMEPROC = 0x1012
    S_OBJNAME = 0x1101
    S_THUNK32 = 0x1102
    S_BLOCK32 = 0x1103
    S_LABEL32 = 0x1105
    S_CONSTANT = 0x1107
    S_LDATA32 = 0x110C
    S_GDATA32 = 0x110D
    S_PUB32 = 0x110E
    S_LPROC32 = 0x110F
    S_GPROC32 = 0x1110
    S_REGREL32 = 0x1111
    S_LTHREAD32 = 0x1112
    S_GTHREAD32 = 0x1113
    S_PROCREF = 0x1125
    S_LPROCREF = 0x1127
    S_TRAMPOLINE = 0x112C
    S_SEPCODE = 0x1132
    S_SECTION = 0x1136
    S_COFFGROUP = 0x1137
    S_CALLSITEINFO = 0x1139
    S_FRAMECOOKIE = 0x113A
    S_COMPILE3 = 0x113C
    S_ENVBLOCK = 0x113D
    S_LOCAL = 0x113E
    S_DEFRANGE_REGISTER = 0x1141
    S_DEFRANGE_FRAMEPOINTER_REL = 0x1142
    S_DEFRANGE_SUBFIELD_REGISTER = 0x1143
    S_DEFRANGE_FRAMEPOINTER_REL_FULL_SCOPE = 0x1144
    S_DEFRANGE_REGISTER_REL = 0x1145
    S_LPROC32_ID = 0x1146
    S_GPROC32_ID = 0x1147
    S_BUILDINFO = 0x114C
    S_INLINESITE = 0x114D
    S_INLINESITE_END = 0x114E
    S_PROC_ID_END = 0x114F
    S_FILESTATIC = 0x1153
    S_LPROC32_DPC = 0x1155
    S_LPROC32_DPC_ID = 0x1156
    S_CALLEES = 0x115A
    S_CALLERS = 0x115B
    S_INLINESITE2 = 0x115D
    S_HEAPALLOCSITE = 0x115E
    S_INLINEES = 0x1168
    S_REGREL32_INDIR = 0x1171
    S_REGREL32_ENCTMP = 0x1179
    S_UDT = 0x1108
    S_UDT_ST = 0x1003


class ThunkOrdinal(enum.IntEnum):
    """Kinds of thunks."""

    NO_TYPE = 0
    THIS_ADJUSTOR = 1
    VIRTUAL_CALL = 2
    PCODE = 3
    DELAY_LOAD = 4
    TRAMPOLINE_INCREMENTAL = 5
    TRAMPOLINE_BRANCH_ISLAND = 6


class TrampolineType(enum.IntEnum):
    """Kinds of incremental-linking trampolines."""

    INCREMENTAL = 0
    BRANCH_ISLAND = 1


class CookieType(enum.IntEnum):
    """Kinds of security cookies."""

    COPY = 0
    XOR_SP = 1
    XOR_BP = 2
    XOR_R13 = 3


class Register(enum.IntEnum):
    """x64 general purpose registers as numbered by CodeView."""

    RAX = 328
    RBX = 329
    RCX = 330
    RDX = 331
    RSI = 332
    RDI = 333
    RBP = 334
    RSP = 335


class ProcedureFlags(enum.IntFlag):
    """Flags of procedure and label symbols."""

    NONE = 0
    NO_FPO = 1 << 0
    INTERRUPT_RETURN = 1 << 1
    FAR_RETURN = 1 << 2
    NO_RETURN = 1 << 3
    UNREACHABLE = 1 << 4
    CUSTOM_CALLING_CONVENTION = 1 << 5
    NO_INLINE = 1 << 6
    OPTIMIZED_DEBUG_INFORMATION = 1 << 7


class PublicSymbolFlags(enum.IntFlag):
    """Flags of public symbols."""

    NONE = 0
    CODE = 1 << 0
    FUNCTION = 1 << 1
    MANAGED_CODE = 1 << 2
    MANAGED_IL_CODE = 1 << 3


class CompileSymbolFlags(enum.IntFlag):
    """Flags of S_COMPILE3 records; the low byte holds the source language."""

    NONE = 0
    SOURCE_LANGUAGE_MASK = 0xFF
    EC = 1 << 8
    NO_DEBUG_INFO = 1 << 9
    LTCG = 1 << 10
    NO_DATA_ALIGN = 1 << 11
    MANAGED_CODE_OR_DATA_PRESENT = 1 << 12
    SECURITY_CHECKS = 1 << 13
    HOT_PATCH = 1 << 14
    CVTCIL = 1 << 15
    MSIL_MODULE = 1 << 16
    SDL = 1 << 17
    PGO = 1 << 18
    EXP = 1 << 19


class CPUType(enum.IntEnum):
    """Target machines recorded by the compiler."""

    INTEL_8080 = 0x0
    INTEL_8086 = 0x1
    INTEL_80286 = 0x2
    INTEL_80386 = 0x3
    INTEL_80486 = 0x4
    PENTIUM = 0x5
    PENTIUM_II = 0x6
    PENTIUM_PRO = 0x6
    PENTIUM_III = 0x7
    MIPS = 0x10
    MIPS_R4000 = 0x10
    MIPS16 = 0x11
    MIPS32 = 0x12
    MIPS64 = 0x13
    MIPS_I = 0x14
    MIPS_II = 0x15
    MIPS_III = 0x16
    MIPS_IV = 0x17
    MIPS_V = 0x18
    M68000 = 0x20
    M68010 = 0x21
    M68020 = 0x22
    M68030 = 0x23
    M68040 = 0x24
    ALPHA = 0x30
    ALPHA_21164 = 0x31
    ALPHA_21164A = 0x32
    ALPHA_21264 = 0x33
    ALPHA_21364 = 0x34
    PPC601 = 0x40
    PPC603 = 0x41
    PPC604 = 0x42
    PPC620 = 0x43
    PPCFP = 0x44
    PPCBE = 0x45
    SH3 = 0x50
    SH3E = 0x51
    SH3DSP = 0x52
    SH4 = 0x53
    SH_MEDIA = 0x54
    ARM3 = 0x60
    ARM4 = 0x61
    ARM4T = 0x62
    ARM5 = 0x63
    ARM5T = 0x64
    ARM6 = 0x65
    ARM_XMAC = 0x66
    ARM_WMMX = 0x67
    ARM7 = 0x68
    OMNI = 0x70
    IA64 = 0x80
    IA64_1 = 0x80
    IA64_2 = 0x81
    CEE = 0x90
    AM33 = 0xA0
    M32R = 0xB0
    TRICORE = 0xC0
    X64 = 0xD0
    AMD64 = 0xD0
    EBC = 0xE0
    THUMB = 0xF0
    ARMNT = 0xF4
    ARM64 = 0xF6
    HYBRID_X86_ARM64 = 0xF7
    ARM64EC = 0xF8
    ARM64X = 0xF9
    D3D11_SHADER = 0x100


class DebugSubsectionKind(enum.IntEnum):
    """Kinds of C13 debug subsections in a module stream."""

    S_IGNORE = 0x80000000
    S_SYMBOLS = 0xF1
    S_LINES = 0xF2
    S_STRINGTABLE = 0xF3
    S_FILECHECKSUMS = 0xF4
    S_FRAMEDATA = 0xF5
    S_INLINEELINES = 0xF6
    S_CROSSSCOPEIMPORTS = 0xF7
    S_CROSSSCOPEEXPORTS = 0xF8
    S_IL_LINES = 0xF9
    S_FUNC_MDTOKEN_MAP = 0xFA
    S_TYPE_MDTOKEN_MAP = 0xFB
    S_MERGED_ASSEMBLYINPUT = 0xFC
    S_COFF_SYMBOL_RVA = 0xFD


class ChecksumKind(enum.IntEnum):
    """Hash algorithms of source file checksums."""

    NONE = 0
    MD5 = 1
    SHA1 = 2
    SHA256 = 3


class InlineeSourceLineKind(enum.IntEnum):
    """Layouts of inlinee source line subsections."""

    SIGNATURE = 0
    SIGNATURE_EX = 1


@dataclass(frozen=True)
class DBIStreamHeader:
    """Header of the DBI stream."""

    signature: int
    version: DBIVersion | int
    age: int
    global_stream_index: int
    toolchain: int
    public_stream_index: int
    pdb_dll_version: int
    symbol_record_stream_index: int
    pdb_dll_rbld: int
    module_info_size: int
    section_contribution_size: int
    section_map_size: int
    source_info_size: int
    type_server_map_size: int
    mfc_type_server_index: int
    optional_debug_header_size: int
    ec_size: int
    flags: int
    machine: int

    SIGNATURE: ClassVar[int] = 0xFFFFFFFF
    SIZE: ClassVar[int] = 64
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<IIIHHHHHHIIIIIIIIHH4x")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "DBIStreamHeader":
        fields = list(_unpack(cls._LAYOUT, data, offset))
        fields[1] = _enum_or_int(DBIVersion, fields[1])
        return cls(*fields)

    @property
    def signature_is_valid(self) -> bool:
        """Whether the header carries the expected DBI signature."""
        return self.signature == self.SIGNATURE


@dataclass(frozen=True)
class DebugHeader:
    """The optional debug header: indices of streams with extra debug data."""

    fpo_data_stream_index: int
    exception_data_stream_index: int
    fixup_data_stream_index: int
    omap_to_src_data_stream_index: int
    omap_from_src_data_stream_index: int
    section_header_stream_index: int
    token_data_stream_index: int
    xdata_stream_index: int
    pdata_stream_index: int
    new_fpo_data_stream_index: int
    original_section_header_data_stream_index: int

    INVALID_STREAM_INDEX: ClassVar[int] = 0xFFFF
    SIZE: ClassVar[int] = 22
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<11H")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "DebugHeader":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class SectionContribution:
    """A contiguous range of an image section contributed by one module."""

    section: int
    offset: int
    size: int
    characteristics: int
    module_index: int
    data_crc: int
    relocation_crc: int

    SIZE: ClassVar[int] = 28
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<H2xIIIH2xII")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "SectionContribution":
        return cls(*_unpack(cls._LAYOUT, data, offset))


@dataclass(frozen=True)
class ModuleInfo:
    """Fixed-size part of a module info record."""

    section_contribution: SectionContribution
    flags: int
    module_symbol_stream_index: int
    symbol_size: int
    c11_size: int
    c13_size: int
    source_file_count: int
    source_file_name_index: int
    pdb_file_path_name_index: int

    SIZE: ClassVar[int] = 64
    _LAYOUT: ClassVar[struct.Struct] = struct.Struct("<HHIIIH2x4xII")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "ModuleInfo":
        if offset < 0 or offset + cls.SIZE > len(data):
            raise PDBError(
                ErrorCode.INVALID_STREAM,
                f"need {cls.SIZE} bytes at offset {offset}, have {len(data)}",
            )
        contribution = SectionContribution.from_bytes(data, offset + 4)
        fields = _unpack(cls._LAYOUT, data, offset + 4 + SectionContribution.SIZE)
        return cls(contribution, *fields)


@dataclass(frozen=True)
class SymbolRecord:
    """A raw CodeView symbol record: header plus undecoded payload."""

    size: int
    kind: SymbolRecordKind | int
    data: bytes
    offset: int = 0

    HEADER_SIZE: ClassVar[int] = 4
    _HEADER: ClassVar[struct.Struct] = struct.Struct("<HH")

    @classmethod
    def from_bytes(cls, data, offset: int = 0) -> "SymbolRecord":
        size, kind = _unpack(cls._HEADER, data, offset)
        if size < 2:
            raise PDBError(ErrorCode.INVALID_STREAM, f"record at {offset} has invalid size {size}")
        end = offset + 2 + size
        if end > len(data):
            raise PDBError(ErrorCode.INVALID_STREAM, f"record at {offset} is truncated")
        payload = bytes(data[offset + cls.HEADER_SIZE:end])
        return cls(size, _enum_or_int(SymbolRecordKind, kind), payload, offset)

    @property
    def record_size(self) -> int:
        """Size of the payload following the 4-byte header."""
        return self.size - 2

    @property
    def total_size(self) -> int:
        """Size of the whole record including its length field."""
        return self.size + 2