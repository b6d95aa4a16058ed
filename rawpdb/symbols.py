"""Decoding of the payload of CodeView symbol records."""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass

from rawpdb.dbi_types import (
    CompileSymbolFlags,
    CookieType,
    CPUType,
    ProcedureFlags,
    PublicSymbolFlags,
    Register,
    SymbolRecord,
    SymbolRecordKind,
    ThunkOrdinal,
    TrampolineType,
)
from rawpdb.types import ErrorCode, PDBError


def _unpack(layout: struct.Struct, data: bytes, offset: int = 0) -> tuple:
    if offset < 0 or offset + layout.size > len(data):
        raise PDBError(
            ErrorCode.INVALID_STREAM,
            f"symbol payload needs {layout.size} bytes at offset {offset}, has {len(data)}",
        )
    return layout.unpack_from(data, offset)


def _enum_or_int(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _cstring(data: bytes, offset: int) -> str:
    if offset > len(data):
        raise PDBError(ErrorCode.INVALID_STREAM, "symbol name lies outside the record")
    end = data.find(b"\0", offset)
    if end < 0:
        end = len(data)
    return data[offset:end].decode("utf-8", errors="replace")


class _BitField:
    """Read-only view of a bit range of the ``value`` of a flags object."""

    def __init__(self, position: int, width: int = 1) -> None:
        self._position = position
        self._width = width

    def __get__(self, obj, objtype=None):
        if obj is None:
            return self
        bits = (obj.value >> self._position) & ((1 << self._width) - 1)
        return bool(bits) if self._width == 1 else bits


@dataclass(frozen=True)
class AddressRange:
    """A range of code addresses in which a variable location is valid."""

    offset_start: int
    isection_start: int
    length: int


@dataclass(frozen=True)
class AddressGap:
    """A hole in an address range, relative to its start."""

    offset: int
    length: int


_RANGE = struct.Struct("<IHH")
_GAP = struct.Struct("<HH")


def _range_and_gaps(data: bytes, offset: int) -> tuple[AddressRange, tuple[AddressGap, ...]]:
    address_range = AddressRange(*_unpack(_RANGE, data, offset))
    start = offset + _RANGE.size
    gap_count = (len(data) - start) // _GAP.size
    gaps = tuple(
        AddressGap(*_GAP.unpack_from(data, position))
        for position in range(start, start + gap_count * _GAP.size, _GAP.size)
    )
    return address_range, gaps


@dataclass(frozen=True)
class FrameProcFlags:
    """Flags of an S_FRAMEPROC record."""

    value: int

    has_alloca = _BitField(0)
    has_setjmp = _BitField(1)
    has_longjmp = _BitField(2)
    has_inline_asm = _BitField(3)
    has_eh = _BitField(4)
    inline_spec = _BitField(5)
    has_seh = _BitField(6)
    naked = _BitField(7)
    security_checks = _BitField(8)
    async_eh = _BitField(9)
    gs_no_stack_ordering = _BitField(10)
    was_inlined = _BitField(11)
    gs_check = _BitField(12)
    safe_buffers = _BitField(13)
    encoded_local_base_pointer = _BitField(14, 2)
    encoded_param_base_pointer = _BitField(16, 2)
    pogo_on = _BitField(18)
    valid_counts = _BitField(19)
    opt_speed = _BitField(20)
    guard_cf = _BitField(21)
    guard_cfw = _BitField(22)


@dataclass(frozen=True)
class LocalVariableFlags:
    """Flags of S_LOCAL and S_FILESTATIC records."""

    value: int

    is_param = _BitField(0)
    addr_taken = _BitField(1)
    comp_genx = _BitField(2)
    is_aggregate = _BitField(3)
    is_aggregated = _BitField(4)
    is_aliased = _BitField(5)
    is_alias = _BitField(6)
    is_ret_value = _BitField(7)
    is_optimized_out = _BitField(8)
    is_enreg_glob = _BitField(9)
    is_enreg_stat = _BitField(10)


@dataclass(frozen=True)
class FrameProcSymbol:
    kind: SymbolRecordKind
    frame_size: int
    pad_size: int
    pad_offset: int
    save_regs_size: int
    exception_handler_offset: int
    exception_handler_section: int
    flags: FrameProcFlags


@dataclass(frozen=True)
class PublicSymbol:
    kind: SymbolRecordKind
    flags: PublicSymbolFlags
    offset: int
    section: int
    name: str


@dataclass(frozen=True)
class DataSymbol:
    kind: SymbolRecordKind
    type_index: int
    offset: int
    section: int
    name: str


@dataclass(frozen=True)
class ObjNameSymbol:
    kind: SymbolRecordKind
    signature: int
    name: str


@dataclass(frozen=True)
class TrampolineSymbol:
    kind: SymbolRecordKind
    type: TrampolineType | int
    size: int
    thunk_offset: int
    target_offset: int
    thunk_section: int
    target_section: int


@dataclass(frozen=True)
class SectionSymbol:
    kind: SymbolRecordKind
    section_number: int
    alignment: int
    rva: int
    length: int
    characteristics: int
    name: str


@dataclass(frozen=True)
class CoffGroupSymbol:
    kind: SymbolRecordKind
    size: int
    characteristics: int
    offset: int
    section: int
    name: str


@dataclass(frozen=True)
class CallSiteInfoSymbol:
    kind: SymbolRecordKind
    offset: int
    section: int
    type_index: int


@dataclass(frozen=True)
class FrameCookieSymbol:
    kind: SymbolRecordKind
    offset: int
    register: int
    cookie_type: CookieType | int
    flags: int


@dataclass(frozen=True)
class ThunkSymbol:
    kind: SymbolRecordKind
    parent: int
    end: int
    next: int
    offset: int
    section: int
    length: int
    ordinal: ThunkOrdinal | int
    name: str


@dataclass(frozen=True)
class ProcedureSymbol:
    kind: SymbolRecordKind
    parent: int
    end: int
    next: int
    code_size: int
    debug_start: int
    debug_end: int
    type_index: int
    offset: int
    section: int
    flags: ProcedureFlags
    name: str


@dataclass(frozen=True)
class RegisterRelativeSymbol:
    kind: SymbolRecordKind
    offset: int
    type_index: int
    register: Register | int
    name: str


@dataclass(frozen=True)
class BlockSymbol:
    kind: SymbolRecordKind
    parent: int
    end: int
    code_size: int
    offset: int
    section: int
    name: str


@dataclass(frozen=True)
class LabelSymbol:
    kind: SymbolRecordKind
    offset: int
    section: int
    flags: ProcedureFlags
    name: str


@dataclass(frozen=True)
class ConstantSymbol:
    kind: SymbolRecordKind
    type_index: int
    value: int
    name: str


@dataclass(frozen=True)
class BuildInfoSymbol:
    kind: SymbolRecordKind
    type_index: int


@dataclass(frozen=True)
class InlineSiteSymbol:
    kind: SymbolRecordKind
    parent: int
    end: int
    inlinee: int
    binary_annotations: bytes


@dataclass(frozen=True)
class FileStaticSymbol:
    kind: SymbolRecordKind
    type_index: int
    module_filename_offset: int
    flags: LocalVariableFlags
    name: str


@dataclass(frozen=True)
class CompileSymbol:
    kind: SymbolRecordKind
    flags: CompileSymbolFlags
    machine: CPUType | int
    frontend_version: tuple[int, int, int, int]
    backend_version: tuple[int, int, int, int]
    version: str

    @property
    def source_language(self) -> int:
        """The source language stored in the low byte of the flags."""
        return int(self.flags) & int(CompileSymbolFlags.SOURCE_LANGUAGE_MASK)


@dataclass(frozen=True)
class EnvBlockSymbol:
    kind: SymbolRecordKind
    flags: int
    strings: tuple[str, ...]


@dataclass(frozen=True)
class LocalSymbol:
    kind: SymbolRecordKind
    type_index: int
    flags: LocalVariableFlags
    name: str


@dataclass(frozen=True)
class DefRangeRegisterSymbol:
    kind: SymbolRecordKind
    register: int
    may_have_no_name: bool
    range: AddressRange
    gaps: tuple[AddressGap, ...]


@dataclass(frozen=True)
class DefRangeFramePointerRelSymbol:
    kind: SymbolRecordKind
    offset_frame_pointer: int
    range: AddressRange
    gaps: tuple[AddressGap, ...]


@dataclass(frozen=True)
class DefRangeSubfieldRegisterSymbol:
    kind: SymbolRecordKind
    register: int
    may_have_no_name: bool
    offset_parent: int
    range: AddressRange
    gaps: tuple[AddressGap, ...]


@dataclass(frozen=True)
class DefRangeFramePointerRelFullScopeSymbol:
    kind: SymbolRecordKind
    offset_frame_pointer: int


@dataclass(frozen=True)
class DefRangeRegisterRelSymbol:
    kind: SymbolRecordKind
    base_register: int
    spilled_udt_member: bool
    offset_parent: int
    offset_base_pointer: int
    range: AddressRange
    gaps: tuple[AddressGap, ...]


@dataclass(frozen=True)
class HeapAllocSiteSymbol:
    kind: SymbolRecordKind
    offset: int
    section: int
    instruction_length: int
    type_index: int


@dataclass(frozen=True)
class FunctionListSymbol:
    kind: SymbolRecordKind
    functions: tuple[int, ...]
    invocations: tuple[int, ...]


@dataclass(frozen=True)
class UdtSymbol:
    kind: SymbolRecordKind
    type_index: int
    name: str


@dataclass(frozen=True)
class RegisterRelativeIndirSymbol:
    kind: SymbolRecordKind
    unknown1: int
    type_index: int
    unknown2: int
    register: Register | int
    name: str


_FRAMEPROC = struct.Struct("<IIIIIHI")
_PUB32 = struct.Struct("<IIH")
_DATA32 = struct.Struct("<IIH")
_U32 = struct.Struct("<I")
_TRAMPOLINE = struct.Struct("<HHIIHH")
_SECTION = struct.Struct("<HBIII")
_COFFGROUP = struct.Struct("<IIIH")
_CALLSITEINFO = struct.Struct("<IH2xI")
_FRAMECOOKIE = struct.Struct("<IHBB")
_THUNK32 = struct.Struct("<IIIIHHB")
_PROC32 = struct.Struct("<IIIIIIIIHB")
_REGREL32 = struct.Struct("<IIH")
_BLOCK32 = struct.Struct("<IIIIH")
_LABEL32 = struct.Struct("<IHB")
_CONSTANT = struct.Struct("<IH")
_INLINESITE = struct.Struct("<III")
_FILESTATIC = struct.Struct("<IIH")
_COMPILE3 = struct.Struct("<IH8H")
_LOCAL = struct.Struct("<IH")
_DEFRANGE_REGISTER = struct.Struct("<HH")
_DEFRANGE_SUBFIELD = struct.Struct("<HHI")
_DEFRANGE_REGREL = struct.Struct("<HHI")
_HEAPALLOCSITE = struct.Struct("<IHHI")
_UDT = struct.Struct("<I")
_REGREL32_INDIR = struct.Struct("<IIIH")


def _frameproc(kind, data):
    *sizes, section, flags = _unpack(_FRAMEPROC, data)
    return FrameProcSymbol(kind, *sizes, section, FrameProcFlags(flags))


def _pub32(kind, data):
    flags, offset, section = _unpack(_PUB32, data)
    return PublicSymbol(kind, PublicSymbolFlags(flags), offset, section, _cstring(data, _PUB32.size))


def _data32(kind, data):
    return DataSymbol(kind, *_unpack(_DATA32, data), _cstring(data, _DATA32.size))


def _objname(kind, data):
    (signature,) = _unpack(_U32, data)
    return ObjNameSymbol(kind, signature, _cstring(data, _U32.size))


def _trampoline(kind, data):
    tramp_type, *rest = _unpack(_TRAMPOLINE, data)
    return TrampolineSymbol(kind, _enum_or_int(TrampolineType, tramp_type), *rest)


def _section(kind, data):
    return SectionSymbol(kind, *_unpack(_SECTION, data), _cstring(data, _SECTION.size))


def _coffgroup(kind, data):
    return CoffGroupSymbol(kind, *_unpack(_COFFGROUP, data), _cstring(data, _COFFGROUP.size))


def _callsiteinfo(kind, data):
    return CallSiteInfoSymbol(kind, *_unpack(_CALLSITEINFO, data))


def _framecookie(kind, data):
    offset, register, cookie_type, flags = _unpack(_FRAMECOOKIE, data)
    return FrameCookieSymbol(kind, offset, register, _enum_or_int(CookieType, cookie_type), flags)


def _thunk32(kind, data):
    *fields, ordinal = _unpack(_THUNK32, data)
    return ThunkSymbol(
        kind, *fields, _enum_or_int(ThunkOrdinal, ordinal), _cstring(data, _THUNK32.size)
    )


def _proc32(kind, data):
    *fields, flags = _unpack(_PROC32, data)
    return ProcedureSymbol(kind, *fields, ProcedureFlags(flags), _cstring(data, _PROC32.size))


def _regrel32(kind, data):
    offset, type_index, register = _unpack(_REGREL32, data)
    return RegisterRelativeSymbol(
        kind, offset, type_index, _enum_or_int(Register, register), _cstring(data, _REGREL32.size)
    )


def _block32(kind, data):
    return BlockSymbol(kind, *_unpack(_BLOCK32, data), _cstring(data, _BLOCK32.size))


def _label32(kind, data):
    offset, section, flags = _unpack(_LABEL32, data)
    return LabelSymbol(kind, offset, section, ProcedureFlags(flags), _cstring(data, _LABEL32.size))


def _constant(kind, data):
    return ConstantSymbol(kind, *_unpack(_CONSTANT, data), _cstring(data, _CONSTANT.size))


def _buildinfo(kind, data):
    return BuildInfoSymbol(kind, *_unpack(_U32, data))


def _inlinesite(kind, data):
    parent, end, inlinee = _unpack(_INLINESITE, data)
    return InlineSiteSymbol(kind, parent, end, inlinee, bytes(data[_INLINESITE.size:]))


def _filestatic(kind, data):
    type_index, filename_offset, flags = _unpack(_FILESTATIC, data)
    return FileStaticSymbol(
        kind, type_index, filename_offset, LocalVariableFlags(flags), _cstring(data, _FILESTATIC.size)
    )


def _compile3(kind, data):
    flags, machine, *versions = _unpack(_COMPILE3, data)
    return CompileSymbol(
        kind,
        CompileSymbolFlags(flags),
        _enum_or_int(CPUType, machine),
        tuple(versions[:4]),
        tuple(versions[4:]),
        _cstring(data, _COMPILE3.size),
    )


def _envblock(kind, data):
    if not data:
        raise PDBError(ErrorCode.INVALID_STREAM, "environment block record is empty")
    strings = []
    position = 1
    while position < len(data):
        end = data.find(b"\0", position)
        if end < 0:
            end = len(data)
        if end == position:
            break
        strings.append(data[position:end].decode("utf-8", errors="replace"))
        position = end + 1
    return EnvBlockSymbol(kind, data[0], tuple(strings))


def _local(kind, data):
    type_index, flags = _unpack(_LOCAL, data)
    return LocalSymbol(kind, type_index, LocalVariableFlags(flags), _cstring(data, _LOCAL.size))


def _defrange_register(kind, data):
    register, attribute = _unpack(_DEFRANGE_REGISTER, data)
    address_range, gaps = _range_and_gaps(data, _DEFRANGE_REGISTER.size)
    return DefRangeRegisterSymbol(kind, register, bool(attribute & 1), address_range, gaps)


def _defrange_framepointer_rel(kind, data):
    (offset,) = _unpack(_U32, data)
    address_range, gaps = _range_and_gaps(data, _U32.size)
    return DefRangeFramePointerRelSymbol(kind, offset, address_range, gaps)


def _defrange_subfield_register(kind, data):
    register, attribute, parent_bits = _unpack(_DEFRANGE_SUBFIELD, data)
    address_range, gaps = _range_and_gaps(data, _DEFRANGE_SUBFIELD.size)
    return DefRangeSubfieldRegisterSymbol(
        kind, register, bool(attribute & 1), parent_bits & 0xFFF, address_range, gaps
    )


def _defrange_framepointer_rel_full_scope(kind, data):
    return DefRangeFramePointerRelFullScopeSymbol(kind, *_unpack(_U32, data))


def _defrange_register_rel(kind, data):
    base_register, bits, offset_base_pointer = _unpack(_DEFRANGE_REGREL, data)
    address_range, gaps = _range_and_gaps(data, _DEFRANGE_REGREL.size)
    return DefRangeRegisterRelSymbol(
        kind, base_register, bool(bits & 1), bits >> 4, offset_base_pointer, address_range, gaps
    )


def _heapallocsite(kind, data):
    return HeapAllocSiteSymbol(kind, *_unpack(_HEAPALLOCSITE, data))


def _function_list(kind, data):
    (count,) = _unpack(_U32, data)
    functions = _unpack(struct.Struct(f"<{count}I"), data, _U32.size)
    start = _U32.size * (1 + count)
    present = min(count, (len(data) - start) // 4)
    # invocation counts missing from the record are zero
    invocations = struct.unpack_from(f"<{present}I", data, start) + (0,) * (count - present)
    return FunctionListSymbol(kind, functions, invocations)


def _udt(kind, data):
    (type_index,) = _unpack(_UDT, data)
    return UdtSymbol(kind, type_index, _cstring(data, _UDT.size))


def _regrel32_indir(kind, data):
    unknown1, type_index, unknown2, register = _unpack(_REGREL32_INDIR, data)
    return RegisterRelativeIndirSymbol(
        kind, unknown1, type_index, unknown2, _enum_or_int(Register, register),
        _cstring(data, _REGREL32_INDIR.size),
    )


_K = SymbolRecordKind

_DECODERS: dict[int, Callable[[SymbolRecordKind, bytes], object]] = {
    _K.S_FRAMEPROC: _frameproc,
    _K.S_PUB32: _pub32,
    _K.S_GDATA32: _data32,
    _K.S_GTHREAD32: _data32,
    _K.S_LDATA32: _data32,
    _K.S_LTHREAD32: _data32,
    _K.S_OBJNAME: _objname,
    _K.S_TRAMPOLINE: _trampoline,
    _K.S_SECTION: _section,
    _K.S_COFFGROUP: _coffgroup,
    _K.S_CALLSITEINFO: _callsiteinfo,
    _K.S_FRAMECOOKIE: _framecookie,
    _K.S_THUNK32: _thunk32,
    _K.S_LPROC32: _proc32,
    _K.S_GPROC32: _proc32,
    _K.S_LPROC32_ID: _proc32,
    _K.S_GPROC32_ID: _proc32,
    _K.S_LPROC32_DPC: _proc32,
    _K.S_LPROC32_DPC_ID: _proc32,
    _K.S_REGREL32: _regrel32,
    _K.S_REGREL32_ENCTMP: _regrel32,
    _K.S_BLOCK32: _block32,
    _K.S_LABEL32: _label32,
    _K.S_CONSTANT: _constant,
    _K.S_BUILDINFO: _buildinfo,
    _K.S_INLINESITE: _inlinesite,
    _K.S_FILESTATIC: _filestatic,
    _K.S_COMPILE3: _compile3,
    _K.S_ENVBLOCK: _envblock,
    _K.S_LOCAL: _local,
    _K.S_DEFRANGE_REGISTER: _defrange_register,
    _K.S_DEFRANGE_FRAMEPOINTER_REL: _defrange_framepointer_rel,
    _K.S_DEFRANGE_SUBFIELD_REGISTER: _defrange_subfield_register,
    _K.S_DEFRANGE_FRAMEPOINTER_REL_FULL_SCOPE: _defrange_framepointer_rel_full_scope,
    _K.S_DEFRANGE_REGISTER_REL: _defrange_register_rel,
    _K.S_HEAPALLOCSITE: _heapallocsite,
    _K.S_CALLERS: _function_list,
    _K.S_CALLEES: _function_list,
    _K.S_INLINEES: _function_list,
    _K.S_UDT: _udt,
    _K.S_UDT_ST: _udt,
    _K.S_REGREL32_INDIR: _regrel32_indir,
}


def decode_symbol(record: SymbolRecord):
    """Decode the payload of a symbol record.

    Returns ``None`` for kinds that carry no payload layout known here.
    Raises :class:`PDBError` if the payload is too short for its kind.
    """
    decoder = _DECODERS.get(record.kind)
    if decoder is None:
        return None
    return decoder(record.kind, record.data)