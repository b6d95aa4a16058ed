"""The module info sub-stream of the DBI stream."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from rawpdb.bits import round_up_to_multiple
from rawpdb.dbi_types import ModuleInfo
from rawpdb.module_lines import ModuleLineStream
from rawpdb.module_symbols import ModuleSymbolStream
from rawpdb.msf import DirectMSFStream
from rawpdb.rawfile import RawFile
from rawpdb.types import ErrorCode, PDBError

_LINKER_MODULE_NAME = "* Linker *"
_NO_SYMBOL_STREAM = 0xFFFF


def _cstring(data: bytes, offset: int) -> tuple[str, int]:
    """Return the NUL-terminated string at ``offset`` and the offset just past it."""
    end = data.find(b"\0", offset)
    if end < 0:
        raise PDBError(ErrorCode.INVALID_STREAM, f"unterminated module name at offset {offset}")
    return data[offset:end].decode("utf-8", errors="replace"), end + 1


@dataclass(frozen=True)
class Module:
    """One module (object file or import library) that went into the image."""

    info: ModuleInfo
    name: str
    object_name: str

    def has_symbol_stream(self) -> bool:
        """Whether the module carries a symbol stream (stripped PDBs may not)."""
        return self.info.module_symbol_stream_index != _NO_SYMBOL_STREAM

    def has_line_stream(self) -> bool:
        """Whether the module carries C13 line information."""
        return self.info.c13_size > 0

    def create_symbol_stream(self, file: RawFile) -> ModuleSymbolStream:
        """Open the symbol part of the module's stream."""
        if not self.has_symbol_stream():
            raise ValueError(f"module {self.name!r} has no symbol stream")
        return ModuleSymbolStream(
            file, self.info.module_symbol_stream_index, self.info.symbol_size
        )

    def create_line_stream(self, file: RawFile) -> ModuleLineStream:
        """Open the C13 line information part of the module's stream."""
        if not self.has_line_stream():
            raise ValueError(f"module {self.name!r} has no line stream")
        info = self.info
        return ModuleLineStream(
            file,
            info.module_symbol_stream_index,
            info.symbol_size + info.c11_size + info.c13_size,
            info.symbol_size + info.c11_size,
        )


class ModuleInfoStream:
    """All modules listed in the DBI stream's module info sub-stream."""

    def __init__(self, stream: DirectMSFStream, size: int, offset: int) -> None:
        data = bytes(stream.read(size, offset))
        modules = []
        position = 0
        while position < size:
            info = ModuleInfo.from_bytes(data, position)
            position += ModuleInfo.SIZE
            name, position = _cstring(data, position)
            object_name, position = _cstring(data, position)
            # records are aligned to 4 bytes
            position = round_up_to_multiple(position, 4)
            modules.append(Module(info, name, object_name))
        self._modules = tuple(modules)

    @property
    def modules(self) -> tuple[Module, ...]:
        """The modules in stream order."""
        return self._modules

    def find_linker_module(self) -> Module | None:
        """Return the module named "* Linker *", or ``None``."""
        # the linker module is usually stored last, so search from the end
        return next(
            (module for module in reversed(self._modules) if module.name == _LINKER_MODULE_NAME),
            None,
        )

    def __getitem__(self, index: int) -> Module:
        return self._modules[index]

    def __len__(self) -> int:
        return len(self._modules)

    def __iter__(self) -> Iterator[Module]:
        return iter(self._modules)