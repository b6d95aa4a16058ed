import struct

import pytest

from rawpdb.dbi_types import SymbolRecordKind as K
from rawpdb.module_symbols import ModuleSymbolStream
from rawpdb.rawfile import RawFile
from rawpdb.symbols import decode_symbol
from rawpdb.types import PDBError, SuperBlock

BLOCK = 512


def build_pdb(streams, block_size=BLOCK):
    blocks = [b""]
    stream_blocks = []
    for stream in streams:
        indices = []
        for start in range(0, len(stream), block_size):
            indices.append(len(blocks))
            blocks.append(stream[start:start + block_size])
        stream_blocks.append(indices)
    directory = struct.pack("<I", len(streams))
    directory += b"".join(struct.pack("<I", len(s)) for s in streams)
    directory += b"".join(struct.pack(f"<{len(b)}I", *b) for b in stream_blocks)
    dir_indices = []
    for start in range(0, len(directory), block_size):
        dir_indices.append(len(blocks))
        blocks.append(directory[start:start + block_size])
    index_block = len(blocks)
    blocks.append(struct.pack(f"<{len(dir_indices)}I", *dir_indices))
    blocks[0] = struct.pack(
        "<30s2xIIIII", SuperBlock.MAGIC, block_size, 1, len(blocks), len(directory), 0
    ) + struct.pack("<I", index_block)
    return b"".join(b.ljust(block_size, b"\0") for b in blocks)


def align4(raw):
    return raw + b"\0" * (-len(raw) % 4)


def rec(kind, payload):
    return struct.pack("<HH", len(payload) + 2, kind) + payload


def build_module():
    obj = align4(rec(K.S_OBJNAME, struct.pack("<I", 0) + b"a.obj\0"))

    def proc(end):
        return align4(rec(K.S_GPROC32, struct.pack("<IIIIIIIIHB", 0, end, 0, 0x10, 0, 0x10, 0x1000, 0x20, 1, 0) + b"func\0"))

    def block(parent, end):
        return align4(rec(K.S_BLOCK32, struct.pack("<IIIIH", parent, end, 4, 0x24, 1) + b"\0"))

    end = rec(K.S_END, b"")
    layout = {"obj": 4}
    layout["proc"] = layout["obj"] + len(obj)
    layout["block"] = layout["proc"] + len(proc(0))
    layout["block_end"] = layout["block"] + len(block(0, 0))
    layout["proc_end"] = layout["block_end"] + len(end)
    data = (
        struct.pack("<I", 4)
        + obj
        + proc(layout["proc_end"])
        + block(layout["proc"], layout["block_end"])
        + end
        + end
    )
    return data, layout


@pytest.fixture
def module():
    data, layout = build_module()
    file = RawFile(build_pdb([b"", b"", b"", data]))
    return ModuleSymbolStream(file, 3, len(data)), layout


def test_symbols_in_order(module):
    stream, _ = module
    assert [r.kind for r in stream.symbols()] == [K.S_OBJNAME, K.S_GPROC32, K.S_BLOCK32, K.S_END, K.S_END]


def test_signature(module):
    stream, _ = module
    assert stream.signature == 4


def test_record_offsets_follow_alignment(module):
    stream, layout = module
    offsets = [r.offset for r in stream.symbols()]
    assert offsets == [layout["obj"], layout["proc"], layout["block"], layout["block_end"], layout["proc_end"]]
    assert all(offset % 4 == 0 for offset in offsets)


def test_find_record(module):
    stream, layout = module
    found = stream.find_record(K.S_BLOCK32)
    assert found.offset == layout["block"]
    assert decode_symbol(stream.find_record(K.S_OBJNAME)).name == "a.obj"
    assert stream.find_record(K.S_UDT) is None


def test_end_and_parent_records(module):
    stream, layout = module
    proc = decode_symbol(stream.find_record(K.S_GPROC32))
    end = stream.get_end_record(proc)
    assert end.kind == K.S_END
    assert end.offset == layout["proc_end"]
    block = decode_symbol(stream.find_record(K.S_BLOCK32))
    assert stream.get_parent_record(block).kind == K.S_GPROC32
    assert stream.get_end_record(block).offset == layout["block_end"]


def test_size_limits_symbols():
    data, layout = build_module()
    file = RawFile(build_pdb([b"", b"", b"", data]))
    stream = ModuleSymbolStream(file, 3, layout["proc"])
    assert [r.kind for r in stream] == [K.S_OBJNAME]


def test_size_beyond_stream_raises():
    data, _ = build_module()
    file = RawFile(build_pdb([b"", b"", b"", data]))
    with pytest.raises(PDBError):
        ModuleSymbolStream(file, 3, len(data) + 4)