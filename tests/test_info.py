import struct

import pytest

from rawpdb.info import InfoStream
from rawpdb.rawfile import RawFile
from rawpdb.types import FeatureCode, PdbVersion, PDBError, SuperBlock


def build_msf(streams, block_size=512):
    blocks = [b""]
    stream_blocks = []
    for data in streams:
        indices = []
        for start in range(0, len(data), block_size):
            indices.append(len(blocks))
            blocks.append(data[start:start + block_size])
        stream_blocks.append(indices)
    directory = struct.pack("<I", len(streams))
    directory += b"".join(struct.pack("<I", len(data)) for data in streams)
    directory += b"".join(struct.pack(f"<{len(i)}I", *i) for i in stream_blocks)
    directory_indices = []
    for start in range(0, len(directory), block_size):
        directory_indices.append(len(blocks))
        blocks.append(directory[start:start + block_size])
    index_block = len(blocks)
    blocks.append(struct.pack(f"<{len(directory_indices)}I", *directory_indices))
    blocks[0] = (
        SuperBlock.MAGIC
        + b"\0\0"
        + struct.pack("<IIIII", block_size, 1, len(blocks), len(directory), 0)
        + struct.pack("<I", index_block)
    )
    return b"".join(block.ljust(block_size, b"\0") for block in blocks)


def info_stream_bytes(named, features):
    header = struct.pack("<III", int(PdbVersion.VC70), 0x12345678, 3) + bytes(range(16))
    table = b""
    entries = []
    for name, index in named:
        entries.append((len(table), index))
        table += name.encode() + b"\0"
    body = struct.pack("<I", len(table)) + table
    body += struct.pack("<II", len(entries), 4)
    body += struct.pack("<II", 1, 0b11)  # present bit vector
    body += struct.pack("<I", 0)  # deleted bit vector
    body += b"".join(struct.pack("<II", offset, index) for offset, index in entries)
    body += b"".join(struct.pack("<I", code) for code in features)
    return header + body


def names_stream_bytes():
    return struct.pack("<III", 0xEFFEEFFE, 1, 7) + b"\0a.cpp\0"


def open_file(named, features):
    streams = [b"", info_stream_bytes(named, features), b"", b"", b"", b"", b"", names_stream_bytes()]
    return RawFile(build_msf(streams))


def test_header_fields():
    file = open_file([("/names", 7)], [])
    info = InfoStream(file)
    assert info.header.version == PdbVersion.VC70
    assert info.header.signature == 0x12345678
    assert info.header.guid.data4 == bytes(range(8, 16))


def test_named_streams_and_names_stream():
    file = open_file([("/LinkInfo", 5), ("/names", 7)], [])
    info = InfoStream(file)
    assert info.named_streams == {"/LinkInfo": 5, "/names": 7}
    assert info.has_names_stream() is True
    assert info.names_stream_index == 7
    assert info.create_names_stream(file).filename(1) == "a.cpp"


def test_missing_names_stream():
    file = open_file([("/LinkInfo", 5)], [])
    info = InfoStream(file)
    assert info.has_names_stream() is False
    with pytest.raises(PDBError):
        info.create_names_stream(file)


def test_fastlink_feature_code():
    file = open_file([], [int(FeatureCode.VC140), int(FeatureCode.MINIMAL_DEBUG_INFO)])
    info = InfoStream(file)
    assert info.feature_codes == (FeatureCode.VC140, FeatureCode.MINIMAL_DEBUG_INFO)
    assert info.uses_debug_fast_link is True


def test_no_fastlink():
    file = open_file([], [int(FeatureCode.VC140)])
    assert InfoStream(file).uses_debug_fast_link is False


def test_unknown_feature_code_kept_as_int():
    file = open_file([], [42])
    assert InfoStream(file).feature_codes == (42,)


def test_truncated_stream_raises():
    data = info_stream_bytes([("/names", 7)], [])[:40]
    file = RawFile(build_msf([b"", data]))
    with pytest.raises(PDBError):
        InfoStream(file)