import struct

import pytest

from rawpdb.rawfile import RawFile
from rawpdb.types import NIL_PAGE_SIZE, ErrorCode, PDBError, SuperBlock


def _split(data, block_size):
    return [data[i:i + block_size].ljust(block_size, b"\0") for i in range(0, len(data), block_size)]


def build_pdb(streams, block_size=512):
    """Build an MSF image; stream blocks are stored in reverse order to scatter them."""
    blocks = [bytes(block_size)]
    sizes = []
    stream_indices = []
    for content in streams:
        if content is None:
            sizes.append(NIL_PAGE_SIZE)
            stream_indices.append([])
            continue
        chunks = _split(content, block_size)
        first = len(blocks)
        blocks.extend(reversed(chunks))
        stream_indices.append(list(range(first + len(chunks) - 1, first - 1, -1)))
        sizes.append(len(content))

    directory = struct.pack("<I", len(streams)) + struct.pack(f"<{len(sizes)}I", *sizes)
    directory += b"".join(struct.pack(f"<{len(ix)}I", *ix) for ix in stream_indices)
    dir_chunks = _split(directory, block_size)
    dir_first = len(blocks)
    blocks.extend(dir_chunks)
    dir_indices = list(range(dir_first, dir_first + len(dir_chunks)))

    index_data = struct.pack(f"<{len(dir_indices)}I", *dir_indices)
    index_chunks = _split(index_data, block_size)
    index_first = len(blocks)
    blocks.extend(index_chunks)
    index_indices = list(range(index_first, index_first + len(index_chunks)))

    super_block = SuperBlock.MAGIC + b"\0\0"
    super_block += struct.pack("<IIIII", block_size, 1, len(blocks) + 0, len(directory), 0)
    super_block += struct.pack(f"<{len(index_indices)}I", *index_indices)
    blocks[0] = super_block.ljust(block_size, b"\0")
    return b"".join(blocks)


STREAMS = [b"old directory", b"info stream", bytes(range(256)) * 5, None, b""]


@pytest.fixture
def raw():
    return RawFile(build_pdb(STREAMS))


def test_stream_count(raw):
    assert raw.stream_count == len(STREAMS)


def test_stream_sizes(raw):
    assert [raw.stream_size(i) for i in range(raw.stream_count)] == [
        len(s) if s is not None else 0 for s in STREAMS
    ]


def test_scattered_stream_round_trip(raw):
    assert raw.read_stream(2) == STREAMS[2]


def test_small_streams_round_trip(raw):
    assert raw.read_stream(0) == STREAMS[0]
    assert raw.read_stream(1) == STREAMS[1]


def test_nil_stream_is_empty(raw):
    assert raw.read_stream(3) == b""


def test_create_stream_with_smaller_size(raw):
    stream = raw.create_stream(2, 600)
    assert stream.size == 600
    assert stream.read_all() == STREAMS[2][:600]


def test_create_stream_too_large(raw):
    with pytest.raises(PDBError) as info:
        raw.create_stream(1, len(STREAMS[1]) + 1)
    assert info.value.code == ErrorCode.INVALID_STREAM


def test_stream_index_out_of_range(raw):
    with pytest.raises(PDBError) as info:
        raw.stream_size(len(STREAMS))
    assert info.value.code == ErrorCode.INVALID_STREAM_INDEX


def test_super_block_fields(raw):
    assert raw.block_size == 512
    assert raw.super_block.magic_is_valid


def test_directory_spanning_blocks():
    streams = [bytes([n]) * (n * 7 + 1) for n in range(20)]
    raw = RawFile(build_pdb(streams, block_size=64))
    assert raw.stream_count == 20
    assert [raw.read_stream(i) for i in range(20)] == streams


def test_from_path(tmp_path):
    path = tmp_path / "sample.pdb"
    path.write_bytes(build_pdb(STREAMS))
    raw = RawFile.from_path(path)
    assert raw.read_stream(2) == STREAMS[2]


def test_truncated_file():
    with pytest.raises(PDBError) as info:
        RawFile(SuperBlock.MAGIC)
    assert info.value.code == ErrorCode.INVALID_SUPER_BLOCK


def test_block_size_not_power_of_two():
    data = bytearray(build_pdb(STREAMS))
    struct.pack_into("<I", data, 32, 100)
    with pytest.raises(PDBError) as info:
        RawFile(bytes(data))
    assert info.value.code == ErrorCode.INVALID_SUPER_BLOCK