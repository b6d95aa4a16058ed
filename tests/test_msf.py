import pytest

from rawpdb.msf import DirectMSFStream
from rawpdb.types import ErrorCode, PDBError

BLOCK_SIZE = 8
CONTENT = bytes(range(20))
PLACEMENT = [3, 1, 4]
TOTAL_BLOCKS = 6


def _scatter(content, block_size, placement, total_blocks):
    data = bytearray(b"\xee" * block_size * total_blocks)
    for position, block in enumerate(placement):
        chunk = content[position * block_size:(position + 1) * block_size]
        data[block * block_size:block * block_size + len(chunk)] = chunk
    return bytes(data)


@pytest.fixture
def stream():
    data = _scatter(CONTENT, BLOCK_SIZE, PLACEMENT, TOTAL_BLOCKS)
    return DirectMSFStream(data, BLOCK_SIZE, PLACEMENT, len(CONTENT))


def test_properties(stream):
    assert stream.size == len(CONTENT)
    assert len(stream) == len(CONTENT)
    assert stream.block_size == BLOCK_SIZE


def test_read_all(stream):
    assert stream.read_all() == CONTENT


def test_every_range_matches(stream):
    for offset in range(len(CONTENT) + 1):
        for size in range(len(CONTENT) - offset + 1):
            assert stream.read(size, offset) == CONTENT[offset:offset + size]


def test_read_past_end_raises(stream):
    with pytest.raises(PDBError) as info:
        stream.read(4, len(CONTENT) - 2)
    assert info.value.code is ErrorCode.INVALID_STREAM


def test_negative_arguments_raise(stream):
    with pytest.raises(ValueError):
        stream.read(-1, 0)
    with pytest.raises(ValueError):
        stream.read(1, -1)


def test_block_size_must_be_power_of_two():
    with pytest.raises(ValueError):
        DirectMSFStream(b"\0" * 48, 12, [0, 1], 20)


def test_too_few_block_indices_raise():
    with pytest.raises(PDBError) as info:
        DirectMSFStream(b"\0" * 64, BLOCK_SIZE, [0, 1], 20)
    assert info.value.code is ErrorCode.INVALID_STREAM


def test_block_outside_file_raises():
    stream = DirectMSFStream(b"\0" * 16, BLOCK_SIZE, [0, 5], 16)
    with pytest.raises(PDBError):
        stream.read(16, 0)


def test_block_position_invariant(stream):
    for offset in range(len(CONTENT)):
        index, within = stream.block_index_for_offset(offset)
        assert 0 <= within < BLOCK_SIZE
        assert index * BLOCK_SIZE + within == offset


def test_data_offset_points_at_stream_byte(stream):
    data = _scatter(CONTENT, BLOCK_SIZE, PLACEMENT, TOTAL_BLOCKS)
    for offset in range(len(CONTENT)):
        file_offset = stream.data_offset_for(*stream.block_index_for_offset(offset))
        assert data[file_offset] == CONTENT[offset]


def test_empty_stream_reads_nothing():
    stream = DirectMSFStream(b"", BLOCK_SIZE, [], 0)
    assert stream.read_all() == b""