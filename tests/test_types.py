import struct

import pytest

from rawpdb.types import (
    ErrorCode,
    FeatureCode,
    Guid,
    HashRecord,
    HashTableHeader,
    ImageSectionHeader,
    InfoHeader,
    PDBError,
    PdbVersion,
    PublicStreamHeader,
    SuperBlock,
)


def _superblock_bytes(block_size=512, dir_size=100, indices=(7,)):
    head = struct.pack("<30s2xIIIII", SuperBlock.MAGIC, block_size, 1, 20, dir_size, 0)
    return head + struct.pack(f"<{len(indices)}I", *indices)


def test_pdb_error_carries_code():
    err = PDBError(ErrorCode.INVALID_STREAM, "broken")
    assert err.code is ErrorCode.INVALID_STREAM
    assert str(err) == "broken"


def test_pdb_error_default_message_is_code_name():
    assert str(PDBError(ErrorCode.UNKNOWN_VERSION)) == "UNKNOWN_VERSION"


def test_feature_code_matches_wire_tag():
    assert FeatureCode(int.from_bytes(b"MINI", "little")) is FeatureCode.MINIMAL_DEBUG_INFO
    assert FeatureCode(int.from_bytes(b"NOTM", "little")) is FeatureCode.NO_TYPE_MERGE


def test_guid_round_trip_and_str():
    raw = struct.pack("<IHH8s", 0x12345678, 0x9ABC, 0xDEF0, bytes(range(8)))
    guid = Guid.from_bytes(b"\xff" + raw, 1)
    assert (guid.data1, guid.data2, guid.data3, guid.data4) == (
        0x12345678,
        0x9ABC,
        0xDEF0,
        bytes(range(8)),
    )
    assert str(guid) == "12345678-9ABC-DEF0-0001-020304050607"


def test_guid_truncated_raises():
    with pytest.raises(PDBError) as info:
        Guid.from_bytes(b"\0" * 15)
    assert info.value.code is ErrorCode.INVALID_STREAM


def test_image_section_header_round_trip():
    raw = struct.pack("<8sIIIIIIHHI", b".text\0\0\0", 0x100, 0x1000, 0x200, 0x400, 0, 0, 0, 0, 0x60000020)
    header = ImageSectionHeader.from_bytes(raw)
    assert len(raw) == ImageSectionHeader.SIZE
    assert header.section_name == ".text"
    assert header.virtual_address == 0x1000
    assert header.physical_address == header.virtual_size == 0x100
    assert header.characteristics == 0x60000020


def test_superblock_parses_fields():
    block = SuperBlock.from_bytes(_superblock_bytes())
    assert block.magic_is_valid
    assert block.block_size == 512
    assert block.directory_size == 100
    assert block.directory_block_indices == (7,)
    assert block.directory_block_count == 1


def test_superblock_bad_magic_detected():
    data = bytearray(_superblock_bytes())
    data[0:9] = b"NotAnMSF!"
    assert not SuperBlock.from_bytes(bytes(data)).magic_is_valid


def test_superblock_too_short_raises():
    with pytest.raises(PDBError) as info:
        SuperBlock.from_bytes(b"\0" * 10)
    assert info.value.code is ErrorCode.INVALID_SUPER_BLOCK


def test_superblock_missing_indices_raises():
    data = _superblock_bytes()[: SuperBlock.SIZE]
    with pytest.raises(PDBError) as info:
        SuperBlock.from_bytes(data)
    assert info.value.code is ErrorCode.INVALID_SUPER_BLOCK


def test_info_header_known_version():
    raw = struct.pack("<III", 20000404, 0xCAFE, 3) + struct.pack("<IHH8s", 1, 2, 3, b"\0" * 8)
    header = InfoHeader.from_bytes(raw)
    assert header.version is PdbVersion.VC70
    assert header.age == 3
    assert header.guid.data1 == 1


def test_info_header_unknown_version_kept_as_int():
    raw = struct.pack("<III", 42, 0, 0) + b"\0" * 16
    assert InfoHeader.from_bytes(raw).version == 42


def test_public_stream_header_round_trip():
    raw = struct.pack("<IIIIHHIHH", 10, 20, 30, 40, 5, 0, 60, 7, 0)
    header = PublicStreamHeader.from_bytes(raw)
    assert len(raw) == PublicStreamHeader.SIZE
    assert header == PublicStreamHeader(10, 20, 30, 40, 5, 60, 7)


def test_hash_table_header_validity():
    raw = struct.pack("<IIII", HashTableHeader.SIGNATURE, HashTableHeader.VERSION, 16, 4096)
    header = HashTableHeader.from_bytes(raw)
    assert header.is_valid
    assert header.size == 16
    bad = HashTableHeader.from_bytes(struct.pack("<IIII", 0, HashTableHeader.VERSION, 0, 0))
    assert not bad.is_valid


def test_hash_record_at_offset():
    raw = b"\0" * 4 + struct.pack("<II", 9, 1)
    assert HashRecord.from_bytes(raw, 4) == HashRecord(9, 1)