# rawpdb

`rawpdb` reads Program Database (PDB) files, the debug information files a
toolchain writes next to an executable. A PDB file is an MSF container: a set of
numbered streams scattered over fixed-size blocks. This package rebuilds those
streams and decodes the debug information they hold. It is pure Python and has no
runtime dependencies.

## Installation

```
pip install rawpdb
```

## Opening a file

```python
from rawpdb.rawfile import RawFile

raw = RawFile.from_path("program.pdb")
print(raw.stream_count)             # number of streams in the file
print(raw.stream_size(1))           # size of the PDB info stream
data = raw.read_stream(1)           # its bytes, coalesced into one object
view = raw.create_stream(3)         # a DirectMSFStream over the DBI stream
```

Malformed data raises `rawpdb.types.PDBError`. Its `code` attribute is an
`ErrorCode`, for instance `INVALID_SUPER_BLOCK` when the super block is too short or
its block size is not a power of two, `INVALID_STREAM_INDEX` for a stream number
outside the directory, and `INVALID_STREAM` for truncated stream data.

## Streams and structures

- `rawpdb.types` holds the container structures: `SuperBlock`, `InfoHeader`,
  `Guid`, `ImageSectionHeader`, `PublicStreamHeader`, `HashTableHeader`,
  `HashRecord`, and the `PdbVersion` and `FeatureCode` enumerations.
- `rawpdb.msf.DirectMSFStream` reads bytes at any offset of a block-scattered
  stream (`read`, `read_all`).
- `rawpdb.info.InfoStream` decodes the PDB info stream: its `header` (version,
  signature, age, GUID), the `named_streams` map, the `feature_codes` and
  `uses_debug_fast_link`. `create_names_stream` opens the `/names` string table as a
  `rawpdb.names.NamesStream`.
- `rawpdb.dbi_types` holds the DBI structures (`DBIStreamHeader`, `DebugHeader`,
  `SectionContribution`, `ModuleInfo`, `SymbolRecord`) and the CodeView
  enumerations (`SymbolRecordKind`, `CPUType`, `DebugSubsectionKind` and others).
- `rawpdb.module_info.ModuleInfoStream` lists every module. `find_linker_module`
  returns the `* Linker *` module.
- `Module.create_symbol_stream` returns a
  `rawpdb.module_symbols.ModuleSymbolStream`; iterate over `symbols()` or use
  `find_record`. `rawpdb.symbols.decode_symbol` turns a `SymbolRecord` into a typed
  symbol such as `ProcedureSymbol`, `PublicSymbol` or `CompileSymbol`, and returns
  `None` for kinds it has no layout for.
- `Module.create_line_stream` returns a `rawpdb.module_lines.ModuleLineStream`,
  which yields `sections()`, and for those sections `lines_blocks`,
  `file_checksums`, `inlinee_source_lines` and `inlinee_source_lines_ex`.
- `rawpdb.symbol_streams.GlobalSymbolStream` and `PublicSymbolStream` read hash
  records; `get_record` finds the symbol record each one points at.
- `rawpdb.section_contributions.SectionContributionStream` and
  `rawpdb.source_files.SourceFileStream` decode the DBI sub-streams of those names.
- `rawpdb.image_sections.ImageSectionStream` turns a one-based section index and an
  offset into an RVA with `section_offset_to_rva`.

## Example: modules and public symbols

```python
from rawpdb.dbi_types import DBIStreamHeader
from rawpdb.module_info import ModuleInfoStream
from rawpdb.rawfile import RawFile
from rawpdb.symbol_streams import PublicSymbolStream
from rawpdb.symbols import decode_symbol
from rawpdb.types import HashRecord, HashTableHeader, PublicStreamHeader

raw = RawFile.from_path("program.pdb")
dbi = DBIStreamHeader.from_bytes(raw.read_stream(3))

modules = ModuleInfoStream(raw.create_stream(3), dbi.module_info_size, DBIStreamHeader.SIZE)
for module in modules:
    print(module.name, module.object_name)

public_data = raw.read_stream(dbi.public_stream_index)
hash_header = HashTableHeader.from_bytes(public_data, PublicStreamHeader.SIZE)
publics = PublicSymbolStream(raw, dbi.public_stream_index, hash_header.size // HashRecord.SIZE)

symbol_records = raw.read_stream(dbi.symbol_record_stream_index)
for hash_record in publics.records:
    symbol = decode_symbol(publics.get_record(symbol_records, hash_record))
    if symbol is not None:
        print(symbol.section, hex(symbol.offset), symbol.name)
```

## What the package does not do

It reads; it never writes or changes a PDB file. It has no command-line tool. It
does not decode the type records of the TPI stream or the id records of the IPI
stream; those streams can still be read as raw bytes with `RawFile.read_stream`.

## Running the tests

```
pip install rawpdb[test]
pytest
```