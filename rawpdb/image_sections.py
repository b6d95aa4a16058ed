"""The stream holding the section headers of the original executable."""

from __future__ import annotations

from collections.abc import Iterator

from rawpdb.rawfile import RawFile
from rawpdb.types import ImageSectionHeader


class ImageSectionStream:
    """Section headers of the image, used to turn section offsets into RVAs."""

    def __init__(self, file: RawFile, stream_index: int) -> None:
        data = file.read_stream(stream_index)
        count = len(data) // ImageSectionHeader.SIZE
        self._headers = tuple(
            ImageSectionHeader.from_bytes(data, start)
            for start in range(0, count * ImageSectionHeader.SIZE, ImageSectionHeader.SIZE)
        )

    @property
    def sections(self) -> tuple[ImageSectionHeader, ...]:
        """All section headers in image order."""
        return self._headers

    def section_offset_to_rva(self, one_based_section_index: int, offset_in_section: int) -> int:
        """Convert a one-based section index and offset into an RVA.

        Returns 0 for section 0 and for sections not present in the image,
        such as those of linker-generated symbols.
        """
        if one_based_section_index == 0 or one_based_section_index > len(self._headers):
            return 0
        header = self._headers[one_based_section_index - 1]
        return (header.virtual_address + offset_in_section) & 0xFFFFFFFF

    def __len__(self) -> int:
        return len(self._headers)

    def __iter__(self) -> Iterator[ImageSectionHeader]:
        return iter(self._headers)

    def __getitem__(self, index: int) -> ImageSectionHeader:
        return self._headers[index]