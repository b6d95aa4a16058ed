"""The section contribution sub-stream of the DBI stream."""

from __future__ import annotations

from collections.abc import Iterator

from rawpdb.dbi_types import SectionContribution
from rawpdb.msf import DirectMSFStream


class SectionContributionStream:
    """All section contributions listed in the DBI stream."""

    def __init__(self, stream: DirectMSFStream, size: int, offset: int) -> None:
        data = stream.read(size, offset)
        count = size // SectionContribution.SIZE
        self._contributions = tuple(
            SectionContribution.from_bytes(data, start)
            for start in range(0, count * SectionContribution.SIZE, SectionContribution.SIZE)
        )

    @property
    def contributions(self) -> tuple[SectionContribution, ...]:
        """The contributions in stream order."""
        return self._contributions

    def __len__(self) -> int:
        return len(self._contributions)

    def __iter__(self) -> Iterator[SectionContribution]:
        return iter(self._contributions)

    def __getitem__(self, index: int) -> SectionContribution:
        return self._contributions[index]