"""BAM access for background read-depth estimation.

Wraps an indexed BAM file opened with pysam. Each read-depth worker
opens its own AlignmentSource; handles are never shared between threads.

Example:
    >>> from fusionforge.io.bam import AlignmentSource
    >>> with AlignmentSource("background.bam") as source:
    ...     total = source.total_mapped_reads()
    ...     n = source.count_overlapping("chr1", 1000, 2000)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import pysam

from fusionforge.errors import ResourceError

if TYPE_CHECKING:
    from fusionforge.core.models import Transcript

logger = logging.getLogger(__name__)


def find_index(bam_path: Path) -> Path | None:
    """Locate the .bai index next to a BAM file."""
    candidates = [
        Path(str(bam_path) + ".bai"),
        bam_path.with_suffix(".bai"),
        Path(str(bam_path) + ".csi"),
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


class AlignmentSource:
    """Read-only handle on an indexed BAM file.

    Attributes:
        path: Path to the BAM file.

    Example:
        >>> source = AlignmentSource("background.bam")
        >>> source.count_transcript(transcript)
        42
        >>> source.close()
    """

    def __init__(self, bam_path: Path | str) -> None:
        """Open the BAM file.

        Args:
            bam_path: Path to an indexed BAM file.

        Raises:
            ResourceError: If the file or its index is missing, or pysam
                cannot open it.
        """
        self.path = Path(bam_path)

        if not self.path.exists():
            raise ResourceError(f"BAM file not found: {self.path}")
        if find_index(self.path) is None:
            raise ResourceError(
                f"BAM index not found. Please run: samtools index {self.path}"
            )

        try:
            self._bam: pysam.AlignmentFile | None = pysam.AlignmentFile(str(self.path), "rb")
        except (OSError, ValueError) as e:
            raise ResourceError(f"Cannot open BAM file {self.path}: {e}") from e
        self._references = set(self._bam.references)
        logger.debug(f"Opened BAM file: {self.path.name}")

    def __enter__(self) -> AlignmentSource:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the BAM file."""
        if self._bam is not None:
            self._bam.close()
            self._bam = None

    @property
    def references(self) -> list[str]:
        """Reference sequence names in the BAM header."""
        if self._bam is None:
            raise RuntimeError("BAM file not open")
        return list(self._bam.references)

    def total_mapped_reads(self) -> int:
        """Total mapped reads from the index metadata.

        Returns:
            Sum of mapped read counts over all reference sequences.
        """
        if self._bam is None:
            raise RuntimeError("BAM file not open")
        return sum(stat.mapped for stat in self._bam.get_index_statistics())

    def count_overlapping(self, chrom: str, start: int, end: int) -> int:
        """Count records overlapping a region.

        A record counts unless both it and its mate are unmapped.
        Chromosomes absent from the BAM header have no reads.

        Args:
            chrom: Chromosome name.
            start: Start position (0-based).
            end: End position (0-based, exclusive).

        Returns:
            Number of qualifying records.
        """
        if self._bam is None:
            raise RuntimeError("BAM file not open")
        if chrom not in self._references:
            return 0

        count = 0
        for read in self._bam.fetch(chrom, start, end):
            if not read.is_unmapped or not read.mate_is_unmapped:
                count += 1
        return count

    def count_transcript(self, transcript: Transcript) -> int:
        """Sum overlapping records over every exon of a transcript."""
        return sum(
            self.count_overlapping(transcript.chrom, start, end)
            for start, end in transcript.exons
        )
