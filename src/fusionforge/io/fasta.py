"""Reference genome access.

Indexed FASTA access through pyfaidx. Sequences are always returned on
the forward strand; callers reverse-complement reverse-strand exons
themselves.

Example:
    >>> from fusionforge.io.fasta import GenomeAccessor
    >>> genome = GenomeAccessor("hg19.fa")
    >>> genome.fetch("chr1", 1001, 1010)  # 1-based, inclusive
    'ACGTACGTAC'
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pyfaidx

from fusionforge.errors import InputDataError, ResourceError

logger = logging.getLogger(__name__)


class GenomeAccessor:
    """Indexed FASTA access using pyfaidx.

    Attributes:
        path: Path to the FASTA file.

    Example:
        >>> with GenomeAccessor("genome.fa") as genome:
        ...     seq = genome.fetch("chr1", 1, 100)
    """

    def __init__(self, fasta_path: Path | str) -> None:
        """Open the FASTA file, building the .fai index if needed.

        Args:
            fasta_path: Path to FASTA file.

        Raises:
            ResourceError: If the file is missing or cannot be indexed.
        """
        self.path = Path(fasta_path)
        if not self.path.exists():
            raise ResourceError(f"FASTA file not found: {self.path}")

        try:
            self._fasta: pyfaidx.Fasta | None = pyfaidx.Fasta(
                str(self.path),
                sequence_always_upper=False,
                read_ahead=10000,
                rebuild=False,
            )
        except (OSError, ValueError, pyfaidx.FastaIndexingError) as e:
            raise ResourceError(f"Cannot open FASTA file {self.path}: {e}") from e

        self._lengths = {seqid: len(self._fasta[seqid]) for seqid in self._fasta.keys()}
        logger.info(
            f"Opened FASTA: {self.path.name}, {len(self._lengths)} sequences, "
            f"{sum(self._lengths.values()):,} bp total"
        )

    def __enter__(self) -> GenomeAccessor:
        """Context manager entry."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def close(self) -> None:
        """Close the FASTA file."""
        if self._fasta is not None:
            self._fasta.close()
            self._fasta = None

    def fetch(self, chrom: str, start: int, end: int) -> str:
        """Fetch forward-strand sequence.

        Args:
            chrom: Chromosome name.
            start: Start position (1-based, inclusive).
            end: End position (1-based, inclusive).

        Returns:
            Sequence string of length end - start + 1.

        Raises:
            InputDataError: If the chromosome is unknown or the region
                lies outside it.
        """
        if self._fasta is None:
            raise RuntimeError("FASTA file not opened")
        if chrom not in self._lengths:
            raise InputDataError(f"Chromosome {chrom} not found in {self.path.name}")

        length = self._lengths[chrom]
        if start < 1 or end > length or start > end:
            raise InputDataError(
                f"Region {chrom}:{start}-{end} outside sequence of length {length}"
            )

        return str(self._fasta[chrom][start - 1 : end])
