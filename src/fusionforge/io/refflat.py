"""UCSC refFlat gene model files.

refFlat is a tab-delimited format with one transcript per line:

    geneName name chrom strand txStart txEnd cdsStart cdsEnd
    exonCount exonStarts exonEnds

Coordinates are 0-based and half-open, exon lists are comma-separated
(trailing commas allowed). Extra columns are ignored.

Example:
    >>> from fusionforge.io.refflat import iter_refflat
    >>> for tx in iter_refflat("refFlat.txt"):
    ...     print(tx.gene_id, tx.exon_count)
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Iterator, TextIO

from fusionforge.core.models import Transcript
from fusionforge.errors import GeneModelError, ResourceError

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

COL_GENE_NAME = 0
COL_NAME = 1
COL_CHROM = 2
COL_STRAND = 3
COL_TX_START = 4
COL_TX_END = 5
COL_CDS_START = 6
COL_CDS_END = 7
COL_EXON_COUNT = 8
COL_EXON_STARTS = 9
COL_EXON_ENDS = 10

N_COLUMNS = 11


# =============================================================================
# Parsing
# =============================================================================


def is_haplotype_chrom(chrom: str) -> bool:
    """Whether a chromosome name is a haplotype or unplaced contig."""
    return "_" in chrom


def _parse_positions(field: str) -> list[int]:
    return [int(value) for value in field.split(",") if value.strip()]


def parse_refflat_line(line: str) -> Transcript | None:
    """Parse one refFlat line.

    Args:
        line: Raw line.

    Returns:
        Transcript, or None for blank and comment lines.

    Raises:
        GeneModelError: If the line is malformed.
    """
    line = line.rstrip("\r\n")
    if not line.strip() or line.startswith("#"):
        return None

    parts = line.split("\t")
    if len(parts) < N_COLUMNS:
        raise GeneModelError(
            f"Malformed refFlat line (expected {N_COLUMNS} columns, got {len(parts)}): "
            f"{line[:50]}"
        )

    try:
        exon_starts = _parse_positions(parts[COL_EXON_STARTS])
        exon_ends = _parse_positions(parts[COL_EXON_ENDS])
        exon_count = int(parts[COL_EXON_COUNT])
        transcript = Transcript(
            transcript_id=parts[COL_NAME],
            gene_id=parts[COL_GENE_NAME],
            chrom=parts[COL_CHROM],
            strand=parts[COL_STRAND],
            tx_start=parts[COL_TX_START],
            tx_end=parts[COL_TX_END],
            cds_start=parts[COL_CDS_START],
            cds_end=parts[COL_CDS_END],
            exons=list(zip(exon_starts, exon_ends)),
        )
    except ValueError as e:
        raise GeneModelError(f"Invalid refFlat line ({e}): {line[:50]}") from e

    if len(exon_starts) != len(exon_ends):
        raise GeneModelError(
            f"Transcript {parts[COL_NAME]} has {len(exon_starts)} exon starts "
            f"but {len(exon_ends)} exon ends"
        )
    if exon_count != len(exon_starts):
        raise GeneModelError(
            f"Transcript {parts[COL_NAME]} declares {exon_count} exons, "
            f"found {len(exon_starts)}"
        )
    if exon_count == 0:
        raise GeneModelError(f"Transcript {parts[COL_NAME]} has no exons")
    for start, end in transcript.exons:
        if start >= end:
            raise GeneModelError(
                f"Transcript {parts[COL_NAME]} has an empty exon {start}-{end}"
            )

    return transcript


def read_refflat_lines(
    lines: Iterable[str],
    skip_haplotype_chroms: bool = False,
) -> Iterator[Transcript]:
    """Parse refFlat records from an iterable of lines.

    Args:
        lines: Lines of a refFlat file.
        skip_haplotype_chroms: Drop chromosomes whose names contain "_".

    Yields:
        Transcripts in file order.

    Raises:
        GeneModelError: On the first malformed line, with its line number.
    """
    for line_number, line in enumerate(lines, start=1):
        try:
            transcript = parse_refflat_line(line)
        except GeneModelError as e:
            raise GeneModelError(f"Line {line_number}: {e}") from e
        if transcript is None:
            continue
        if skip_haplotype_chroms and is_haplotype_chrom(transcript.chrom):
            continue
        yield transcript


def iter_refflat(
    path: Path | str,
    skip_haplotype_chroms: bool = False,
) -> Iterator[Transcript]:
    """Stream transcripts from a refFlat file.

    Args:
        path: refFlat file path.
        skip_haplotype_chroms: Drop chromosomes whose names contain "_".

    Yields:
        Transcripts in file order.

    Raises:
        ResourceError: If the file does not exist.
        GeneModelError: If a line is malformed.
    """
    path = Path(path)
    if not path.exists():
        raise ResourceError(f"Gene model file not found: {path}")

    n_transcripts = 0
    with open(path) as f:
        for transcript in read_refflat_lines(f, skip_haplotype_chroms):
            n_transcripts += 1
            yield transcript
    logger.debug(f"Read {n_transcripts} transcripts from {path.name}")


def read_refflat(path: Path | str, skip_haplotype_chroms: bool = False) -> list[Transcript]:
    """Read all transcripts from a refFlat file."""
    return list(iter_refflat(path, skip_haplotype_chroms))


# =============================================================================
# Writing
# =============================================================================


def format_refflat_line(transcript: Transcript) -> str:
    """Format a transcript as a refFlat line (without newline)."""
    starts = ",".join(str(start) for start, _ in transcript.exons)
    ends = ",".join(str(end) for _, end in transcript.exons)
    fields = [
        transcript.gene_id,
        transcript.transcript_id,
        transcript.chrom,
        str(transcript.strand),
        str(transcript.tx_start),
        str(transcript.tx_end),
        str(transcript.cds_start),
        str(transcript.cds_end),
        str(transcript.exon_count),
        f"{starts},",
        f"{ends},",
    ]
    return "\t".join(fields)


def write_refflat(transcripts: Iterable[Transcript], handle: TextIO) -> int:
    """Write transcripts in refFlat format.

    Args:
        transcripts: Transcripts to write.
        handle: Open text handle.

    Returns:
        Number of transcripts written.
    """
    n_written = 0
    for transcript in transcripts:
        handle.write(format_refflat_line(transcript) + "\n")
        n_written += 1
    return n_written
