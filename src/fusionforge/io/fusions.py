"""Fusion output formats.

Writes simulated fusions as tab-delimited text (one row per fusion) or
as FASTA records whose headers describe every side of the fusion.
Exon coordinates are printed 1-based and inclusive.

Example:
    >>> from fusionforge.io.fusions import FusionWriter
    >>> with FusionWriter("fusions.txt", fmt="txt") as writer:
    ...     writer.write_fusions(result.fusions)
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Literal, TextIO

from fusionforge.core.models import FusionGene

logger = logging.getLogger(__name__)

MAX_SIDES = 3
SIDE_COLUMNS = ("transcript", "gene", "exons", "strand", "break")

OutputFormat = Literal["txt", "fasta"]


def text_header() -> list[str]:
    """Column names of the text format."""
    header = ["fusionGene", "fusionType", "fusionOptions"]
    for side in range(1, MAX_SIDES + 1):
        header.extend(f"{column}{side}" for column in SIDE_COLUMNS)
    return header


def format_exons(fusion: FusionGene, side: int) -> str:
    """Exon indices of one side, comma-separated."""
    return ",".join(str(i) for i in fusion.breaks[side])


def format_break(fusion: FusionGene, side: int) -> str:
    """Genomic extent of one side as chrom:start-end,start-end (1-based)."""
    chrom = fusion.transcripts[side].chrom
    blocks = ",".join(f"{start + 1}-{end}" for start, end in fusion.side_exons(side))
    return f"{chrom}:{blocks}"


def format_options(fusion: FusionGene) -> str:
    return ",".join(str(option) for option in fusion.options)


def format_text_record(fusion: FusionGene) -> str:
    """Format a fusion as one tab-delimited row."""
    fields = [fusion.name, str(fusion.fusion_type), format_options(fusion)]
    for side in range(MAX_SIDES):
        if side < fusion.n_sides:
            transcript = fusion.transcripts[side]
            fields.extend(
                [
                    transcript.transcript_id,
                    transcript.gene_id,
                    format_exons(fusion, side),
                    str(transcript.strand),
                    format_break(fusion, side),
                ]
            )
        else:
            fields.extend([""] * len(SIDE_COLUMNS))
    return "\t".join(fields)


def format_fasta_header(fusion: FusionGene) -> str:
    """FASTA header line (with leading '>') describing a fusion."""
    parts = [
        f">ref|{fusion.transcript_name}",
        f"fusionGene={fusion.name}",
        f"fusionType={fusion.fusion_type}",
        f"fusionOptions={format_options(fusion)}",
    ]
    for side in range(fusion.n_sides):
        n = side + 1
        parts.append(f"exons{n}={format_exons(fusion, side)}")
        parts.append(f"break{n}={format_break(fusion, side)}")
        parts.append(f"strand{n}={fusion.transcripts[side].strand}")
    return " ".join(parts)


def format_fasta_record(fusion: FusionGene) -> str:
    """Format a fusion as a FASTA record (header and one sequence line)."""
    return f"{format_fasta_header(fusion)}\n{fusion.sequence}"


class FusionWriter:
    """Write fusions to a file or stdout.

    Attributes:
        path: Output path, or None for stdout.
        fmt: "txt" or "fasta".

    Example:
        >>> with FusionWriter(None, fmt="fasta") as writer:
        ...     writer.write_fusions(fusions)
    """

    def __init__(self, path: Path | str | None, fmt: OutputFormat = "txt") -> None:
        if fmt not in ("txt", "fasta"):
            raise ValueError(f"Unknown output format '{fmt}'")
        self.path = Path(path) if path is not None else None
        self.fmt = fmt
        self._handle: TextIO | None = None
        self._header_written = False

    def __enter__(self) -> FusionWriter:
        """Context manager entry."""
        self._open()
        return self

    def __exit__(self, *args: Any) -> None:
        """Context manager exit."""
        self.close()

    def _open(self) -> None:
        if self._handle is None:
            self._handle = open(self.path, "w") if self.path is not None else sys.stdout

    def close(self) -> None:
        """Close the output file (stdout is left open)."""
        if self._handle is not None and self.path is not None:
            self._handle.close()
        self._handle = None

    def write(self, fusion: FusionGene) -> None:
        """Write one fusion."""
        self._open()
        if self.fmt == "txt":
            if not self._header_written:
                self._handle.write("\t".join(text_header()) + "\n")
                self._header_written = True
            self._handle.write(format_text_record(fusion) + "\n")
        else:
            self._handle.write(format_fasta_record(fusion) + "\n")

    def write_fusions(self, fusions: Iterable[FusionGene]) -> int:
        """Write fusions and return how many were written."""
        n_written = 0
        for fusion in fusions:
            self.write(fusion)
            n_written += 1
        if self.path is not None:
            logger.info(f"Wrote {n_written} fusions to {self.path}")
        return n_written
