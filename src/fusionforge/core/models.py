"""Data models for transcripts and fusion genes.

This module defines the value types shared by the selection, breakpoint
and assembly stages:

- Strand: Transcript orientation
- Transcript: Immutable transcript annotation with a read-depth score
- DepthSample: A transcript paired with its sampling score
- FusionType / FusionOption: Fusion topology and per-fusion options
- FusionGene: One simulated fusion event

Coordinates are 0-based and half-open throughout. Exon lists are always
sorted by genomic coordinate; strand only changes the logical 5' to 3'
order used when breakpoints are enumerated.

Example:
    >>> tx = Transcript(
    ...     transcript_id="NM_000001",
    ...     gene_id="GENE1",
    ...     chrom="chr1",
    ...     strand="+",
    ...     tx_start=100,
    ...     tx_end=400,
    ...     cds_start=120,
    ...     cds_end=380,
    ...     exons=[(100, 200), (300, 400)],
    ... )
    >>> tx.exon_bases
    200
    >>> tx.coding_exons
    ((120, 200), (300, 380))
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import NamedTuple

import attrs

Interval = tuple[int, int]


# =============================================================================
# Enums
# =============================================================================


class Strand(Enum):
    """Transcript strand."""

    FORWARD = "+"
    REVERSE = "-"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str | Strand) -> Strand:
        """Parse a strand symbol.

        Args:
            value: "+" or "-" (or an existing Strand).

        Returns:
            The matching Strand.

        Raises:
            ValueError: If the symbol is not a valid strand.
        """
        if isinstance(value, Strand):
            return value
        try:
            return cls(value.strip())
        except ValueError:
            raise ValueError(f"Invalid strand '{value}'") from None


class FusionType(Enum):
    """Fusion topologies."""

    HYBRID = "hybrid"
    SELF_FUSION = "self_fusion"
    TRI_FUSION = "tri_fusion"
    INTRA_CHROMOSOME = "intra_chromosome"
    READ_THROUGH = "read_through"

    def __str__(self) -> str:
        return self.value

    @property
    def genes_per_fusion(self) -> int:
        """Number of distinct transcript slots for this topology."""
        if self is FusionType.SELF_FUSION:
            return 1
        if self is FusionType.TRI_FUSION:
            return 3
        return 2


class FusionOption(Enum):
    """Options applied when a fusion was assembled."""

    AUTO_CORRECT_ORIENTATION = "auto_correct_orientation"
    CDS_ONLY = "cds_only"
    SYMMETRICAL_EXONS = "symmetrical_exons"
    OUT_OF_FRAME = "out_of_frame"
    FOREIGN_INSERTION = "foreign_insertion"
    KEEP_EXON_BOUNDARY = "keep_exon_boundary"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# Helpers
# =============================================================================


def _to_intervals(values: Iterable[Iterable[int]]) -> tuple[Interval, ...]:
    """Normalize exon coordinates to a coordinate-sorted tuple of pairs."""
    intervals = []
    for value in values:
        start, end = value
        intervals.append((int(start), int(end)))
    return tuple(sorted(intervals))


def compute_coding_exons(
    exons: Iterable[Interval],
    cds_start: int,
    cds_end: int,
) -> tuple[Interval, ...]:
    """Intersect exons with the CDS.

    Handles the four overlap cases (exon inside the CDS, exon clipped on
    the left, exon clipped on the right, CDS inside a single exon) as one
    half-open intersection. Empty intersections are dropped, so a
    non-coding transcript (cds_start == cds_end) has no coding exons.

    Args:
        exons: Exon intervals.
        cds_start: CDS start (0-based).
        cds_end: CDS end (0-based, exclusive).

    Returns:
        Coding exon intervals, coordinate sorted.
    """
    coding = []
    for start, end in exons:
        clipped_start = max(start, cds_start)
        clipped_end = min(end, cds_end)
        if clipped_start < clipped_end:
            coding.append((clipped_start, clipped_end))
    return tuple(coding)


def _default_coding_exons(self: Transcript) -> tuple[Interval, ...]:
    return compute_coding_exons(self.exons, self.cds_start, self.cds_end)


# =============================================================================
# Transcript
# =============================================================================


@attrs.frozen(slots=True)
class Transcript:
    """An immutable transcript annotation.

    Attributes:
        transcript_id: Transcript identifier.
        gene_id: Gene identifier (gene name in refFlat).
        chrom: Chromosome name.
        strand: Transcript strand.
        tx_start: Transcription start (0-based).
        tx_end: Transcription end (0-based, exclusive).
        cds_start: CDS start (0-based).
        cds_end: CDS end (0-based, exclusive).
        exons: Exon intervals sorted by coordinate.
        coding_exons: Exon intervals clipped to the CDS, computed from
            the exons unless given explicitly.
        depth_score: Read-depth score (RPKM), 0.0 until estimated.
    """

    transcript_id: str
    gene_id: str
    chrom: str
    strand: Strand = attrs.field(converter=Strand.from_string)
    tx_start: int = attrs.field(converter=int)
    tx_end: int = attrs.field(converter=int)
    cds_start: int = attrs.field(converter=int)
    cds_end: int = attrs.field(converter=int)
    exons: tuple[Interval, ...] = attrs.field(converter=_to_intervals)
    coding_exons: tuple[Interval, ...] = attrs.field(
        default=attrs.Factory(_default_coding_exons, takes_self=True),
        converter=_to_intervals,
    )
    depth_score: float = 0.0

    @property
    def exon_count(self) -> int:
        """Number of exons."""
        return len(self.exons)

    @property
    def exon_bases(self) -> int:
        """Total exon length (spliced transcript length)."""
        return sum(end - start for start, end in self.exons)

    @property
    def cds_exon_bases(self) -> int:
        """Total coding exon length."""
        return sum(end - start for start, end in self.coding_exons)

    @property
    def is_reverse(self) -> bool:
        """Whether the transcript is on the reverse strand."""
        return self.strand is Strand.REVERSE

    def get_exons(self, cds_only: bool = False) -> tuple[Interval, ...]:
        """Get the exon set used for breakpoints.

        Args:
            cds_only: Use coding exons instead of all exons.

        Returns:
            Exon intervals sorted by coordinate.
        """
        return self.coding_exons if cds_only else self.exons

    def logical_order(self, cds_only: bool = False) -> list[int]:
        """Exon indices in 5' to 3' transcript order.

        Reverse-strand transcripts read the coordinate-sorted exon list
        back to front.

        Args:
            cds_only: Use coding exons instead of all exons.

        Returns:
            Indices into get_exons(cds_only).
        """
        indices = list(range(len(self.get_exons(cds_only))))
        if self.is_reverse:
            indices.reverse()
        return indices

    def with_depth_score(self, score: float) -> Transcript:
        """Return a copy carrying a read-depth score."""
        return attrs.evolve(self, depth_score=float(score))

    def with_exon(self, index: int, interval: Interval, cds_only: bool = False) -> Transcript:
        """Return a copy with one exon replaced.

        Replacing a full exon recomputes the coding exons; replacing a
        coding exon leaves the full exon list untouched.

        Args:
            index: Index into get_exons(cds_only).
            interval: New (start, end) interval.
            cds_only: Replace in the coding exon list.

        Returns:
            New Transcript.
        """
        exons = list(self.get_exons(cds_only))
        exons[index] = interval
        if cds_only:
            return attrs.evolve(self, coding_exons=exons)
        return attrs.evolve(
            self,
            exons=exons,
            coding_exons=compute_coding_exons(_to_intervals(exons), self.cds_start, self.cds_end),
        )

    def __str__(self) -> str:
        return f"{self.transcript_id} ({self.gene_id}) {self.chrom}:{self.tx_start}-{self.tx_end} {self.strand}"


class DepthSample(NamedTuple):
    """A transcript paired with the score used for binning.

    Attributes:
        transcript: The scored transcript.
        score: Sampling score (RPKM for background selection).
    """

    transcript: Transcript
    score: float


# =============================================================================
# Fusion Gene
# =============================================================================


@attrs.define(slots=True)
class FusionGene:
    """One simulated fusion event.

    Self-fusions hold the same transcript twice. Breakpoints are attached
    after construction, and transcripts may be replaced by frame-trimmed
    copies when they are.

    Attributes:
        transcripts: One transcript per side, 5' side first.
        fusion_type: Fusion topology.
        options: Options applied while assembling this fusion.
        breaks: Exon indices per side, sorted by coordinate.
        insertions: Foreign sequence after each side but the last.
        sequences: Extracted (and oriented) sequence per side.
    """

    transcripts: list[Transcript]
    fusion_type: FusionType
    options: list[FusionOption] = attrs.Factory(list)
    breaks: list[tuple[int, ...]] = attrs.Factory(list)
    insertions: list[str] = attrs.Factory(list)
    sequences: list[str] = attrs.Factory(list)

    @property
    def n_sides(self) -> int:
        """Number of sides (2 for self-fusions)."""
        return len(self.transcripts)

    @property
    def name(self) -> str:
        """Fusion name built from gene identifiers."""
        return "-".join(t.gene_id for t in self.transcripts)

    @property
    def transcript_name(self) -> str:
        """Fusion name built from transcript identifiers."""
        return "-".join(t.transcript_id for t in self.transcripts)

    @property
    def cds_only(self) -> bool:
        """Whether breakpoints index coding exons."""
        return FusionOption.CDS_ONLY in self.options

    def has_option(self, option: FusionOption) -> bool:
        """Check whether an option was applied."""
        return option in self.options

    def side_exons(self, side: int) -> list[Interval]:
        """Exon intervals selected on one side, sorted by coordinate."""
        exons = self.transcripts[side].get_exons(self.cds_only)
        return [exons[i] for i in self.breaks[side]]

    def side_bases(self, side: int) -> int:
        """Number of bases contributed by one side."""
        return sum(end - start for start, end in self.side_exons(side))

    @property
    def sequence(self) -> str:
        """Assembled fusion sequence (empty until sequences are attached)."""
        parts = []
        for i, seq in enumerate(self.sequences):
            parts.append(seq)
            if i < len(self.insertions):
                parts.append(self.insertions[i])
        return "".join(parts)
