"""Fusion assembly and simulation.

FusionAssembler turns a group of transcripts into one FusionGene:
breakpoints per side, frame fixup, foreign insertions and the oriented
sequence of every side.

FusionSimulator drives a whole run. It gathers transcript groups for
each requested fusion type, hands them to the assembler and records
events that could not be built. The five fusion types differ only in
how transcripts are gathered:

- hybrid: one transcript per slot, each slot optionally filtered
- self_fusion: one transcript used on both sides
- tri_fusion: three slots
- intra_chromosome: two genes from one random chromosome holding at least two
- read_through: neighbouring transcripts of different genes

Example:
    >>> selector = StaticSelector(iter_refflat("refFlat.txt"))
    >>> simulator = FusionSimulator(
    ...     selector,
    ...     counts={FusionType.HYBRID: 5, FusionType.READ_THROUGH: 2},
    ... )
    >>> result = simulator.run()
    >>> len(result.fusions)
    7
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Protocol

import attrs
import numpy as np

from fusionforge.core.breakpoints import FRAME_SPLIT_MODES, boundary_break, fix_frame, random_break
from fusionforge.core.models import FusionGene, FusionOption, FusionType, Transcript
from fusionforge.core.sampling import SelectionSampler
from fusionforge.core.selectors import GeneSelector, TranscriptFilter
from fusionforge.errors import ConfigurationError, InputDataError, NoFusionsProducedError
from fusionforge.utils.sequences import random_sequence, reverse_complement

logger = logging.getLogger(__name__)


class SequenceFetcher(Protocol):
    """Forward-strand sequence retrieval (1-based, inclusive)."""

    def fetch(self, chrom: str, start: int, end: int) -> str: ...


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class SkippedEvent:
    """A fusion event that could not be produced."""

    fusion_type: FusionType
    reason: str


@attrs.define(slots=True)
class SimulationResult:
    """Outcome of a simulation run.

    Attributes:
        fusions: Assembled fusions in generation order.
        skipped: Events that were skipped, with reasons.
    """

    fusions: list[FusionGene] = attrs.Factory(list)
    skipped: list[SkippedEvent] = attrs.Factory(list)

    @property
    def is_partial(self) -> bool:
        """True when some, but not all, requested events were produced."""
        return bool(self.fusions) and bool(self.skipped)

    def counts(self) -> dict[FusionType, int]:
        """Produced fusions per type."""
        return dict(Counter(f.fusion_type for f in self.fusions))

    def skipped_counts(self) -> dict[FusionType, int]:
        """Skipped events per type."""
        return dict(Counter(s.fusion_type for s in self.skipped))


# =============================================================================
# Assembler
# =============================================================================


@attrs.define
class FusionAssembler:
    """Build FusionGene values from transcript groups.

    Attributes:
        genome: Sequence source; sequences are left empty when None.
        cds_only: Break within coding exons only.
        auto_correct_orientation: Reverse-complement sides whose strand
            differs from the first gene.
        keep_exon_boundary: Place breaks on in-frame exon boundaries.
        symmetrical_exons: Only split next to exons of whole codons.
        out_of_frame: Allow the junction to shift the reading frame.
        frame_split: Frame fixup offset rule, "random" or "half".
        foreign_insertion_fraction: Probability a fusion gets foreign
            sequence inserted at its junctions.
        foreign_insertion_max_length: Maximum inserted length.
        rng: Random generator.
    """

    genome: SequenceFetcher | None = None
    cds_only: bool = False
    auto_correct_orientation: bool = False
    keep_exon_boundary: bool = False
    symmetrical_exons: bool = False
    out_of_frame: bool = False
    frame_split: str = "random"
    foreign_insertion_fraction: float = 0.0
    foreign_insertion_max_length: int = 10
    rng: np.random.Generator = attrs.Factory(np.random.default_rng)

    def __attrs_post_init__(self) -> None:
        if self.frame_split not in FRAME_SPLIT_MODES:
            raise ConfigurationError(f"Unknown frame split mode '{self.frame_split}'")
        if not 0.0 <= self.foreign_insertion_fraction <= 1.0:
            raise ConfigurationError(
                f"Foreign insertion fraction must be in [0, 1], "
                f"got {self.foreign_insertion_fraction}"
            )
        if self.foreign_insertion_max_length < 1:
            raise ConfigurationError(
                f"Foreign insertion length must be >= 1, "
                f"got {self.foreign_insertion_max_length}"
            )

    @property
    def options(self) -> list[FusionOption]:
        """Options applied to every fusion."""
        flags = [
            (self.auto_correct_orientation, FusionOption.AUTO_CORRECT_ORIENTATION),
            (self.cds_only, FusionOption.CDS_ONLY),
            (self.symmetrical_exons, FusionOption.SYMMETRICAL_EXONS),
            (self.out_of_frame, FusionOption.OUT_OF_FRAME),
            (self.keep_exon_boundary, FusionOption.KEEP_EXON_BOUNDARY),
        ]
        return [option for enabled, option in flags if enabled]

    def _break(self, transcript: Transcript, side: int) -> tuple[int, ...]:
        keep_first_half = side == 0
        if self.keep_exon_boundary and not self.out_of_frame:
            return boundary_break(
                transcript, self.cds_only, self.rng, keep_first_half=keep_first_half
            )
        return random_break(
            transcript,
            keep_first_half,
            self.cds_only,
            self.rng,
            symmetrical=self.symmetrical_exons,
        )

    def side_sequence(self, transcript: Transcript, exon_indices: tuple[int, ...]) -> str:
        """Sequence of the selected exons in transcript orientation.

        Exons are fetched on the forward strand in coordinate order and
        the concatenation is reverse-complemented for reverse-strand
        transcripts.
        """
        if self.genome is None:
            return ""
        exons = transcript.get_exons(self.cds_only)
        sequence = "".join(
            self.genome.fetch(transcript.chrom, exons[i][0] + 1, exons[i][1])
            for i in exon_indices
        )
        if transcript.is_reverse:
            sequence = reverse_complement(sequence)
        return sequence

    def assemble(self, transcripts: list[Transcript], fusion_type: FusionType) -> FusionGene:
        """Assemble one fusion.

        The first transcript contributes its 5' half, every later one a
        3' half. Unless out-of-frame junctions are allowed or breaks sit
        on exon boundaries, each later side is trimmed so the bases up
        to and including it are a multiple of 3.

        Args:
            transcripts: Transcripts in fusion order (self-fusions list
                the same transcript twice).
            fusion_type: Fusion type tag.

        Returns:
            The assembled FusionGene.

        Raises:
            InputDataError: If no valid breakpoint exists or the sequence
                cannot be fetched.
        """
        if len(transcripts) < 2:
            raise InputDataError(f"{fusion_type} fusion needs at least 2 sides")

        fix_frames = not self.out_of_frame and not self.keep_exon_boundary
        sides: list[Transcript] = []
        breaks: list[tuple[int, ...]] = []
        preceding = 0
        for side, transcript in enumerate(transcripts):
            exon_indices = self._break(transcript, side)
            if side > 0 and fix_frames:
                transcript = fix_frame(
                    transcript,
                    exon_indices,
                    preceding,
                    self.cds_only,
                    self.rng,
                    self.frame_split,
                )
            exons = transcript.get_exons(self.cds_only)
            preceding += sum(exons[i][1] - exons[i][0] for i in exon_indices)
            sides.append(transcript)
            breaks.append(exon_indices)

        options = self.options
        insertions: list[str] = []
        if self.foreign_insertion_fraction > 0 and self.rng.random() < self.foreign_insertion_fraction:
            insertions = [
                random_sequence(self.foreign_insertion_max_length, self.rng)
                for _ in range(len(sides) - 1)
            ]
            options.append(FusionOption.FOREIGN_INSERTION)

        sequences = []
        reference_strand = sides[0].strand
        for transcript, exon_indices in zip(sides, breaks):
            sequence = self.side_sequence(transcript, exon_indices)
            if self.auto_correct_orientation and transcript.strand is not reference_strand:
                sequence = reverse_complement(sequence)
            sequences.append(sequence)

        return FusionGene(
            transcripts=sides,
            fusion_type=fusion_type,
            options=options,
            breaks=breaks,
            insertions=insertions,
            sequences=sequences,
        )


# =============================================================================
# Simulator
# =============================================================================


TranscriptGroup = list[Transcript]
Gathered = tuple[list[TranscriptGroup], list[SkippedEvent]]


@attrs.define
class FusionSimulator:
    """Generate fusions of every requested type.

    Attributes:
        selector: Source of the transcript population.
        assembler: Fusion assembler.
        sampler: Selection sampler.
        counts: Requested events per fusion type.
        limit: Restricts every slot (gene ids or transcript ids).
        slot_filters: Optional filter per slot, in slot order.
    """

    selector: GeneSelector
    assembler: FusionAssembler = attrs.Factory(FusionAssembler)
    sampler: SelectionSampler = attrs.Factory(SelectionSampler)
    counts: dict[FusionType, int] = attrs.Factory(lambda: {FusionType.HYBRID: 5})
    limit: TranscriptFilter | None = None
    slot_filters: list[TranscriptFilter | None] = attrs.Factory(list)

    def __attrs_post_init__(self) -> None:
        for fusion_type, n in self.counts.items():
            if n < 0:
                raise ConfigurationError(f"Negative event count for {fusion_type}: {n}")

    @property
    def rng(self) -> np.random.Generator:
        return self.sampler.rng

    def population(self) -> list[Transcript]:
        """Limited transcript population, checked against the requested types.

        Raises:
            ConfigurationError: If the limit leaves fewer distinct genes
                than a requested fusion type needs.
        """
        # load the full population first so gene model errors propagate as-is
        transcripts = self.selector.select()
        if self.limit is not None:
            try:
                transcripts = self.selector.select(self.limit)
            except InputDataError as e:
                raise ConfigurationError(f"Gene limit matches no transcripts: {e}") from e

        n_genes = len({t.gene_id for t in transcripts})
        for fusion_type, n in self.counts.items():
            if n > 0 and n_genes < fusion_type.genes_per_fusion:
                raise ConfigurationError(
                    f"{fusion_type} fusions need {fusion_type.genes_per_fusion} genes, "
                    f"only {n_genes} available"
                )
        return transcripts

    def run(self) -> SimulationResult:
        """Generate every requested fusion.

        Returns:
            Fusions and skipped events.

        Raises:
            ConfigurationError: If the population cannot satisfy the
                requested types.
            NoFusionsProducedError: If every event was skipped.
        """
        transcripts = self.population()
        gatherers: dict[FusionType, Callable[[list[Transcript], int], Gathered]] = {
            FusionType.HYBRID: self._gather_hybrid,
            FusionType.SELF_FUSION: self._gather_self,
            FusionType.TRI_FUSION: self._gather_tri,
            FusionType.INTRA_CHROMOSOME: self._gather_intra_chromosome,
            FusionType.READ_THROUGH: self._gather_read_through,
        }

        result = SimulationResult()
        for fusion_type in FusionType:
            n = self.counts.get(fusion_type, 0)
            if n <= 0:
                continue
            logger.info(f"Generating {n} {fusion_type} fusion(s)")
            groups, skipped = gatherers[fusion_type](transcripts, n)
            for event in skipped:
                self._skip(result, event)
            for group in groups:
                try:
                    result.fusions.append(self.assembler.assemble(group, fusion_type))
                except InputDataError as e:
                    self._skip(result, SkippedEvent(fusion_type, str(e)))

        if not result.fusions:
            raise NoFusionsProducedError(
                f"No fusions produced ({len(result.skipped)} event(s) skipped)"
            )
        logger.info(
            f"Produced {len(result.fusions)} fusion(s), skipped {len(result.skipped)}"
        )
        return result

    def _skip(self, result: SimulationResult, event: SkippedEvent) -> None:
        logger.warning(f"Skipped {event.fusion_type} fusion: {event.reason}")
        result.skipped.append(event)

    # -------------------------------------------------------------------------
    # Gathering
    # -------------------------------------------------------------------------

    def _draw(
        self,
        transcripts: list[Transcript],
        n_events: int,
        genes_per_fusion: int,
        fusion_type: FusionType,
    ) -> Gathered:
        """Draw n_events groups from one population with the sampler."""
        samples = self.sampler.rank(transcripts)
        bins = self.sampler.bins(samples, n_events)
        groups: list[TranscriptGroup] = []
        skipped: list[SkippedEvent] = []
        for event in range(n_events):
            try:
                indices = self.sampler.draw(bins, event, genes_per_fusion)
            except InputDataError as e:
                skipped.append(SkippedEvent(fusion_type, str(e)))
                continue
            groups.append([samples[i].transcript for i in indices])
        return groups, skipped

    def _draw_per_slot(
        self,
        transcripts: list[Transcript],
        n_events: int,
        filters: list[TranscriptFilter | None],
        fusion_type: FusionType,
    ) -> Gathered:
        """Draw each slot from its own filtered population.

        An event is skipped when any of its slots cannot be drawn. A
        single slot is used on both sides.
        """
        slots = []
        for slot, slot_filter in enumerate(filters):
            pool = transcripts if slot_filter is None else slot_filter.apply(transcripts)
            if not pool:
                reason = f"No transcripts for slot {slot + 1}"
                return [], [SkippedEvent(fusion_type, reason) for _ in range(n_events)]
            samples = self.sampler.rank(pool)
            slots.append((samples, self.sampler.bins(samples, n_events)))

        groups: list[TranscriptGroup] = []
        skipped: list[SkippedEvent] = []
        for event in range(n_events):
            group = []
            try:
                for samples, bins in slots:
                    index = self.sampler.draw(bins, event, 1)[0]
                    group.append(samples[index].transcript)
            except InputDataError as e:
                skipped.append(SkippedEvent(fusion_type, str(e)))
                continue
            if len(group) == 1:
                group = group * 2
            groups.append(group)
        return groups, skipped

    def _slot_filters(self, n_slots: int) -> list[TranscriptFilter | None]:
        filters = list(self.slot_filters[:n_slots])
        return filters + [None] * (n_slots - len(filters))

    def _gather_slots(
        self, transcripts: list[Transcript], n_events: int, fusion_type: FusionType
    ) -> Gathered:
        n_slots = fusion_type.genes_per_fusion
        filters = self._slot_filters(n_slots)
        if any(f is not None for f in filters):
            return self._draw_per_slot(transcripts, n_events, filters, fusion_type)
        return self._draw(transcripts, n_events, n_slots, fusion_type)

    def _gather_hybrid(self, transcripts: list[Transcript], n_events: int) -> Gathered:
        return self._gather_slots(transcripts, n_events, FusionType.HYBRID)

    def _gather_self(self, transcripts: list[Transcript], n_events: int) -> Gathered:
        return self._gather_slots(transcripts, n_events, FusionType.SELF_FUSION)

    def _gather_tri(self, transcripts: list[Transcript], n_events: int) -> Gathered:
        return self._gather_slots(transcripts, n_events, FusionType.TRI_FUSION)

    def _gather_intra_chromosome(
        self, transcripts: list[Transcript], n_events: int
    ) -> Gathered:
        genes_by_chrom: dict[str, set[str]] = {}
        for t in transcripts:
            genes_by_chrom.setdefault(t.chrom, set()).add(t.gene_id)
        # only chromosomes carrying two distinct genes can host the event
        chroms = sorted(c for c, genes in genes_by_chrom.items() if len(genes) >= 2)
        if not chroms:
            reason = "No chromosome holds two distinct genes"
            return [], [
                SkippedEvent(FusionType.INTRA_CHROMOSOME, reason) for _ in range(n_events)
            ]

        groups: list[TranscriptGroup] = []
        skipped: list[SkippedEvent] = []
        for _ in range(n_events):
            chrom = str(self.rng.choice(chroms))
            pool = TranscriptFilter.for_chromosome(chrom).apply(transcripts)
            first, event_skipped = self._draw(pool, 1, 1, FusionType.INTRA_CHROMOSOME)
            if event_skipped:
                skipped.extend(event_skipped)
                continue
            head = first[0][0]
            partners = [t for t in pool if t.gene_id != head.gene_id]
            second, event_skipped = self._draw(
                partners, 1, 1, FusionType.INTRA_CHROMOSOME
            )
            if event_skipped:
                skipped.extend(event_skipped)
                continue
            groups.append([head, second[0][0]])
        return groups, skipped

    def _gather_read_through(
        self, transcripts: list[Transcript], n_events: int
    ) -> Gathered:
        ordered = sorted(transcripts, key=lambda t: (t.chrom, t.tx_start))
        if len(ordered) < 2:
            reason = "Read-through fusions need at least 2 transcripts"
            return [], [SkippedEvent(FusionType.READ_THROUGH, reason) for _ in range(n_events)]

        groups: list[TranscriptGroup] = []
        skipped: list[SkippedEvent] = []
        for _ in range(n_events):
            index = int(self.rng.integers(0, len(ordered) - 1))
            partner = find_read_through_partner(ordered, index)
            if partner is None:
                skipped.append(
                    SkippedEvent(
                        FusionType.READ_THROUGH,
                        f"No neighbouring gene for {ordered[index].transcript_id}",
                    )
                )
                continue
            groups.append([ordered[index], partner])
        return groups, skipped


def find_read_through_partner(ordered: list[Transcript], index: int) -> Transcript | None:
    """Find the nearest transcript of a different gene on the same chromosome.

    Scans forward from index first, then backward.

    Args:
        ordered: Transcripts sorted by (chrom, tx_start).
        index: Position of the first gene.

    Returns:
        The partner transcript, or None if the chromosome holds no other gene.
    """
    first = ordered[index]
    for j in range(index + 1, len(ordered)):
        candidate = ordered[j]
        if candidate.chrom != first.chrom:
            break
        if candidate.gene_id != first.gene_id:
            return candidate
    for j in range(index - 1, -1, -1):
        candidate = ordered[j]
        if candidate.chrom != first.chrom:
            break
        if candidate.gene_id != first.gene_id:
            return candidate
    return None
