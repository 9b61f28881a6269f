"""Gene selectors.

A gene selector supplies the transcript population fusions are drawn
from. Two variants exist:

- StaticSelector: every transcript of the gene model, unscored.
- BackgroundSelector: transcripts scored by background read depth,
  keeping only those above the RPKM cutoff.

Both cache the population on first use and accept an optional
TranscriptFilter restricting the result by gene id, transcript id or
chromosome.

Example:
    >>> selector = StaticSelector(iter_refflat("refFlat.txt"))
    >>> chr1 = selector.select(TranscriptFilter.for_chromosome("chr1"))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol, runtime_checkable

import attrs

from fusionforge.core.depth import ReadDepthEstimator
from fusionforge.core.models import Transcript
from fusionforge.errors import InputDataError

logger = logging.getLogger(__name__)


# =============================================================================
# Filters
# =============================================================================


@attrs.frozen(slots=True)
class TranscriptFilter:
    """Set-membership predicate over transcripts.

    A transcript matches when its gene id, transcript id or chromosome
    is one of the identifiers.

    Attributes:
        identifiers: Gene ids, transcript ids or chromosome names.
    """

    identifiers: frozenset[str] = attrs.field(converter=frozenset)

    @classmethod
    def for_chromosome(cls, chrom: str) -> TranscriptFilter:
        """Filter matching a single chromosome."""
        return cls(frozenset([chrom]))

    def __len__(self) -> int:
        return len(self.identifiers)

    def matches(self, transcript: Transcript) -> bool:
        """Check whether a transcript passes the filter."""
        return (
            transcript.gene_id in self.identifiers
            or transcript.transcript_id in self.identifiers
            or transcript.chrom in self.identifiers
        )

    def apply(self, transcripts: Iterable[Transcript]) -> list[Transcript]:
        """Return the matching transcripts in input order."""
        return [t for t in transcripts if self.matches(t)]


# =============================================================================
# Selectors
# =============================================================================


@runtime_checkable
class GeneSelector(Protocol):
    """Source of the transcript population."""

    def select(self, transcript_filter: TranscriptFilter | None = None) -> list[Transcript]:
        """Return the population, optionally filtered."""
        ...


class StaticSelector:
    """Select from every transcript of the gene model.

    Attributes:
        transcripts: Cached transcript population.
    """

    def __init__(self, transcripts: Iterable[Transcript]) -> None:
        self._source = transcripts
        self._transcripts: list[Transcript] | None = None

    @property
    def transcripts(self) -> list[Transcript]:
        if self._transcripts is None:
            self._transcripts = list(self._source)
            logger.info(f"Loaded {len(self._transcripts)} transcripts")
        return self._transcripts

    def select(self, transcript_filter: TranscriptFilter | None = None) -> list[Transcript]:
        """Return all transcripts, or those passing the filter.

        Raises:
            InputDataError: If a filter is given and nothing matches.
        """
        if transcript_filter is None:
            return list(self.transcripts)
        selected = transcript_filter.apply(self.transcripts)
        if not selected:
            raise InputDataError(
                f"No transcripts match filter {sorted(transcript_filter.identifiers)}"
            )
        return selected


class BackgroundSelector:
    """Select transcripts expressed in a background alignment.

    The first call runs the read-depth estimator over the transcript
    stream; later calls reuse the scored population.

    Attributes:
        estimator: Read-depth estimator.
    """

    def __init__(
        self,
        transcripts: Iterable[Transcript],
        estimator: ReadDepthEstimator,
    ) -> None:
        self._source = transcripts
        self.estimator = estimator
        self._transcripts: list[Transcript] | None = None

    @property
    def transcripts(self) -> list[Transcript]:
        if self._transcripts is None:
            scored = self.estimator.estimate(self._source)
            # Worker order is arbitrary; keep results reproducible.
            scored.sort(key=lambda t: (t.chrom, t.tx_start, t.transcript_id))
            self._transcripts = scored
        return self._transcripts

    def select(self, transcript_filter: TranscriptFilter | None = None) -> list[Transcript]:
        """Return scored transcripts, or those passing the filter.

        The filtered list may be empty.
        """
        if transcript_filter is None:
            return list(self.transcripts)
        return transcript_filter.apply(self.transcripts)
