"""Expression-aware transcript sampling.

Converts a score-sorted transcript population into groups of indices,
one group per requested fusion event. Four methods are supported:

- uniform: every slot is drawn uniformly with replacement.
- binned: the population is cut into one contiguous, equal-count bin per
  event, and each event draws distinct transcripts from its own bin.
- empirical: equal-width score bins (square-root rule); a bin is drawn
  with probability proportional to its population, then a transcript
  uniformly within it.
- empirical-sturges: as empirical, with Sturges' rule for the bin count.

Example:
    >>> samples = SelectionSampler.rank(transcripts)
    >>> sampler = SelectionSampler("binned", rng=np.random.default_rng(7))
    >>> groups = sampler.plan(samples, n_events=5, genes_per_fusion=2)
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from enum import Enum

import attrs
import numpy as np

from fusionforge.core.models import DepthSample, Transcript
from fusionforge.errors import ConfigurationError, InputDataError

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class SelectionMethod(Enum):
    """Gene selection methods."""

    UNIFORM = "uniform"
    BINNED = "binned"
    EMPIRICAL = "empirical"
    EMPIRICAL_STURGES = "empirical-sturges"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_string(cls, value: str | SelectionMethod) -> SelectionMethod:
        """Parse a selection method name.

        Raises:
            ConfigurationError: If the method is unknown.
        """
        if isinstance(value, SelectionMethod):
            return value
        normalized = value.strip().lower().replace("_", "-")
        try:
            return cls(normalized)
        except ValueError:
            choices = ", ".join(m.value for m in cls)
            raise ConfigurationError(
                f"Unknown gene selection method '{value}' (choose from {choices})"
            ) from None

    @property
    def is_empirical(self) -> bool:
        return self in (SelectionMethod.EMPIRICAL, SelectionMethod.EMPIRICAL_STURGES)


# =============================================================================
# Data Structures
# =============================================================================


@attrs.define(slots=True)
class SelectionBin:
    """A bucket of sample indices.

    Attributes:
        indices: Indices into the rank-sorted sample list.
        lower: Lowest score covered by the bin.
        upper: Highest score covered by the bin.
    """

    indices: list[int] = attrs.Factory(list)
    lower: float = 0.0
    upper: float = 0.0

    def __len__(self) -> int:
        return len(self.indices)

    @property
    def is_empty(self) -> bool:
        return not self.indices


# =============================================================================
# Sampler
# =============================================================================


@attrs.define
class SelectionSampler:
    """Plan transcript index groups for fusion events.

    Attributes:
        method: Selection method.
        rng: numpy random generator used for every draw.
    """

    method: SelectionMethod = attrs.field(
        default=SelectionMethod.UNIFORM, converter=SelectionMethod.from_string
    )
    rng: np.random.Generator = attrs.Factory(np.random.default_rng)

    @staticmethod
    def rank(transcripts: Iterable[Transcript]) -> list[DepthSample]:
        """Pair transcripts with their depth score, sorted by score.

        The sort is stable, so unscored populations keep input order.
        """
        samples = [DepthSample(t, t.depth_score) for t in transcripts]
        samples.sort(key=lambda s: s.score)
        return samples

    # -------------------------------------------------------------------------
    # Binning
    # -------------------------------------------------------------------------

    @staticmethod
    def equal_count_bins(scores: Sequence[float], n_bins: int) -> list[SelectionBin]:
        """Cut a sorted population into contiguous equal-count bins.

        The last bin absorbs the remainder. A population smaller than the
        requested bin count yields a single bin.

        Args:
            scores: Sorted sample scores.
            n_bins: Requested number of bins.

        Returns:
            Bins covering every index exactly once.
        """
        population = len(scores)
        if population == 0:
            return []
        if n_bins < 1 or population < n_bins:
            n_bins = 1

        size = population // n_bins
        bins = []
        for b in range(n_bins):
            start = b * size
            end = population if b == n_bins - 1 else start + size
            bins.append(
                SelectionBin(
                    indices=list(range(start, end)),
                    lower=float(scores[start]),
                    upper=float(scores[end - 1]),
                )
            )
        return bins

    @staticmethod
    def empirical_bin_count(population: int, sturges: bool = False) -> int:
        """Number of equal-width bins for a population size."""
        if population <= 0:
            return 1
        if sturges:
            count = int(math.floor(math.log2(population + 1)))
        else:
            count = int(math.floor(math.sqrt(population)))
        return max(count, 1)

    @staticmethod
    def equal_width_bins(scores: Sequence[float], n_bins: int) -> list[SelectionBin]:
        """Assign samples to equal-width score bins and drop empty ones.

        Bin width is (max - min) / n_bins and a score s lands in bin
        floor(s / width) clamped to [0, n_bins - 1]. A zero width puts
        every sample in the first bin.

        Args:
            scores: Sample scores.
            n_bins: Number of bins before compaction.

        Returns:
            Non-empty bins in score order.
        """
        if not scores:
            return []
        low = float(min(scores))
        high = float(max(scores))
        width = (high - low) / n_bins

        bins = [SelectionBin() for _ in range(n_bins)]
        for i, score in enumerate(scores):
            if width > 0:
                b = int(math.floor(score / width))
                b = min(max(b, 0), n_bins - 1)
            else:
                b = 0
            bins[b].indices.append(i)

        # bounds span the member scores
        filled = [b for b in bins if not b.is_empty]
        for selection_bin in filled:
            members = [float(scores[i]) for i in selection_bin.indices]
            selection_bin.lower = min(members)
            selection_bin.upper = max(members)
        return filled

    def bins(self, samples: Sequence[DepthSample], n_events: int) -> list[SelectionBin]:
        """Build the bins the configured method samples from.

        Uniform sampling uses one bin holding the whole population.
        """
        scores = [s.score for s in samples]
        if self.method is SelectionMethod.BINNED:
            return self.equal_count_bins(scores, n_events)
        if self.method.is_empirical:
            n_bins = self.empirical_bin_count(
                len(scores), sturges=self.method is SelectionMethod.EMPIRICAL_STURGES
            )
            return self.equal_width_bins(scores, n_bins)
        if not scores:
            return []
        return [
            SelectionBin(
                indices=list(range(len(scores))),
                lower=float(min(scores)),
                upper=float(max(scores)),
            )
        ]

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def draw(
        self,
        bins: Sequence[SelectionBin],
        event_index: int,
        genes_per_fusion: int,
    ) -> tuple[int, ...]:
        """Draw the index group for one event.

        Args:
            bins: Bins from bins().
            event_index: Position of the event in the run.
            genes_per_fusion: Distinct transcript slots (1 to 3).

        Returns:
            Sample indices; a single slot is duplicated into a pair.

        Raises:
            InputDataError: If the population is empty or the event's
                bin is too small.
        """
        if not bins:
            raise InputDataError("No transcripts available for selection")

        if self.method is SelectionMethod.BINNED:
            target = bins[event_index % len(bins)]
            if len(target) < genes_per_fusion:
                raise InputDataError(
                    f"Bin {event_index % len(bins)} holds {len(target)} transcripts, "
                    f"{genes_per_fusion} needed"
                )
            chosen = self.rng.choice(target.indices, size=genes_per_fusion, replace=False)
            group = tuple(int(i) for i in chosen)
        elif self.method.is_empirical:
            distribution = np.concatenate(
                [np.full(len(b), k, dtype=np.int64) for k, b in enumerate(bins)]
            )
            group = ()
            for _ in range(genes_per_fusion):
                k = int(distribution[self.rng.integers(0, len(distribution))])
                group += (int(self.rng.choice(bins[k].indices)),)
        else:
            population = bins[0].indices
            chosen = self.rng.integers(0, len(population), size=genes_per_fusion)
            group = tuple(population[int(i)] for i in chosen)

        if genes_per_fusion == 1:
            group = (group[0], group[0])
        return group

    def plan(
        self,
        samples: Sequence[DepthSample],
        n_events: int,
        genes_per_fusion: int,
    ) -> list[tuple[int, ...]]:
        """Plan index groups for a number of events.

        Events whose bin is too small are skipped and logged.

        Args:
            samples: Score-sorted samples (see rank()).
            n_events: Number of fusion events requested.
            genes_per_fusion: Distinct transcript slots per event.

        Returns:
            One index group per event that could be planned.

        Raises:
            InputDataError: If the population is empty.
        """
        if n_events <= 0:
            return []
        bins = self.bins(samples, n_events)
        if not bins:
            raise InputDataError("No transcripts available for selection")

        logger.debug(
            f"Sampling {n_events} events from {len(samples)} transcripts "
            f"in {len(bins)} {self.method} bins"
        )
        groups = []
        for event in range(n_events):
            try:
                groups.append(self.draw(bins, event, genes_per_fusion))
            except InputDataError as e:
                logger.warning(f"Skipping event {event + 1}: {e}")
        return groups
