"""Exon-level breakpoint generation.

A breakpoint is the set of exon indices one transcript contributes to a
fusion. Indices point into the transcript's exon list (or coding exon
list in CDS-only mode) and are returned sorted by genomic coordinate, so
reverse-strand transcripts are enumerated back to front in logical
5' to 3' order and then flipped back.

Two strategies are provided:

- random_break: split the exon list at a random exon and keep the 5'
  or the 3' half.
- boundary_break: choose a split whose 5' part has a cumulative length
  divisible by 3, so the junction falls on a codon boundary.

fix_frame trims the trailing exon of a random break so that the bases
contributed up to and including that side stay in frame.

Example:
    >>> rng = np.random.default_rng(1)
    >>> head = random_break(tx, keep_first_half=True, rng=rng)
    >>> tail = random_break(tx, keep_first_half=False, rng=rng)
"""

from __future__ import annotations

import logging

import numpy as np

from fusionforge.core.models import Transcript
from fusionforge.errors import BreakpointError

logger = logging.getLogger(__name__)

FRAME_SPLIT_MODES = ("random", "half")


# =============================================================================
# Helpers
# =============================================================================


def _logical_lengths(transcript: Transcript, cds_only: bool) -> tuple[list[int], list[int]]:
    """Return logical exon order and the matching exon lengths."""
    exons = transcript.get_exons(cds_only)
    order = transcript.logical_order(cds_only)
    lengths = [exons[i][1] - exons[i][0] for i in order]
    return order, lengths


def _require_exons(transcript: Transcript, cds_only: bool) -> int:
    n_exons = len(transcript.get_exons(cds_only))
    if n_exons == 0:
        kind = "coding exons" if cds_only else "exons"
        raise BreakpointError(f"Transcript {transcript.transcript_id} has no {kind}")
    return n_exons


def split_candidates(
    transcript: Transcript,
    keep_first_half: bool,
    cds_only: bool = False,
    symmetrical: bool = False,
) -> list[int]:
    """List the split points a random break may use.

    A split point s divides the logical exon order into positions
    [0, s) and [s, n). The 5' half needs s in 1..n and the 3' half needs
    s in 0..n-1 so that neither side is empty.

    With symmetrical set, only splits where the exon adjacent to the
    junction has a length divisible by 3 are kept.

    Args:
        transcript: Source transcript.
        keep_first_half: Candidates for the 5' half if True.
        cds_only: Use coding exons.
        symmetrical: Restrict to junction exons of whole codons.

    Returns:
        Candidate split points (may be empty when symmetrical).

    Raises:
        BreakpointError: If the exon set is empty.
    """
    n_exons = _require_exons(transcript, cds_only)
    candidates = list(range(1, n_exons + 1)) if keep_first_half else list(range(n_exons))
    if not symmetrical:
        return candidates

    _, lengths = _logical_lengths(transcript, cds_only)
    if keep_first_half:
        return [s for s in candidates if lengths[s - 1] % 3 == 0]
    return [s for s in candidates if lengths[s] % 3 == 0]


# =============================================================================
# Random Breaks
# =============================================================================


def random_break(
    transcript: Transcript,
    keep_first_half: bool,
    cds_only: bool = False,
    rng: np.random.Generator | None = None,
    split: int | None = None,
    symmetrical: bool = False,
) -> tuple[int, ...]:
    """Pick a random exon split and return one half.

    The 5' half holds logical positions [0, split) and the 3' half
    [split, n), so calls with the same split on both halves partition
    the exon set.

    Args:
        transcript: Source transcript.
        keep_first_half: Return the 5' half if True, else the 3' half.
        cds_only: Break within coding exons.
        rng: Random generator (a fresh one is created if None).
        split: Use this split point instead of drawing one.
        symmetrical: Only split next to exons of whole codons.

    Returns:
        Exon indices sorted by genomic coordinate.

    Raises:
        BreakpointError: If the exon set is empty, the split is out of
            range or no symmetrical split exists.
    """
    n_exons = _require_exons(transcript, cds_only)
    order = transcript.logical_order(cds_only)

    if split is None:
        candidates = split_candidates(transcript, keep_first_half, cds_only, symmetrical)
        if not candidates:
            raise BreakpointError(
                f"No symmetrical exon split for {transcript.transcript_id}"
            )
        rng = rng if rng is not None else np.random.default_rng()
        split = int(rng.choice(candidates))
    else:
        low, high = (1, n_exons) if keep_first_half else (0, n_exons - 1)
        if not low <= split <= high:
            raise BreakpointError(
                f"Split {split} out of range [{low}, {high}] for {transcript.transcript_id}"
            )

    selected = order[:split] if keep_first_half else order[split:]
    return tuple(sorted(selected))


# =============================================================================
# Exon Boundary Breaks
# =============================================================================


def valid_boundary_breaks(transcript: Transcript, cds_only: bool = False) -> list[int]:
    """Enumerate in-frame prefix lengths.

    A prefix of i exons (in logical order, i in 1..n) is valid when its
    cumulative length is non-zero and divisible by 3. The full exon list
    is a candidate like any other prefix.

    Args:
        transcript: Source transcript.
        cds_only: Use coding exons.

    Returns:
        Valid prefix lengths in increasing order.

    Raises:
        BreakpointError: If the exon set is empty.

    Example:
        >>> # four exons of 30 bp each
        >>> valid_boundary_breaks(tx)
        [1, 2, 3, 4]
    """
    _require_exons(transcript, cds_only)
    _, lengths = _logical_lengths(transcript, cds_only)

    valid = []
    cumulative = 0
    for i, length in enumerate(lengths, start=1):
        cumulative += length
        if cumulative > 0 and cumulative % 3 == 0:
            valid.append(i)
    return valid


def boundary_break(
    transcript: Transcript,
    cds_only: bool = False,
    rng: np.random.Generator | None = None,
    keep_first_half: bool = True,
) -> tuple[int, ...]:
    """Pick a random in-frame exon boundary break.

    For the 5' side one valid prefix is returned. For a 3' side the
    exons after a valid prefix are returned, or the whole exon list
    (the transcript enters the fusion at its own start).

    Args:
        transcript: Source transcript.
        cds_only: Break within coding exons.
        rng: Random generator (a fresh one is created if None).
        keep_first_half: Return a 5' prefix if True, else a 3' suffix.

    Returns:
        Exon indices sorted by genomic coordinate.

    Raises:
        BreakpointError: If no in-frame boundary exists.
    """
    rng = rng if rng is not None else np.random.default_rng()
    order = transcript.logical_order(cds_only)
    valid = valid_boundary_breaks(transcript, cds_only)

    if keep_first_half:
        if not valid:
            raise BreakpointError(
                f"No in-frame exon boundary for {transcript.transcript_id}"
            )
        prefix = int(rng.choice(valid))
        return tuple(sorted(order[:prefix]))

    starts = [0] + [i for i in valid if i < len(order)]
    start = int(rng.choice(starts))
    return tuple(sorted(order[start:]))


# =============================================================================
# Frame Fixup
# =============================================================================


def fix_frame(
    transcript: Transcript,
    exon_indices: tuple[int, ...],
    preceding_bases: int,
    cds_only: bool = False,
    rng: np.random.Generator | None = None,
    mode: str = "random",
) -> Transcript:
    """Trim the trailing exon of a break to restore the reading frame.

    The bases of all preceding sides plus this side must be divisible by
    3. When they are not, the 3'-most selected exon is shortened at its
    3' end by an offset rounded down to a multiple of 3, plus the
    remainder. Forward-strand exons lose bases from their end
    coordinate, reverse-strand exons from their start coordinate.

    The input transcript is left untouched.

    Args:
        transcript: Transcript for this side.
        exon_indices: Break indices for this side.
        preceding_bases: Bases contributed by earlier sides.
        cds_only: Indices point at coding exons.
        rng: Random generator for the "random" mode.
        mode: "random" for an offset drawn within the exon, "half" for
            the exon midpoint.

    Returns:
        The transcript with its trailing exon trimmed, or the same
        transcript when already in frame.

    Raises:
        BreakpointError: If the exon is too short to trim.
        ValueError: If the mode is unknown.
    """
    if mode not in FRAME_SPLIT_MODES:
        raise ValueError(f"Unknown frame split mode '{mode}'")
    if not exon_indices:
        raise BreakpointError(f"Empty break for {transcript.transcript_id}")

    exons = transcript.get_exons(cds_only)
    side_bases = sum(exons[i][1] - exons[i][0] for i in exon_indices)
    remainder = (preceding_bases + side_bases) % 3
    if remainder == 0:
        return transcript

    index = min(exon_indices) if transcript.is_reverse else max(exon_indices)
    start, end = exons[index]
    length = end - start

    if mode == "half":
        offset = length // 2
    else:
        rng = rng if rng is not None else np.random.default_rng()
        offset = int(rng.integers(0, length))
    offset -= offset % 3

    trim = offset + remainder
    if trim >= length:
        trim = remainder
    if trim >= length:
        raise BreakpointError(
            f"Exon {index} of {transcript.transcript_id} is too short "
            f"({length} bp) to restore the reading frame"
        )

    if transcript.is_reverse:
        trimmed = (start + trim, end)
    else:
        trimmed = (start, end - trim)

    logger.debug(
        f"Trimmed {trim} bp from exon {index} of {transcript.transcript_id}"
    )
    return transcript.with_exon(index, trimmed, cds_only=cds_only)
