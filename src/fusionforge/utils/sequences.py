"""Sequence manipulation utilities.

This module provides utilities for working with nucleotide sequences:

- Complement and reverse complement
- Random foreign-insertion sequences

Example:
    >>> from fusionforge.utils.sequences import reverse_complement
    >>> reverse_complement("ATGCATGC")
    'GCATGCAT'
"""

from __future__ import annotations

import numpy as np

# =============================================================================
# Constants
# =============================================================================

# IUPAC-aware complement table, case preserving
COMPLEMENT_TABLE = str.maketrans(
    "ACGTacgtNnRYSWKMBDHVryswkmbdhv",
    "TGCAtgcaNnYRSWMKVHDByrswmkvhdb",
)

# Alphabet for foreign insertions
INSERTION_BASES = ("A", "C", "T", "G")


# =============================================================================
# Complement and Reverse Complement
# =============================================================================


def complement(sequence: str) -> str:
    """Get the complement of a DNA sequence.

    Args:
        sequence: DNA sequence string.

    Returns:
        Complement sequence.
    """
    return sequence.translate(COMPLEMENT_TABLE)


def reverse_complement(sequence: str) -> str:
    """Get the reverse complement of a DNA sequence.

    Handles IUPAC ambiguity codes and preserves case.

    Args:
        sequence: DNA sequence string.

    Returns:
        Reverse complement sequence.
    """
    return complement(sequence)[::-1]


# =============================================================================
# Random Sequences
# =============================================================================


def random_sequence(max_length: int, rng: np.random.Generator) -> str:
    """Generate a random nucleotide sequence of random length.

    The length is drawn uniformly from 1 to max_length inclusive.

    Args:
        max_length: Maximum sequence length (>= 1).
        rng: Random number generator.

    Returns:
        Sequence over A, C, G and T.

    Raises:
        ValueError: If max_length is less than 1.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be at least 1, got {max_length}")

    length = int(rng.integers(1, max_length + 1))
    return "".join(rng.choice(INSERTION_BASES, size=length))
