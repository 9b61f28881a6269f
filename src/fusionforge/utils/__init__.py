"""Utility functions for FusionForge.

This module provides common utilities used across FusionForge:

- Sequence manipulation (reverse complement, random insertions)
- Logging configuration

Example:
    >>> from fusionforge.utils import reverse_complement
    >>> reverse_complement("ATGC")
    'GCAT'
"""

from fusionforge.utils.sequences import (
    complement,
    random_sequence,
    reverse_complement,
)

__all__ = [
    "complement",
    "random_sequence",
    "reverse_complement",
]
