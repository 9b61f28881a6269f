"""FusionForge: synthetic fusion-gene transcripts for benchmarking.

FusionForge selects source transcripts from a gene model (optionally
weighted by read depth in a background BAM file), computes exon-level
breakpoints under reading-frame and exon-boundary constraints, and
assembles chimeric transcripts as annotated text or FASTA records.

Example:
    >>> import fusionforge
    >>> fusionforge.__version__
    '0.1.0'

Modules:
    core: Transcript models, read depth, selection, breakpoints, assembly
    io: refFlat, GTF/GFF3, BAM, FASTA and fusion record handlers
    utils: Logging and sequence utilities
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
