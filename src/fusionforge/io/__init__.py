"""Input/output handlers for FusionForge.

This module provides readers and writers for the file formats used by
the simulator:

- refFlat: Gene model files
- GTF/GFF3: Annotation files converted to refFlat
- FASTA: Reference genome sequence
- BAM: Background alignments for read-depth estimation
- Fusions: Text and FASTA fusion output

Example:
    >>> from fusionforge.io import iter_refflat, GenomeAccessor
    >>> transcripts = list(iter_refflat("refFlat.txt"))
    >>> genome = GenomeAccessor("hg19.fa")
"""

from fusionforge.io.bam import AlignmentSource
from fusionforge.io.fasta import GenomeAccessor
from fusionforge.io.fusions import FusionWriter
from fusionforge.io.gtf import iter_gtf_transcripts
from fusionforge.io.refflat import iter_refflat, read_refflat, write_refflat

__all__ = [
    "AlignmentSource",
    "FusionWriter",
    "GenomeAccessor",
    "iter_gtf_transcripts",
    "iter_refflat",
    "read_refflat",
    "write_refflat",
]
