"""Core fusion simulation logic.

This module contains the gene selection and breakpoint assembly engine:

- models: Transcript, FusionGene and related enums
- depth: Concurrent RPKM estimation against a background BAM
- selectors: Static and background-scored gene selectors
- sampling: Uniform, binned and empirical selection methods
- breakpoints: Random and frame-preserving exon breakpoints
- assemble: Fusion assembly for the five fusion topologies

Example:
    >>> from fusionforge.core import FusionSimulator, StaticSelector
    >>> selector = StaticSelector(transcripts)
    >>> result = FusionSimulator(selector).run()
"""

from fusionforge.core.assemble import (
    FusionAssembler,
    FusionSimulator,
    SimulationResult,
    SkippedEvent,
)
from fusionforge.core.breakpoints import (
    boundary_break,
    fix_frame,
    random_break,
    valid_boundary_breaks,
)
from fusionforge.core.depth import ReadDepthEstimator, rpkm
from fusionforge.core.models import (
    DepthSample,
    FusionGene,
    FusionOption,
    FusionType,
    Strand,
    Transcript,
)
from fusionforge.core.sampling import SelectionBin, SelectionMethod, SelectionSampler
from fusionforge.core.selectors import (
    BackgroundSelector,
    GeneSelector,
    StaticSelector,
    TranscriptFilter,
)

__all__ = [
    # Models
    "DepthSample",
    "FusionGene",
    "FusionOption",
    "FusionType",
    "Strand",
    "Transcript",
    # Read depth
    "ReadDepthEstimator",
    "rpkm",
    # Selection
    "BackgroundSelector",
    "GeneSelector",
    "StaticSelector",
    "TranscriptFilter",
    "SelectionBin",
    "SelectionMethod",
    "SelectionSampler",
    # Breakpoints
    "boundary_break",
    "fix_frame",
    "random_break",
    "valid_boundary_breaks",
    # Assembly
    "FusionAssembler",
    "FusionSimulator",
    "SimulationResult",
    "SkippedEvent",
]
