"""Configuration management for FusionForge.

Settings come from defaults, an optional TOML file and command-line
options, in increasing order of precedence. The TOML tables mirror the
configuration sections:

    seed = 42

    [depth]
    rpkm_cutoff = 0.2
    threads = 4

    [selection]
    method = "binned"
    limit = ["TP53", "BRCA1", "EGFR"]

    [fusion]
    hybrid = 10
    read_through = 2
    cds_only = true

Example:
    >>> from fusionforge.config import Config
    >>> config = Config.load("fusionforge.toml")
    >>> config.depth.threads
    4
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

import attrs

from fusionforge.core.breakpoints import FRAME_SPLIT_MODES
from fusionforge.core.models import FusionType
from fusionforge.core.sampling import SelectionMethod
from fusionforge.errors import ConfigurationError

# =============================================================================
# Default Configuration Values
# =============================================================================

# Background read depth
DEFAULT_RPKM_CUTOFF = 0.2
DEFAULT_THREADS = 1
DEFAULT_QUEUE_SIZE = 1000
DEFAULT_POLL_TIMEOUT = 0.1  # Seconds

# Gene selection
DEFAULT_SELECTION_METHOD = "uniform"

# Fusion generation
DEFAULT_HYBRID_FUSIONS = 5
DEFAULT_FRAME_SPLIT = "random"
DEFAULT_FOREIGN_INSERTION_FRACTION = 0.0
DEFAULT_FOREIGN_INSERTION_MAX_LENGTH = 10

MAX_SLOT_FILTERS = 3


# =============================================================================
# Configuration Classes
# =============================================================================


@attrs.define
class DepthConfig:
    """Configuration for background read-depth estimation.

    Attributes:
        rpkm_cutoff: Transcripts at or below this RPKM are not selected.
        threads: Threads for the read-depth pipeline.
        queue_size: Capacity of the transcript queue.
        poll_timeout: Queue wait in seconds before re-checking shutdown.
    """

    rpkm_cutoff: float = DEFAULT_RPKM_CUTOFF
    threads: int = DEFAULT_THREADS
    queue_size: int = DEFAULT_QUEUE_SIZE
    poll_timeout: float = DEFAULT_POLL_TIMEOUT

    def validate(self) -> None:
        if self.rpkm_cutoff < 0:
            raise ConfigurationError(f"RPKM cutoff must be >= 0, got {self.rpkm_cutoff}")
        if self.threads < 1:
            raise ConfigurationError(f"threads must be >= 1, got {self.threads}")
        if self.queue_size < 1:
            raise ConfigurationError(f"queue_size must be >= 1, got {self.queue_size}")
        if self.poll_timeout <= 0:
            raise ConfigurationError(f"poll_timeout must be > 0, got {self.poll_timeout}")


@attrs.define
class SelectionConfig:
    """Configuration for gene selection.

    Attributes:
        method: uniform, binned, empirical or empirical-sturges.
        limit: Gene or transcript ids every slot is restricted to.
        slot_filters: Identifier lists per slot (gene 1 to 3).
    """

    method: str = DEFAULT_SELECTION_METHOD
    limit: list[str] = attrs.Factory(list)
    slot_filters: list[list[str]] = attrs.Factory(list)

    def validate(self) -> None:
        SelectionMethod.from_string(self.method)
        if len(self.slot_filters) > MAX_SLOT_FILTERS:
            raise ConfigurationError(
                f"At most {MAX_SLOT_FILTERS} slot filters allowed, got {len(self.slot_filters)}"
            )


@attrs.define
class FusionConfig:
    """Configuration for fusion generation.

    Attributes:
        hybrid: Number of hybrid fusions.
        self_fusions: Number of self fusions.
        tri_fusions: Number of tri-fusions.
        intra_chromosome: Number of intra-chromosome fusions.
        read_through: Number of read-through fusions.
        cds_only: Break within coding exons only.
        auto_correct_orientation: Flip sides on the opposite strand.
        keep_exon_boundary: Break on in-frame exon boundaries.
        symmetrical_exons: Only split next to exons of whole codons.
        out_of_frame: Allow frame-shifting junctions.
        frame_split: Frame fixup offset rule, random or half.
        foreign_insertion_fraction: Probability of a foreign insertion.
        foreign_insertion_max_length: Maximum foreign insertion length.
        skip_haplotype_chroms: Ignore chromosomes whose names contain "_".
    """

    hybrid: int = DEFAULT_HYBRID_FUSIONS
    self_fusions: int = 0
    tri_fusions: int = 0
    intra_chromosome: int = 0
    read_through: int = 0
    cds_only: bool = False
    auto_correct_orientation: bool = False
    keep_exon_boundary: bool = False
    symmetrical_exons: bool = False
    out_of_frame: bool = False
    frame_split: str = DEFAULT_FRAME_SPLIT
    foreign_insertion_fraction: float = DEFAULT_FOREIGN_INSERTION_FRACTION
    foreign_insertion_max_length: int = DEFAULT_FOREIGN_INSERTION_MAX_LENGTH
    skip_haplotype_chroms: bool = True

    def counts(self) -> dict[FusionType, int]:
        """Requested events per fusion type."""
        return {
            FusionType.HYBRID: self.hybrid,
            FusionType.SELF_FUSION: self.self_fusions,
            FusionType.TRI_FUSION: self.tri_fusions,
            FusionType.INTRA_CHROMOSOME: self.intra_chromosome,
            FusionType.READ_THROUGH: self.read_through,
        }

    def validate(self) -> None:
        for fusion_type, n in self.counts().items():
            if n < 0:
                raise ConfigurationError(f"Number of {fusion_type} fusions must be >= 0, got {n}")
        if sum(self.counts().values()) == 0:
            raise ConfigurationError("No fusions requested")
        if self.frame_split not in FRAME_SPLIT_MODES:
            raise ConfigurationError(
                f"frame_split must be one of {', '.join(FRAME_SPLIT_MODES)}, got '{self.frame_split}'"
            )
        if not 0.0 <= self.foreign_insertion_fraction <= 1.0:
            raise ConfigurationError(
                f"foreign_insertion_fraction must be in [0, 1], "
                f"got {self.foreign_insertion_fraction}"
            )
        if self.foreign_insertion_max_length < 1:
            raise ConfigurationError(
                f"foreign_insertion_max_length must be >= 1, "
                f"got {self.foreign_insertion_max_length}"
            )


@attrs.define
class Config:
    """Main configuration container for FusionForge.

    Attributes:
        depth: Background read-depth configuration.
        selection: Gene selection configuration.
        fusion: Fusion generation configuration.
        seed: Random seed; None draws fresh entropy.
    """

    depth: DepthConfig = attrs.Factory(DepthConfig)
    selection: SelectionConfig = attrs.Factory(SelectionConfig)
    fusion: FusionConfig = attrs.Factory(FusionConfig)
    seed: int | None = None

    def validate(self) -> None:
        """Check every section.

        Raises:
            ConfigurationError: If any setting is invalid.
        """
        self.depth.validate()
        self.selection.validate()
        self.fusion.validate()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Build a configuration from nested dictionaries.

        Raises:
            ConfigurationError: On unknown sections or keys.
        """
        sections = {"depth": DepthConfig, "selection": SelectionConfig, "fusion": FusionConfig}
        kwargs: dict[str, Any] = {}
        for key, value in data.items():
            if key == "seed":
                kwargs["seed"] = None if value is None else int(value)
            elif key in sections:
                if not isinstance(value, dict):
                    raise ConfigurationError(f"[{key}] must be a table")
                try:
                    kwargs[key] = sections[key](**value)
                except TypeError as e:
                    raise ConfigurationError(f"Invalid key in [{key}]: {e}") from e
            else:
                raise ConfigurationError(f"Unknown configuration section '{key}'")
        return cls(**kwargs)

    @classmethod
    def load(cls, path: Path | str | None = None) -> Config:
        """Load configuration from a TOML file.

        Args:
            path: Path to the TOML file. If None, returns defaults.

        Returns:
            Loaded configuration object.

        Raises:
            ConfigurationError: If the file is missing or invalid.
        """
        if path is None:
            return cls()

        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e
        return cls.from_dict(data)

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to dictionary.

        Returns:
            Dictionary representation of configuration.
        """
        return attrs.asdict(self)
