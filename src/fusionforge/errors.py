"""Exception hierarchy for FusionForge.

Errors fall into three groups:

- Configuration errors are raised before any work starts.
- Input-data errors concern a single fusion event; the simulator records
  the event as skipped and carries on.
- Resource errors (unreadable files, failed read-depth workers) abort
  the run.
"""

from __future__ import annotations


class FusionForgeError(Exception):
    """Base class for all FusionForge errors."""


class ConfigurationError(FusionForgeError, ValueError):
    """Invalid settings, rejected before any fusions are generated."""


class InputDataError(FusionForgeError):
    """A problem with the data behind a single fusion event."""


class GeneModelError(InputDataError):
    """A gene model record could not be parsed."""


class BreakpointError(InputDataError):
    """No breakpoint satisfying the requested constraints exists."""


class ResourceError(FusionForgeError):
    """An input file or worker could not be used."""


class DepthEstimationError(ResourceError):
    """The read-depth pipeline failed.

    Attributes:
        failures: One message per failed producer or consumer.
    """

    def __init__(self, message: str, failures: list[str] | None = None) -> None:
        super().__init__(message)
        self.failures = failures or []

    def __str__(self) -> str:
        if not self.failures:
            return self.args[0]
        return f"{self.args[0]}: {'; '.join(self.failures)}"


class NoFusionsProducedError(FusionForgeError):
    """Every requested fusion event was skipped."""
