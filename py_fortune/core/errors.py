"""Exceptions and defect records raised or collected while building a diagram."""

from dataclasses import dataclass, field
from typing import Tuple


class VoronoiError(Exception):
    """Base class for all diagram construction errors."""


class InvalidSitesError(VoronoiError, ValueError):
    """Input sites are empty, malformed, non-finite or duplicated."""


class BeachlineError(VoronoiError):
    """The arc chain is broken or an arc handle is not active."""


class UnboundEdgeError(VoronoiError):
    """An edge finished the sweep without any vertex although the diagram has vertices."""

    def __init__(self, sites: Tuple[int, int], message: str = ""):
        self.sites = sites
        super().__init__(message or f"Edge between sites {sites[0]} and {sites[1]} has no vertex")


class IterationLimitError(VoronoiError):
    """More events were processed than any valid input can produce."""


@dataclass(frozen=True)
class Defect:
    """A local invariant violation recorded instead of raised (non-strict mode)."""

    kind: str
    message: str
    sites: Tuple[int, ...] = field(default_factory=tuple)

    @classmethod
    def from_error(cls, error: VoronoiError) -> "Defect":
        return cls(
            kind=type(error).__name__,
            message=str(error),
            sites=tuple(getattr(error, "sites", ())),
        )
