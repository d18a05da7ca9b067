"""Error types for OriginFinder.

Per-item failures (one image, one target) are captured as :class:`ItemError`
entries and returned alongside results. Only configuration-level problems,
such as fingerprints produced with different canonical dimensions, abort a
run.
"""

from __future__ import annotations

from dataclasses import dataclass


class OriginFinderError(Exception):
    """Base class for all OriginFinder errors."""


class DecodeError(OriginFinderError):
    """An image could not be opened or decoded."""


class DimensionMismatchError(OriginFinderError):
    """Two fingerprints were produced with different extraction settings."""


class UnfingerprintableTarget(OriginFinderError):
    """A target has no fingerprint and therefore cannot be matched."""


class DateResolutionAmbiguous(OriginFinderError):
    """A date-like pattern was found but does not name a real calendar date."""


@dataclass(frozen=True)
class ItemError:
    """One recorded per-item failure."""

    identity: str
    kind: str  # exception class name, e.g. "DecodeError"
    message: str

    @classmethod
    def from_exception(cls, identity, exc: BaseException) -> "ItemError":
        return cls(identity=str(identity), kind=type(exc).__name__, message=str(exc))
