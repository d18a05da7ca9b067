"""Run configuration for OriginFinder.

A :class:`MatchConfig` is built once per run (usually from CLI arguments)
and passed explicitly to :func:`originfinder.records.build_record` and
:func:`originfinder.engine.match`.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Optional


DATE_POLICIES = ("strict", "lenient")

# "first" is the top row only, "key" adds the middle and bottom rows,
# "full" keeps the whole canonical image.
SAMPLE_ROWS = ("first", "key", "full")

MS_PER_DAY = 24 * 60 * 60 * 1000


@dataclass(frozen=True)
class MatchConfig:
    """Settings shared by every stage of a run."""

    max_date_window_ms: Optional[float] = None
    max_candidates_per_target: int = 100
    similarity_threshold: float = 0.1
    canonical_dimension: int = 480
    date_policy: str = "strict"
    pixel_tolerance: float = 0.2
    sample_rows: str = "key"
    multi_match: bool = False

    def __post_init__(self) -> None:
        if self.max_date_window_ms is not None and self.max_date_window_ms < 0:
            raise ValueError(f"max_date_window_ms must be >= 0, got {self.max_date_window_ms}")
        if self.max_candidates_per_target < 1:
            raise ValueError(
                f"max_candidates_per_target must be >= 1, got {self.max_candidates_per_target}"
            )
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        if self.canonical_dimension < 1:
            raise ValueError(f"canonical_dimension must be >= 1, got {self.canonical_dimension}")
        if self.date_policy not in DATE_POLICIES:
            raise ValueError(f"Unknown date policy: {self.date_policy!r}. Use strict|lenient.")
        if not 0.0 <= self.pixel_tolerance <= 1.0:
            raise ValueError(f"pixel_tolerance must be within [0, 1], got {self.pixel_tolerance}")
        if self.sample_rows not in SAMPLE_ROWS:
            raise ValueError(f"Unknown row strategy: {self.sample_rows!r}. Use first|key|full.")

    @property
    def max_date_window(self) -> Optional[timedelta]:
        """The date window as a ``timedelta`` (``None`` means unbounded)."""
        if self.max_date_window_ms is None:
            return None
        return timedelta(milliseconds=self.max_date_window_ms)
