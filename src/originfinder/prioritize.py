"""Date-based ordering of search candidates.

Candidates closest in time to the target are tried first. The order is
part of the matching result: the engine accepts the first candidate that
clears the similarity threshold.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from .records import ImageRecord

DEFAULT_MAX_CANDIDATES = 100


def date_distance(target_date: datetime, candidate: ImageRecord) -> float:
    """Absolute distance in seconds; ``inf`` when the candidate is undated."""
    if candidate.resolved_date is None:
        return math.inf
    return abs((target_date - candidate.resolved_date).total_seconds())


def prioritize(
    target_date: Optional[datetime],
    candidates: Sequence[ImageRecord],
    max_window: Optional[timedelta] = None,
    max_count: int = DEFAULT_MAX_CANDIDATES,
) -> List[ImageRecord]:
    """Order *candidates* by date proximity to *target_date*.

    Parameters
    ----------
    target_date:
        Resolved date of the target. When ``None`` the candidates keep
        their input order and no window applies.
    candidates:
        The full candidate pool.
    max_window:
        Drop candidates further than this from the target. Undated
        candidates are dropped too when a window is set.
    max_count:
        Keep at most this many candidates after sorting.

    Returns
    -------
    list[ImageRecord]
        Closest first. Ties keep their pool order (the sort is stable);
        undated candidates come last.
    """

    if target_date is None:
        return list(candidates[:max_count])

    limit = math.inf if max_window is None else max_window.total_seconds()
    scored = []
    for c in candidates:
        d = date_distance(target_date, c)
        if d <= limit:
            scored.append((d, c))

    scored.sort(key=lambda pair: pair[0])
    return [c for _, c in scored[:max_count]]
