"""Matching logic for OriginFinder.

Given:
- a list of target image records (e.g. edited exports), and
- a list of candidate image records (e.g. a camera-roll backup)

we find, for each target, the first candidate in date order whose
fingerprint is similar enough. Each target moves from *pending* to either
*matched* or *exhausted*; both are final for the run.
"""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .comparison import compare
from .config import MatchConfig
from .errors import ItemError, UnfingerprintableTarget
from .prioritize import prioritize
from .records import ImageRecord

logger = logging.getLogger(__name__)

MATCHED = "matched"
EXHAUSTED = "exhausted"
UNFINGERPRINTABLE = "unfingerprintable"

MatchHandler = Callable[[ImageRecord, Tuple[ImageRecord, ...]], None]


@dataclass(frozen=True)
class TargetOutcome:
    """Final state of one target."""

    target: Path
    status: str  # "matched" | "exhausted" | "unfingerprintable"
    matches: Tuple[Path, ...] = ()
    diff_ratio: Optional[float] = None  # of the first accepted match
    compared: int = 0


class ResultCollector:
    """Append-only map from target to its matched candidates.

    Each target owns one slot, written once. Insertion is lock-guarded so
    targets can be processed from several threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: Dict[Path, Tuple[Path, ...]] = {}

    def record(self, target: Path, matches: Sequence[Path]) -> None:
        with self._lock:
            if target in self._results:
                raise KeyError(f"Result for {target} already recorded")
            self._results[target] = tuple(matches)

    def __contains__(self, target: Path) -> bool:
        with self._lock:
            return target in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def snapshot(self) -> Dict[Path, Tuple[Path, ...]]:
        with self._lock:
            return dict(self._results)


@dataclass
class MatchReport:
    """Everything a run produced."""

    results: Dict[Path, Tuple[Path, ...]] = field(default_factory=dict)
    outcomes: List[TargetOutcome] = field(default_factory=list)
    errors: List[ItemError] = field(default_factory=list)
    cancelled: bool = False

    @property
    def matched(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.status == MATCHED]

    @property
    def unmatched(self) -> List[TargetOutcome]:
        return [o for o in self.outcomes if o.status != MATCHED]


def match_target(
    target: ImageRecord,
    candidates: Sequence[ImageRecord],
    config: MatchConfig,
) -> TargetOutcome:
    """Walk the prioritized candidates for one target.

    Stops at the first accepted candidate unless ``config.multi_match`` is
    set, in which case every accepted candidate is kept, closest first.

    Raises
    ------
    UnfingerprintableTarget
        If the target has no fingerprint.
    DimensionMismatchError
        If target and candidate fingerprints have different dimensions.
    """

    if target.fingerprint is None:
        raise UnfingerprintableTarget(f"{target.identity} has no fingerprint")

    ordered = prioritize(
        target.resolved_date,
        candidates,
        max_window=config.max_date_window,
        max_count=config.max_candidates_per_target,
    )
    logger.debug(f"Searching for {target.identity} among {len(ordered)} candidates")

    matches: List[Path] = []
    first_ratio = None
    compared = 0
    for cand in ordered:
        res = compare(
            target.fingerprint,
            cand.fingerprint,
            threshold=config.similarity_threshold,
            tolerance=config.pixel_tolerance,
        )
        compared += 1
        if not res.is_match:
            continue
        logger.debug(f"Matched {target.identity} with {cand.identity} ({res.diff_ratio:.3f})")
        matches.append(cand.identity)
        if first_ratio is None:
            first_ratio = res.diff_ratio
        if not config.multi_match:
            break

    if matches:
        return TargetOutcome(target.identity, MATCHED, tuple(matches), first_ratio, compared)
    return TargetOutcome(target.identity, EXHAUSTED, compared=compared)


def match(
    targets: Sequence[ImageRecord],
    candidates: Sequence[ImageRecord],
    config: Optional[MatchConfig] = None,
    on_match: Optional[MatchHandler] = None,
    cancel: Optional[threading.Event] = None,
    workers: int = 1,
) -> MatchReport:
    """Find the original of each target among *candidates*.

    Parameters
    ----------
    targets:
        Records of the images to find originals for.
    candidates:
        Records of the search pool. Candidates without a fingerprint are
        excluded and reported once in :attr:`MatchReport.errors`.
    config:
        Run configuration; defaults to :class:`MatchConfig()`.
    on_match:
        Called once per matched target with the target record and its
        matched candidate records. An ``OSError`` it raises (a failed move
        or copy) is recorded in :attr:`MatchReport.errors`; the target
        stays matched and the run continues.
    cancel:
        When set, no further targets are started. Targets already finished
        keep their results.
    workers:
        Number of threads processing targets. Candidate order within a
        target is sequential regardless.

    Returns
    -------
    MatchReport
        Outcomes in target order. Running again with the same inputs gives
        the same report.

    Raises
    ------
    DimensionMismatchError
        If any two compared fingerprints have different dimensions.
    """

    config = config or MatchConfig()
    report = MatchReport()
    collector = ResultCollector()

    pool: List[ImageRecord] = []
    for cand in candidates:
        if cand.fingerprint is None:
            report.errors.append(
                ItemError(str(cand.identity), "DecodeError", "candidate has no fingerprint; excluded")
            )
        else:
            pool.append(cand)
    by_identity = {c.identity: c for c in pool}

    unique_targets: List[ImageRecord] = []
    seen = set()
    for t in targets:
        if t.identity in seen:
            logger.warning(f"Ignoring duplicate target {t.identity}")
            continue
        seen.add(t.identity)
        unique_targets.append(t)

    def run_one(target: ImageRecord) -> Tuple[Optional[TargetOutcome], Optional[ItemError]]:
        if cancel is not None and cancel.is_set():
            return None, None
        try:
            outcome = match_target(target, pool, config)
        except UnfingerprintableTarget as e:
            logger.warning(f"Cannot match {target.identity}: {e}")
            return TargetOutcome(target.identity, UNFINGERPRINTABLE), ItemError.from_exception(target.identity, e)
        if outcome.status == MATCHED:
            collector.record(target.identity, outcome.matches)
            if on_match is not None:
                try:
                    on_match(target, tuple(by_identity[m] for m in outcome.matches))
                except OSError as e:
                    logger.warning(f"Handling match for {target.identity} failed: {e}")
                    return outcome, ItemError.from_exception(target.identity, e)
        return outcome, None

    if workers == 1:
        done = [run_one(t) for t in unique_targets]
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers or None) as ex:
            done = list(ex.map(run_one, unique_targets))

    for outcome, error in done:
        if outcome is None:
            report.cancelled = True
            continue
        report.outcomes.append(outcome)
        if error is not None:
            report.errors.append(error)

    # Rebuild in target order; threads may have recorded out of order.
    recorded = collector.snapshot()
    report.results = {o.target: recorded[o.target] for o in report.outcomes if o.target in recorded}
    logger.info(
        f"Matching complete: {len(report.matched)} matched, "
        f"{len(report.unmatched)} unmatched, {len(report.errors)} errors"
    )
    return report
