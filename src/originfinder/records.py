"""Image records: everything the matcher needs to know about one file.

Records are built once per run, before matching, and are read-only from
then on. Building is the expensive part of a run (every file is decoded),
so :func:`build_records` can spread it over worker processes.
"""

from __future__ import annotations

import concurrent.futures
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from tqdm import tqdm

from .config import MatchConfig
from .dates import resolve_date
from .errors import DecodeError, ItemError
from .fingerprint import Fingerprint, extract_fingerprint
from .io_utils import decode_image, read_embedded_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageRecord:
    """Resolved date and fingerprint for a single image file."""

    identity: Path
    resolved_date: Optional[datetime]
    fingerprint: Optional[Fingerprint]
    width: int = 0
    height: int = 0


@dataclass
class BuildReport:
    """Records built for a pool, in input order, plus per-file failures."""

    records: List[ImageRecord] = field(default_factory=list)
    errors: List[ItemError] = field(default_factory=list)


def build_record(path: Path, config: MatchConfig) -> ImageRecord:
    """Read the date, decode and fingerprint one image.

    Raises
    ------
    DecodeError
        If the image can't be decoded.
    """

    embedded = read_embedded_date(path)
    resolved = resolve_date(path, embedded, policy=config.date_policy)
    img = decode_image(path, config.canonical_dimension)
    fp = extract_fingerprint(img.pixels, img.width, img.height, strategy=config.sample_rows)
    return ImageRecord(
        identity=path,
        resolved_date=resolved,
        fingerprint=fp,
        width=img.original_width,
        height=img.original_height,
    )


def _build_worker(job: Tuple[Path, MatchConfig]) -> Tuple[ImageRecord, Optional[ItemError]]:
    """Worker: build one record, turning a decode failure into an error entry.

    This function is top-level so it can be pickled on Windows.
    """
    path, config = job
    try:
        return build_record(path, config), None
    except DecodeError as e:
        embedded = read_embedded_date(path)
        record = ImageRecord(
            identity=path,
            resolved_date=resolve_date(path, embedded, policy=config.date_policy),
            fingerprint=None,
        )
        return record, ItemError.from_exception(path, e)


def build_records(
    paths: Sequence[Path],
    config: MatchConfig,
    workers: int = 1,
    desc: Optional[str] = None,
) -> BuildReport:
    """Build records for every path.

    Images that can't be decoded are kept with ``fingerprint=None`` so the
    matcher can exclude or report them; each failure is also listed in
    :attr:`BuildReport.errors`.

    Parameters
    ----------
    paths:
        Image files, in the order records should be returned.
    config:
        Run configuration.
    workers:
        ``1`` builds in-process, ``0`` picks a worker count automatically.
    desc:
        Progress bar label; no progress bar when ``None``.
    """

    report = BuildReport()
    jobs = [(Path(p), config) for p in paths]
    if not jobs:
        return report

    if workers == 1:
        results = map(_build_worker, jobs)
        if desc:
            results = tqdm(results, total=len(jobs), desc=desc, unit="img")
        _collect(report, results)
        return report

    max_workers = None if workers == 0 else max(1, workers)
    with concurrent.futures.ProcessPoolExecutor(max_workers=max_workers) as ex:
        results = ex.map(_build_worker, jobs)
        if desc:
            results = tqdm(results, total=len(jobs), desc=desc, unit="img")
        _collect(report, results)
    return report


def _collect(report: BuildReport, results) -> None:
    for record, error in results:
        report.records.append(record)
        if error is not None:
            logger.warning(f"Skipping {error.identity}: {error.message}")
            report.errors.append(error)
