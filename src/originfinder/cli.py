"""OriginFinder CLI.

This is the entry point used by:
- `python -m originfinder`
- the console script `originfinder` (installed via pyproject.toml)

Example
-------
originfinder --targets "./edited" --search "/backup/Camera Uploads" --out "./search-results"

Each target that is matched is moved into ``<targets>/found`` and its
original is copied into the output folder. A CSV report of every target is
written to the output folder.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .config import DATE_POLICIES, MS_PER_DAY, SAMPLE_ROWS, MatchConfig
from .engine import match
from .errors import DimensionMismatchError
from .io_utils import copy_into, list_images, move_into, write_mapping_csv, write_mapping_xlsx
from .records import ImageRecord, build_records

logger = logging.getLogger(__name__)


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        prog="originfinder",
        description=(
            "Find the original of each target image in one or more search folders, "
            "trying candidates closest in capture date first."
        ),
    )
    p.add_argument("--targets", required=True, type=Path, help="Folder of images to find originals for.")
    p.add_argument(
        "--search",
        required=True,
        type=Path,
        action="append",
        help="Folder to search for originals. Repeat for several folders.",
    )
    p.add_argument("--out", required=True, type=Path, help="Output folder for the matched originals.")
    p.add_argument("--recursive", action="store_true", help="Also scan subfolders of the search folders.")
    p.add_argument(
        "--max-days",
        type=float,
        default=None,
        help="Only consider candidates within this many days of the target (default: unbounded).",
    )
    p.add_argument(
        "--max-candidates",
        type=int,
        default=100,
        help="Maximum candidates compared per target (default: 100).",
    )
    p.add_argument(
        "--threshold",
        type=float,
        default=0.1,
        help="Match when fewer than this share of sampled pixels differ (default: 0.1).",
    )
    p.add_argument(
        "--pixel-tolerance",
        type=float,
        default=0.2,
        help="Per-pixel colour tolerance between 0 and 1 (default: 0.2).",
    )
    p.add_argument(
        "--dimension",
        type=int,
        default=480,
        help="Canonical square size images are resized to (default: 480).",
    )
    p.add_argument(
        "--sample-rows",
        choices=SAMPLE_ROWS,
        default="key",
        help="Rows kept in each fingerprint (default: key = top, middle and bottom).",
    )
    p.add_argument(
        "--date-policy",
        choices=DATE_POLICIES,
        default="strict",
        help="strict: undated images stay undated; lenient: treat them as taken now.",
    )
    p.add_argument("--multi-match", action="store_true", help="Keep every accepted candidate, not just the first.")
    p.add_argument(
        "--workers",
        type=int,
        default=0,
        help="Worker processes for reading images (default: 0 = auto). Use 1 to disable multiprocessing.",
    )
    p.add_argument("--report-xlsx", action="store_true", help="Also write mapping.xlsx (requires openpyxl).")
    p.add_argument("--dry-run", action="store_true", help="Do not move/copy files; only generate the report.")
    p.add_argument("-v", "--verbose", action="store_true", help="Log per-target progress.")
    return p.parse_args(argv)


def _config_from_args(args: argparse.Namespace) -> MatchConfig:
    window = None if args.max_days is None else args.max_days * MS_PER_DAY
    try:
        return MatchConfig(
            max_date_window_ms=window,
            max_candidates_per_target=args.max_candidates,
            similarity_threshold=args.threshold,
            canonical_dimension=args.dimension,
            date_policy=args.date_policy,
            pixel_tolerance=args.pixel_tolerance,
            sample_rows=args.sample_rows,
            multi_match=args.multi_match,
        )
    except ValueError as e:
        raise SystemExit(f"Invalid option: {e}")


def _existing_dir(path: Path, flag: str) -> Path:
    path = path.expanduser().resolve()
    if not path.exists() or not path.is_dir():
        raise SystemExit(f"{flag} must be an existing folder: {path}")
    return path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run OriginFinder.

    Returns
    -------
    int
        Process exit code (0 success).
    """
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = _config_from_args(args)

    targets_dir = _existing_dir(args.targets, "--targets")
    search_dirs = [_existing_dir(d, "--search") for d in args.search]
    out_dir: Path = args.out.expanduser().resolve()
    found_dir = targets_dir / "found"
    out_dir.mkdir(parents=True, exist_ok=True)

    # 1) Read targets and candidates
    target_paths = list_images(targets_dir)
    candidate_paths: List[Path] = []
    for d in search_dirs:
        candidate_paths.extend(list_images(d, recursive=args.recursive))
    logger.info(f"Searching for originals of {len(target_paths)} images among {len(candidate_paths)}")

    targets = build_records(target_paths, config, workers=args.workers, desc="Reading targets")
    if not targets.records:
        raise SystemExit("No target images found. Check extensions and permissions.")
    candidates = build_records(candidate_paths, config, workers=args.workers, desc="Reading candidates")

    # 2) Match, moving/copying as each target is matched
    placed: Dict[Path, Tuple[str, str]] = {}

    def handle_match(target: ImageRecord, found: Tuple[ImageRecord, ...]) -> None:
        names = ", ".join(c.identity.name for c in found)
        print(f"MATCHED {target.identity.name} with {names}")
        if args.dry_run:
            return
        moved = move_into(target.identity, found_dir)
        copied = [copy_into(c.identity, out_dir) for c in found]
        placed[target.identity] = (str(moved), ";".join(str(c) for c in copied))

    try:
        report = match(targets.records, candidates.records, config, on_match=handle_match)
    except DimensionMismatchError as e:
        raise SystemExit(f"Fingerprint configuration mismatch: {e}")

    # 3) Reports
    rows = []
    for o in report.outcomes:
        moved_to, copied_to = placed.get(o.target, ("", ""))
        rows.append(
            {
                "target": str(o.target),
                "matches": ";".join(str(m) for m in o.matches),
                "status": o.status,
                "diff_ratio": f"{o.diff_ratio:.4f}" if o.diff_ratio is not None else "",
                "compared": o.compared,
                "moved_to": moved_to,
                "copied_to": copied_to,
            }
        )

    # Undecodable candidates and targets are already listed by build_records.
    unreadable = {e.identity for e in targets.errors + candidates.errors}
    errors = targets.errors + candidates.errors + [e for e in report.errors if e.identity not in unreadable]
    for e in errors:
        logger.warning(f"{e.kind}: {e.identity}: {e.message}")

    out_csv = out_dir / "mapping.csv"
    write_mapping_csv(rows, out_csv)

    if args.report_xlsx:
        ok = write_mapping_xlsx(rows, out_dir / "mapping.xlsx")
        if not ok:
            print(
                "Note: openpyxl is not installed, so mapping.xlsx was not created. "
                "Install with: pip install originfinder[report]"
            )

    print(f"\nDone. Matched: {len(report.matched)} | Not matched: {len(report.unmatched)} | Errors: {len(errors)}")
    print(f"Report: {out_csv}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
