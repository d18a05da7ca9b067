"""Similarity comparison between fingerprints.

Two samples (RGBA pixels) differ when their perceptual colour distance, in
YIQ space after blending alpha onto white, exceeds a per-pixel tolerance.
This is the metric used by pixelmatch-style image diff tools; a tolerance
of 0.2 ignores JPEG noise and mild colour grading.

``diff_ratio`` is the share of differing samples, and a pair matches when
the ratio is zero or below the match threshold.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import DimensionMismatchError
from .fingerprint import CHANNELS, Fingerprint

# 35215 is the largest possible YIQ delta between two 8-bit colours.
MAX_YIQ_DELTA = 35215.0


@dataclass(frozen=True)
class Comparison:
    """Outcome of comparing two fingerprints."""

    is_match: bool
    diff_ratio: float
    diff_count: int


def _to_yiq(samples: bytes) -> np.ndarray:
    px = np.frombuffer(samples, dtype=np.uint8).reshape(-1, CHANNELS).astype(np.float64)
    alpha = px[:, 3:4] / 255.0
    rgb = 255.0 + (px[:, :3] - 255.0) * alpha
    r, g, b = rgb[:, 0], rgb[:, 1], rgb[:, 2]
    y = r * 0.29889531 + g * 0.58662247 + b * 0.11448223
    i = r * 0.59597799 - g * 0.27417610 - b * 0.32180189
    q = r * 0.21147017 - g * 0.52261711 + b * 0.31114694
    return np.stack([y, i, q], axis=1)


def count_different_samples(a: Fingerprint, b: Fingerprint, tolerance: float = 0.2) -> int:
    """Count samples whose colour distance exceeds *tolerance* (0..1)."""

    if (a.width, a.height) != (b.width, b.height):
        raise DimensionMismatchError(
            f"Cannot compare a {a.width}x{a.height} fingerprint with a {b.width}x{b.height} one"
        )
    if a.samples == b.samples:
        return 0

    ya = _to_yiq(a.samples)
    yb = _to_yiq(b.samples)
    d = ya - yb
    delta = 0.5053 * d[:, 0] ** 2 + 0.299 * d[:, 1] ** 2 + 0.1957 * d[:, 2] ** 2
    max_delta = MAX_YIQ_DELTA * tolerance * tolerance
    return int(np.count_nonzero(delta > max_delta))


def compare(
    target: Fingerprint,
    candidate: Fingerprint,
    threshold: float = 0.1,
    tolerance: float = 0.2,
) -> Comparison:
    """Compare two fingerprints and decide whether they match.

    Parameters
    ----------
    target, candidate:
        Fingerprints produced with the same extraction settings.
    threshold:
        Maximum share of differing samples for a match (exclusive).
    tolerance:
        Per-sample colour tolerance, see :func:`count_different_samples`.

    Raises
    ------
    DimensionMismatchError
        If the fingerprints have different dimensions.
    """

    diff_count = count_different_samples(target, candidate, tolerance)
    diff_ratio = diff_count / target.pixel_count if target.pixel_count else 0.0
    is_match = diff_count == 0 or diff_ratio < threshold
    return Comparison(is_match=is_match, diff_ratio=diff_ratio, diff_count=diff_count)
