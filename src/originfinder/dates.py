"""Capture-date resolution.

A date comes from embedded metadata when it is present and well formed,
otherwise from a ``YYYY-MM-DD`` pattern in the file path. Underscores count
as dashes, so ``2019_03_12`` matches too. When the path holds several dates
the last one wins: a date in the file name is more specific than one in a
parent folder.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, Optional, Union

from .errors import DateResolutionAmbiguous

logger = logging.getLogger(__name__)

PATH_DATE_RE = re.compile(r"\d{4}-\d\d-\d\d")

# EXIF stores "YYYY:MM:DD HH:MM:SS"; some tools write dashes or a "T".
EMBEDDED_DATE_FORMATS = (
    "%Y:%m:%d %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%Y:%m:%d",
    "%Y-%m-%d",
)

EmbeddedDate = Union[datetime, str, None]


def parse_embedded_date(value: EmbeddedDate) -> Optional[datetime]:
    """Normalise an embedded date to a naive ``datetime``.

    Returns ``None`` for missing, blank or malformed values (e.g. the
    ``0000:00:00 00:00:00`` placeholder some cameras write).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)

    text = str(value).strip().rstrip("\x00")
    if not text:
        return None
    # Sub-second and offset suffixes are not part of the base formats.
    text = text.split(".")[0][:19]
    for fmt in EMBEDDED_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None


def date_from_path(path) -> Optional[datetime]:
    """Return the last ``YYYY-MM-DD`` date found in *path*, or ``None``.

    Raises
    ------
    DateResolutionAmbiguous
        If the last date-like match is not a valid calendar date.
    """
    text = str(path).replace("_", "-")
    found = None
    for m in PATH_DATE_RE.finditer(text):
        found = m.group(0)
    if found is None:
        return None
    try:
        return datetime.strptime(found, "%Y-%m-%d")
    except ValueError as e:
        raise DateResolutionAmbiguous(f"{found!r} in {path} is not a valid date") from e


def resolve_date(
    identity,
    embedded: EmbeddedDate = None,
    policy: str = "strict",
    now: Callable[[], datetime] = datetime.now,
) -> Optional[datetime]:
    """Resolve the best-effort capture date of an image.

    Parameters
    ----------
    identity:
        The image path (any object whose ``str()`` is the path).
    embedded:
        Capture date read from metadata, if any.
    policy:
        ``"strict"`` returns ``None`` when no date can be found;
        ``"lenient"`` falls back to ``now()``.
    now:
        Clock used by the lenient fallback.
    """
    dt = parse_embedded_date(embedded)
    if dt is not None:
        return dt

    try:
        dt = date_from_path(identity)
    except DateResolutionAmbiguous as e:
        logger.debug(f"Ignoring path date: {e}")
        dt = None

    if dt is None and policy == "lenient":
        return now().replace(tzinfo=None)
    return dt
