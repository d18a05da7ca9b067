"""I/O helpers for OriginFinder.

This module handles:
- listing image files in target/search folders
- decoding images and reading their embedded capture date (Pillow)
- safe moving/copying of matched files
- report generation (CSV and optional XLSX)
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
import struct
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from PIL import ExifTags, Image

from .dates import parse_embedded_date
from .errors import DecodeError

logger = logging.getLogger(__name__)

# Common extensions in real-world photo pipelines. Add more if you need.
DEFAULT_EXTS = {
    ".jpg",
    ".jpeg",
    ".png",
    ".bmp",
    ".tiff",
    ".tif",
    ".webp",
    ".jfif",
}

REPORT_HEADERS = ["target", "matches", "status", "diff_ratio", "compared", "moved_to", "copied_to"]


@dataclass(frozen=True)
class DecodedImage:
    """RGBA pixels of an image resized to the canonical square."""

    pixels: bytes
    width: int
    height: int
    original_width: int
    original_height: int


def list_images(root: Path, recursive: bool = False, exts: Sequence[str] = tuple(DEFAULT_EXTS)) -> List[Path]:
    """Return image file paths in *root*, sorted by path.

    Parameters
    ----------
    root:
        Folder to scan.
    recursive:
        Also scan subfolders.
    exts:
        File extensions to include. Compared case-insensitively.
    """
    return sorted(iter_images(root, recursive=recursive, exts=exts))


def iter_images(root: Path, recursive: bool = False, exts: Sequence[str] = tuple(DEFAULT_EXTS)) -> Iterator[Path]:
    """Yield image file paths under *root*."""

    root = Path(root).expanduser().resolve()
    exts_lc = {e.lower() for e in exts}
    for folder, dirs, files in os.walk(root):
        for name in files:
            if Path(name).suffix.lower() in exts_lc:
                yield Path(folder) / name
        if not recursive:
            break


def decode_image(path: Path, dimension: int) -> DecodedImage:
    """Decode *path* and resize it to ``dimension x dimension`` RGBA.

    The resize fills the square and ignores the aspect ratio, so images of
    any shape produce comparable fingerprints.

    Raises
    ------
    DecodeError
        If the file can't be opened or decoded as an image.
    """

    try:
        with Image.open(path) as img:
            original_width, original_height = img.size
            img = img.convert("RGBA").resize((dimension, dimension), resample=Image.Resampling.BILINEAR)
            pixels = img.tobytes()
    except (OSError, ValueError, SyntaxError, struct.error, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot decode {path}: {e}") from e

    return DecodedImage(
        pixels=pixels,
        width=dimension,
        height=dimension,
        original_width=original_width,
        original_height=original_height,
    )


def read_embedded_date(path: Path) -> Optional[datetime]:
    """Read the EXIF capture date of *path*.

    Uses ``DateTimeOriginal`` and falls back to the IFD0 ``DateTime`` tag.
    Returns ``None`` when the file has no readable date.
    """

    try:
        with Image.open(path) as img:
            exif = img.getexif()
            value = exif.get_ifd(ExifTags.IFD.Exif).get(ExifTags.Base.DateTimeOriginal)
            if not value:
                value = exif.get(ExifTags.Base.DateTime)
    except (OSError, ValueError, SyntaxError) as e:
        logger.debug(f"No EXIF date for {path}: {e}")
        return None

    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    return parse_embedded_date(value)


def unique_destination(out_dir: Path, desired_name: str) -> Path:
    """Return a destination path in `out_dir` that won't overwrite an existing file.

    If `desired_name` already exists, appends a suffix like:
        photo.jpg -> photo__2.jpg, photo__3.jpg, ...
    """

    out_dir.mkdir(parents=True, exist_ok=True)
    dst = out_dir / desired_name
    if not dst.exists():
        return dst

    n = 2
    while True:
        cand = out_dir / f"{dst.stem}__{n}{dst.suffix}"
        if not cand.exists():
            return cand
        n += 1


def move_into(src: Path, out_dir: Path) -> Path:
    """Move *src* into *out_dir* without overwriting; return the new path."""
    dst = unique_destination(out_dir, src.name)
    shutil.move(str(src), str(dst))
    return dst


def copy_into(src: Path, out_dir: Path) -> Path:
    """Copy *src* (with metadata) into *out_dir* without overwriting."""
    dst = unique_destination(out_dir, src.name)
    shutil.copy2(src, dst)
    return dst


def write_mapping_csv(rows: List[dict], out_csv: Path) -> None:
    """Write the mapping report as CSV."""

    out_csv.parent.mkdir(parents=True, exist_ok=True)
    with out_csv.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=REPORT_HEADERS)
        writer.writeheader()
        writer.writerows(rows)


def write_mapping_xlsx(rows: List[dict], out_xlsx: Path) -> bool:
    """Write the mapping report as XLSX.

    Returns False if openpyxl isn't installed.
    """

    try:
        from openpyxl import Workbook
    except ImportError:
        return False

    out_xlsx.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    ws.title = "mapping"
    ws.append(REPORT_HEADERS)
    for r in rows:
        ws.append([r.get(h, "") for h in REPORT_HEADERS])
    wb.save(out_xlsx)
    return True
