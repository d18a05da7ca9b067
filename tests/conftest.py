"""Shared test fixtures for OriginFinder tests."""

import struct
import zlib
from datetime import datetime
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from originfinder.fingerprint import Fingerprint
from originfinder.records import ImageRecord


def solid_fingerprint(color, width=20, height=1, changed=0, changed_color=(0, 0, 0, 255)):
    """A fingerprint of one RGBA colour, with the first `changed` pixels replaced."""
    px = [tuple(changed_color)] * changed + [tuple(color)] * (width * height - changed)
    return Fingerprint(width=width, height=height, samples=bytes(c for p in px for c in p))


def make_record(name, date=None, fingerprint=None, color=(200, 120, 40, 255)):
    if fingerprint is None:
        fingerprint = solid_fingerprint(color)
    resolved = datetime.strptime(date, "%Y-%m-%d") if isinstance(date, str) else date
    return ImageRecord(identity=Path(name), resolved_date=resolved, fingerprint=fingerprint)


@pytest.fixture
def gradient_array():
    """A 120x80 RGB image with horizontal and vertical gradients."""
    x = np.linspace(0, 255, 120, dtype=np.uint8)
    y = np.linspace(0, 255, 80, dtype=np.uint8)
    img = np.zeros((80, 120, 3), dtype=np.uint8)
    img[:, :, 0] = x[None, :]
    img[:, :, 1] = y[:, None]
    img[:, :, 2] = 90
    return img


@pytest.fixture
def noise_array():
    """A 120x80 random noise image."""
    rng = np.random.RandomState(42)
    return rng.randint(0, 255, (80, 120, 3), dtype=np.uint8)


@pytest.fixture
def write_image(tmp_path):
    """Save an array as an image file under tmp_path and return its path."""

    def _write(name, array, exif_date=None):
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        img = Image.fromarray(array)
        if exif_date is not None:
            exif = Image.Exif()
            exif[306] = exif_date  # IFD0 DateTime
            img.save(path, exif=exif)
        else:
            img.save(path)
        return path

    return _write


def _png_chunk(kind, data):
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))


@pytest.fixture
def broken_png(tmp_path):
    """A 10x10 PNG whose pixel data is split over two chunks, the second with a corrupt type.

    The header parses, so the file opens; the failure only shows up while decoding.
    """

    def _write(name):
        rows = b"".join(b"\x00" + bytes((x * 37 + y * 11) % 256 for x in range(30)) for y in range(10))
        data = zlib.compress(rows)
        half = len(data) // 2
        png = (
            b"\x89PNG\r\n\x1a\n"
            + _png_chunk(b"IHDR", struct.pack(">IIBBBBB", 10, 10, 8, 2, 0, 0, 0))
            + _png_chunk(b"IDAT", data[:half])
            + _png_chunk(b"I#AT", data[half:])
            + _png_chunk(b"IEND", b"")
        )
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(png)
        return path

    return _write
