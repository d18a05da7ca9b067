"""Tests for image I/O helpers."""

from datetime import datetime

import pytest

from originfinder.errors import DecodeError
from originfinder.io_utils import (
    copy_into,
    decode_image,
    list_images,
    move_into,
    read_embedded_date,
    unique_destination,
    write_mapping_csv,
)


class TestListImages:
    """Tests for image discovery."""

    def test_filters_extensions_case_insensitively(self, tmp_path):
        for name in ["a.jpg", "b.JPEG", "c.png", "notes.txt"]:
            (tmp_path / name).write_bytes(b"x")
        assert [p.name for p in list_images(tmp_path)] == ["a.jpg", "b.JPEG", "c.png"]

    def test_recursive_flag(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "top.jpg").write_bytes(b"x")
        (tmp_path / "sub" / "deep.jpg").write_bytes(b"x")
        assert [p.name for p in list_images(tmp_path)] == ["top.jpg"]
        assert sorted(p.name for p in list_images(tmp_path, recursive=True)) == ["deep.jpg", "top.jpg"]


class TestDecodeImage:
    """Tests for decoding to the canonical square."""

    def test_fill_resize(self, write_image, gradient_array):
        path = write_image("g.png", gradient_array)
        img = decode_image(path, 32)
        assert (img.width, img.height) == (32, 32)
        assert (img.original_width, img.original_height) == (120, 80)
        assert len(img.pixels) == 32 * 32 * 4

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"this is not an image")
        with pytest.raises(DecodeError):
            decode_image(path, 32)

    def test_corrupt_chunk_while_decoding(self, broken_png):
        with pytest.raises(DecodeError):
            decode_image(broken_png("chunk.png"), 16)


class TestReadEmbeddedDate:
    """Tests for EXIF date reading."""

    def test_reads_exif_datetime(self, write_image, gradient_array):
        path = write_image("dated.jpg", gradient_array, exif_date="2020:06:15 10:11:12")
        assert read_embedded_date(path) == datetime(2020, 6, 15, 10, 11, 12)

    def test_no_exif(self, write_image, gradient_array):
        assert read_embedded_date(write_image("plain.png", gradient_array)) is None

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.jpg"
        path.write_bytes(b"nope")
        assert read_embedded_date(path) is None


class TestFileOperations:
    """Tests for moving and copying results."""

    def test_unique_destination(self, tmp_path):
        (tmp_path / "photo.jpg").write_bytes(b"x")
        (tmp_path / "photo__2.jpg").write_bytes(b"x")
        assert unique_destination(tmp_path, "photo.jpg").name == "photo__3.jpg"

    def test_move_and_copy(self, tmp_path):
        src = tmp_path / "a.jpg"
        src.write_bytes(b"data")
        copied = copy_into(src, tmp_path / "out")
        moved = move_into(src, tmp_path / "found")
        assert copied.read_bytes() == b"data"
        assert moved.read_bytes() == b"data"
        assert not src.exists()

    def test_mapping_csv(self, tmp_path):
        out = tmp_path / "mapping.csv"
        write_mapping_csv([{"target": "t.jpg", "status": "exhausted"}], out)
        lines = out.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("target,matches,status")
        assert lines[1].startswith("t.jpg,,exhausted")
