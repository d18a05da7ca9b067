"""Tests for fingerprint similarity comparison."""

import pytest

from conftest import solid_fingerprint
from originfinder.comparison import compare, count_different_samples
from originfinder.errors import DimensionMismatchError


class TestCompare:
    """Tests for the match decision."""

    @pytest.mark.parametrize("threshold", [0.0, 0.05, 0.1, 1.0])
    def test_identical_always_match(self, threshold):
        a = solid_fingerprint((10, 20, 30, 255))
        b = solid_fingerprint((10, 20, 30, 255))
        res = compare(a, b, threshold=threshold)
        assert res.is_match
        assert res.diff_ratio == 0.0

    def test_completely_different(self):
        a = solid_fingerprint((0, 0, 0, 255))
        b = solid_fingerprint((255, 255, 255, 255))
        res = compare(a, b)
        assert not res.is_match
        assert res.diff_ratio == 1.0

    def test_few_differences_under_threshold(self):
        a = solid_fingerprint((255, 255, 255, 255))
        b = solid_fingerprint((255, 255, 255, 255), changed=1)
        res = compare(a, b, threshold=0.1)
        assert res.diff_count == 1
        assert res.diff_ratio == pytest.approx(0.05)
        assert res.is_match

    def test_threshold_is_exclusive(self):
        a = solid_fingerprint((255, 255, 255, 255))
        b = solid_fingerprint((255, 255, 255, 255), changed=2)
        assert not compare(a, b, threshold=0.1).is_match

    def test_dimension_mismatch(self):
        a = solid_fingerprint((1, 2, 3, 255), width=20)
        b = solid_fingerprint((1, 2, 3, 255), width=10)
        with pytest.raises(DimensionMismatchError):
            compare(a, b)


class TestCountDifferentSamples:
    """Tests for the per-pixel tolerance."""

    def test_small_colour_shift_tolerated(self):
        a = solid_fingerprint((120, 120, 120, 255))
        b = solid_fingerprint((124, 118, 121, 255))
        assert count_different_samples(a, b, tolerance=0.2) == 0

    def test_zero_tolerance_counts_any_change(self):
        a = solid_fingerprint((120, 120, 120, 255))
        b = solid_fingerprint((124, 118, 121, 255))
        assert count_different_samples(a, b, tolerance=0.0) == 20

    def test_transparent_pixels_blend_to_white(self):
        a = solid_fingerprint((0, 0, 0, 0))
        b = solid_fingerprint((255, 255, 255, 255))
        assert count_different_samples(a, b, tolerance=0.0) == 0
