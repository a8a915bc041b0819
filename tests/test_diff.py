"""Tests for design2code.diff: padding, tolerance and diff image output."""

from __future__ import annotations

import numpy as np
from PIL import Image
import pytest

from design2code.diff import DIFF_COLOR, compare_png, diff
from design2code.errors import DiffComputationError
from design2code.raster import RasterImage, combine_vertically

from tests.helpers import BLACK, WHITE, solid_png


def _image(width: int, height: int, rgba) -> RasterImage:
    return RasterImage.solid(width, height, rgba)


def _noise(width: int, height: int, seed: int = 7) -> RasterImage:
    rng = np.random.default_rng(seed)
    return RasterImage(rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8))


# ---------------------------------------------------------------------------
# Identical inputs
# ---------------------------------------------------------------------------


class TestIdenticalImages:

    @pytest.mark.parametrize("tolerance", [0.0, 0.05, 0.1, 0.5, 1.0])
    def test_identical_images_zero_diff(self, tolerance):
        img = _noise(64, 48)
        result = diff(img, img, tolerance)
        assert result.diff_percentage == 0.0
        assert result.differing_pixel_count == 0
        assert result.total_pixel_count == 64 * 48

    def test_equal_copies_zero_diff(self):
        a = _noise(32, 32, seed=3)
        b = RasterImage(a.pixels.copy())
        assert diff(a, b, 0.0).diff_percentage == 0.0


# ---------------------------------------------------------------------------
# Padding policy
# ---------------------------------------------------------------------------


class TestPadding:

    def test_padding_matches_white_bottom(self):
        """800×600 black vs 800×900 (black top, white bottom) → padded canvases are identical."""
        target = _image(800, 600, BLACK)
        pixels = np.full((900, 800, 4), 255, dtype=np.uint8)
        pixels[:600] = BLACK
        render = RasterImage(pixels)

        result = diff(target, render)
        assert result.differing_pixel_count == 0
        assert result.diff_percentage == 0.0
        assert result.total_pixel_count == 800 * 900

    def test_extra_rows_counted_when_not_white(self):
        target = _image(800, 600, BLACK)
        render = _image(800, 900, BLACK)

        result = diff(target, render)
        assert result.differing_pixel_count == 800 * 300
        assert result.diff_percentage == pytest.approx(100 * 300 / 900)

    def test_canvas_is_max_of_both_dimensions(self):
        wide = _image(100, 10, WHITE)
        tall = _image(10, 100, WHITE)
        result = diff(wide, tall)
        assert result.diff_image.size == (100, 100)
        assert result.total_pixel_count == 100 * 100
        assert result.diff_percentage == 0.0

    def test_padding_is_symmetric(self):
        small = _image(20, 20, BLACK)
        big = _image(40, 40, BLACK)
        assert diff(small, big).differing_pixel_count == diff(big, small).differing_pixel_count


# ---------------------------------------------------------------------------
# Tolerance
# ---------------------------------------------------------------------------


class TestTolerance:

    def test_near_identical_colors_within_default_tolerance(self):
        a = _image(10, 10, (200, 200, 200, 255))
        b = _image(10, 10, (203, 201, 199, 255))
        assert diff(a, b, 0.1).diff_percentage == 0.0
        assert diff(a, b, 0.0).diff_percentage == 100.0

    def test_black_vs_white_threshold(self):
        # Black/white delta is 0.5053 * 255**2, just under 35215 * 0.99**2
        a = _image(10, 10, BLACK)
        b = _image(10, 10, WHITE)
        assert diff(a, b, 0.1).diff_percentage == 100.0
        assert diff(a, b, 0.9).diff_percentage == 100.0
        assert diff(a, b, 0.99).diff_percentage == 0.0

    def test_diff_monotonic_as_tolerance_decreases(self):
        a = _noise(40, 30, seed=1)
        b = _noise(40, 30, seed=2)
        tolerances = [1.0, 0.5, 0.3, 0.1, 0.05, 0.01, 0.0]
        counts = [diff(a, b, t).differing_pixel_count for t in tolerances]
        assert counts == sorted(counts)

    def test_transparent_pixel_equals_white(self):
        transparent = _image(5, 5, (0, 0, 0, 0))
        white = _image(5, 5, WHITE)
        assert diff(transparent, white, 0.0).diff_percentage == 0.0

    def test_negative_tolerance_rejected(self):
        img = _image(2, 2, WHITE)
        with pytest.raises(ValueError):
            diff(img, img, -0.1)


# ---------------------------------------------------------------------------
# Diff image + compare_png
# ---------------------------------------------------------------------------


class TestDiffImage:

    def test_differing_pixels_marked_red(self):
        a = _image(4, 4, WHITE)
        pixels = a.pixels.copy()
        pixels[0, 0] = BLACK
        b = RasterImage(pixels)

        result = diff(a, b)
        assert result.differing_pixel_count == 1
        assert tuple(result.diff_image.pixels[0, 0]) == DIFF_COLOR
        assert tuple(result.diff_image.pixels[1, 1]) != DIFF_COLOR
        assert result.diff_image.pixels[..., 3].min() == 255

    def test_compare_png_decodes_both(self):
        result = compare_png(solid_png(30, 20, WHITE), solid_png(30, 20, WHITE))
        assert result.diff_percentage == 0.0

    def test_compare_png_bad_bytes(self):
        with pytest.raises(DiffComputationError):
            compare_png(b"not an image", solid_png(10, 10))

    def test_compare_png_empty_bytes(self):
        with pytest.raises(DiffComputationError):
            compare_png(solid_png(10, 10), b"")

    def test_compare_png_oversized_image(self, monkeypatch):
        """Pillow's decompression-bomb guard surfaces as DiffComputationError."""
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        with pytest.raises(DiffComputationError):
            compare_png(solid_png(100, 100), solid_png(100, 100))


# ---------------------------------------------------------------------------
# Vertical stitching
# ---------------------------------------------------------------------------


class TestCombineVertically:

    def test_stacks_top_to_bottom(self):
        out = RasterImage.from_bytes(combine_vertically([solid_png(40, 10, BLACK), solid_png(20, 30, BLACK)]))

        assert out.size == (40, 40)
        assert tuple(out.pixels[0, 39]) == BLACK
        assert tuple(out.pixels[15, 10]) == BLACK
        # right of the narrow second image
        assert tuple(out.pixels[25, 30]) == WHITE

    def test_single_image_unchanged(self):
        png = solid_png(12, 7)
        assert combine_vertically([png]) is png

    def test_empty_input(self):
        with pytest.raises(ValueError):
            combine_vertically([])
