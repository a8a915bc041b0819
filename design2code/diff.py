"""Image comparison for the refinement loop.

Two images of possibly different sizes are padded onto a common canvas
(opaque white fill, top-left origin) and compared pixel by pixel using
pixelmatch's perceptual YIQ color delta:

- byte-identical pixels are always equal
- otherwise both pixels are blended onto white by their alpha, converted
  to YIQ, and the weighted squared delta is compared with
  ``35215 * tolerance**2`` (35215 is the largest possible delta)

Anti-aliasing detection is not performed: every pixel over the tolerance
counts as differing.
"""

from __future__ import annotations

import logging

import numpy as np

from .models import DiffResult
from .raster import RasterImage
from .settings import DIFF_TOLERANCE

logger = logging.getLogger("design2code.diff")

MAX_YIQ_DELTA = 35215.0

# Diff image styling
DIFF_COLOR = (255, 0, 0, 255)
EQUAL_PIXEL_ALPHA = 0.1


def _blend_on_white(pixels: np.ndarray) -> np.ndarray:
    """RGB float array with alpha composited over white."""
    rgb = pixels[..., :3].astype(np.float64)
    alpha = pixels[..., 3:4].astype(np.float64) / 255.0
    return 255.0 + (rgb - 255.0) * alpha


def _rgb_to_y(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.29889531 + rgb[..., 1] * 0.58662247 + rgb[..., 2] * 0.11448223


def _rgb_to_i(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.59597799 - rgb[..., 1] * 0.27417610 - rgb[..., 2] * 0.32180189


def _rgb_to_q(rgb: np.ndarray) -> np.ndarray:
    return rgb[..., 0] * 0.21147017 - rgb[..., 1] * 0.52261711 + rgb[..., 2] * 0.31114694


def color_delta(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Weighted squared YIQ distance between two RGBA arrays of equal shape."""
    rgb_a = _blend_on_white(a)
    rgb_b = _blend_on_white(b)
    dy = _rgb_to_y(rgb_a) - _rgb_to_y(rgb_b)
    di = _rgb_to_i(rgb_a) - _rgb_to_i(rgb_b)
    dq = _rgb_to_q(rgb_a) - _rgb_to_q(rgb_b)
    return 0.5053 * dy * dy + 0.299 * di * di + 0.1957 * dq * dq


def _diff_image(reference: np.ndarray, mask: np.ndarray) -> RasterImage:
    # Equal pixels: reference luminance faded over white
    luminance = _rgb_to_y(reference[..., :3].astype(np.float64))
    alpha = EQUAL_PIXEL_ALPHA * reference[..., 3].astype(np.float64) / 255.0
    gray = np.clip(255.0 + (luminance - 255.0) * alpha, 0, 255).astype(np.uint8)

    out = np.empty(reference.shape, dtype=np.uint8)
    out[..., 0] = gray
    out[..., 1] = gray
    out[..., 2] = gray
    out[..., 3] = 255
    out[mask] = DIFF_COLOR
    return RasterImage(out)


def diff(
    reference: RasterImage,
    candidate: RasterImage,
    tolerance: float = DIFF_TOLERANCE,
) -> DiffResult:
    """Compare ``candidate`` against ``reference``.

    Args:
        reference: Target image (e.g. the uploaded design).
        candidate: Rendered image.
        tolerance: 0.0 (exact) to 1.0 (lenient). Lower values flag more pixels.

    Returns:
        DiffResult over the padded ``max(w) × max(h)`` canvas.
    """
    if tolerance < 0:
        raise ValueError(f"tolerance must be >= 0, got {tolerance}")

    width = max(reference.width, candidate.width)
    height = max(reference.height, candidate.height)
    ref = reference.padded(width, height).pixels
    cand = candidate.padded(width, height).pixels

    max_delta = MAX_YIQ_DELTA * tolerance * tolerance
    identical = np.all(ref == cand, axis=-1)
    mask = ~identical
    if mask.any():
        delta = color_delta(ref[mask], cand[mask])
        over = delta > max_delta
        mask[mask] = over

    total = width * height
    differing = int(mask.sum())
    percentage = (differing / total) * 100.0 if total else 0.0

    logger.debug(
        "diff: %dx%d vs %dx%d → %d/%d pixels (%.2f%%)",
        reference.width, reference.height, candidate.width, candidate.height,
        differing, total, percentage,
    )
    return DiffResult(
        diff_percentage=percentage,
        diff_image=_diff_image(ref, mask),
        differing_pixel_count=differing,
        total_pixel_count=total,
    )


def compare_png(reference: bytes, candidate: bytes, tolerance: float = DIFF_TOLERANCE) -> DiffResult:
    """Decode two encoded images and diff them. Raises DiffComputationError on bad bytes."""
    return diff(RasterImage.from_bytes(reference), RasterImage.from_bytes(candidate), tolerance)
