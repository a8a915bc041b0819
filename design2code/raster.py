"""RasterImage: decoded RGBA bitmap backed by a numpy array."""

from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import DiffComputationError


@dataclass(frozen=True)
class RasterImage:
    """RGBA pixels with shape ``(height, width, 4)`` and dtype uint8."""

    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"expected (h, w, 4) RGBA array, got shape {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"expected uint8 pixels, got {self.pixels.dtype}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @classmethod
    def from_bytes(cls, data: bytes) -> "RasterImage":
        """Decode PNG/JPEG/... bytes. Raises DiffComputationError on bad input."""
        if not data:
            raise DiffComputationError("Image data is empty")
        try:
            with Image.open(io.BytesIO(data)) as img:
                rgba = img.convert("RGBA")
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
            raise DiffComputationError(f"Cannot decode image: {exc}") from exc
        return cls(np.array(rgba, dtype=np.uint8))

    @classmethod
    def solid(cls, width: int, height: int, rgba: Tuple[int, int, int, int]) -> "RasterImage":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = rgba
        return cls(pixels)

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        Image.fromarray(self.pixels).save(buf, format="PNG")
        return buf.getvalue()

    def padded(self, width: int, height: int) -> "RasterImage":
        """Copy onto a (width, height) opaque-white canvas at the top-left origin."""
        if (width, height) == self.size:
            return self
        if width < self.width or height < self.height:
            raise ValueError("padded canvas must not be smaller than the image")
        canvas = np.full((height, width, 4), 255, dtype=np.uint8)
        canvas[: self.height, : self.width] = self.pixels
        return RasterImage(canvas)


def combine_vertically(images: Sequence[bytes], background=(255, 255, 255)) -> bytes:
    """Stack encoded images top to bottom into one PNG.

    The canvas is as wide as the widest image; narrower images are
    left-aligned on ``background``. A single image is returned unchanged.
    """
    if not images:
        raise ValueError("no images to combine")
    if len(images) == 1:
        return images[0]

    decoded = []
    for data in images:
        with Image.open(io.BytesIO(data)) as img:
            decoded.append(img.convert("RGB"))

    width = max(img.width for img in decoded)
    height = sum(img.height for img in decoded)
    canvas = Image.new("RGB", (width, height), background)
    top = 0
    for img in decoded:
        canvas.paste(img, (0, top))
        top += img.height

    buf = io.BytesIO()
    canvas.save(buf, format="PNG")
    return buf.getvalue()
