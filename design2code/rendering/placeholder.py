"""Deterministic placeholder screenshots."""

from __future__ import annotations

from ..models import Document, Viewport
from ..raster import RasterImage
from ..settings import PLACEHOLDER_GRAY
from .base import RenderEngine


def placeholder_png(viewport: Viewport, gray: int = PLACEHOLDER_GRAY) -> bytes:
    """Flat gray PNG with the viewport's dimensions."""
    width, height = viewport.size
    return RasterImage.solid(width, height, (gray, gray, gray, 255)).to_png()


class PlaceholderEngine(RenderEngine):
    """Last strategy of the fallback chain; ignores the document."""

    name = "placeholder"
    is_placeholder = True

    def __init__(self, gray: int = PLACEHOLDER_GRAY):
        self.gray = gray

    async def render(self, document: Document, viewport: Viewport) -> bytes:
        return placeholder_png(viewport, self.gray)
