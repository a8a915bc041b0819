"""Core value types: Viewport, Document, DiffResult, Iteration, IterationRun."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Tuple

if TYPE_CHECKING:
    from .raster import RasterImage


class Viewport(str, Enum):
    """Named device class with a fixed pixel size."""

    DESKTOP = "desktop"
    TABLET = "tablet"
    MOBILE = "mobile"

    @property
    def size(self) -> Tuple[int, int]:
        return VIEWPORT_SIZES[self]

    @property
    def width(self) -> int:
        return VIEWPORT_SIZES[self][0]

    @property
    def height(self) -> int:
        return VIEWPORT_SIZES[self][1]

    @classmethod
    def resolve(cls, name: Optional[str]) -> "Viewport":
        """Map a device name to a Viewport; unknown or empty names → desktop."""
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            return cls.DESKTOP


VIEWPORT_SIZES = {
    Viewport.DESKTOP: (1920, 1080),
    Viewport.TABLET: (768, 1024),
    Viewport.MOBILE: (375, 812),
}

_HTML_TAG_RE = re.compile(r"<html[\s>]", re.IGNORECASE)
_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)

_PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="ja">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<style>{css}</style>
</head>
<body>
{html}
</body>
</html>"""


@dataclass(frozen=True)
class Document:
    """A renderable page: opaque markup plus a stylesheet."""

    markup: str
    stylesheet: str

    def to_html(self) -> str:
        """Build the page loaded by the browser engines.

        Fragments are wrapped in an HTML5 shell. Full documents get the
        stylesheet injected before ``</head>``, or prepended when there is
        no head element.
        """
        if not _HTML_TAG_RE.search(self.markup):
            return _PAGE_TEMPLATE.format(css=self.stylesheet, html=self.markup)

        style = f"<style>{self.stylesheet}</style>"
        match = _HEAD_CLOSE_RE.search(self.markup)
        if match:
            return self.markup[: match.start()] + style + self.markup[match.start():]
        return style + self.markup

    def with_stylesheet(self, stylesheet: str) -> "Document":
        return replace(self, stylesheet=stylesheet)


@dataclass
class DiffResult:
    diff_percentage: float
    diff_image: "RasterImage"
    differing_pixel_count: int
    total_pixel_count: int


class RunStatus(str, Enum):
    """Terminal state of an IterationRun."""

    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"
    DEADLINE_EXCEEDED = "deadline_exceeded"


@dataclass
class Iteration:
    """One Render → Diff pass.

    ``diff`` is None only for synthetic records produced when a pass could
    not complete; those carry ``error``.
    """

    index: int
    document: Document
    screenshot: bytes
    diff: Optional[DiffResult] = None
    engine: str = ""
    fallback: bool = False
    error: Optional[str] = None

    @property
    def diff_percentage(self) -> Optional[float]:
        return self.diff.diff_percentage if self.diff is not None else None


@dataclass
class IterationRun:
    iterations: List[Iteration] = field(default_factory=list)
    status: Optional[RunStatus] = None

    def best(self) -> Optional[Iteration]:
        """Lowest-diff completed iteration (earliest on ties), else the last record."""
        scored = [it for it in self.iterations if it.diff is not None]
        if scored:
            return min(scored, key=lambda it: (it.diff.diff_percentage, it.index))
        return self.iterations[-1] if self.iterations else None
