"""PDF page rasterization (PyMuPDF).

Rendered pages are written under TEMP_DIR and evicted by the temp sweep.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import fitz  # PyMuPDF

from .config import TEMP_DIR
from .errors import InputError
from .settings import PDF_RENDER_WIDTH

logger = logging.getLogger("design2code.pdf")


@dataclass
class PdfPage:
    png: bytes
    page: int
    page_count: int
    width: int
    height: int
    path: Path


def _open(data: bytes) -> "fitz.Document":
    if not data:
        raise InputError("PDF file is empty", missing={"pdfFile": True})
    try:
        return fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise InputError(f"Cannot open PDF: {exc}") from exc


def page_count(data: bytes) -> int:
    with _open(data) as doc:
        return doc.page_count


def render_page(
    data: bytes,
    page: int = 1,
    width: int = PDF_RENDER_WIDTH,
    temp_dir: Optional[Path] = None,
) -> PdfPage:
    """Render one 1-based page to PNG at ``width`` pixels wide."""
    with _open(data) as doc:
        total = doc.page_count
        if page < 1 or page > total:
            raise InputError(f"Page {page} out of range (document has {total} pages)")

        pdf_page = doc.load_page(page - 1)
        zoom = width / pdf_page.rect.width if pdf_page.rect.width else 1.0
        pix = pdf_page.get_pixmap(matrix=fitz.Matrix(zoom, zoom), alpha=False)
        png = pix.tobytes("png")
        out_width, out_height = pix.width, pix.height

    temp_dir = TEMP_DIR if temp_dir is None else temp_dir
    temp_dir.mkdir(parents=True, exist_ok=True)
    path = temp_dir / f"pdf_page_{uuid.uuid4().hex[:12]}_{page}.png"
    path.write_bytes(png)
    logger.info("rendered pdf page %d/%d: %dx%d → %s", page, total, out_width, out_height, path.name)
    return PdfPage(png=png, page=page, page_count=total, width=out_width, height=out_height, path=path)


def render_all_pages(
    data: bytes,
    width: int = PDF_RENDER_WIDTH,
    temp_dir: Optional[Path] = None,
) -> List[PdfPage]:
    """Render every page in order. Pages that fail to rasterize are skipped.

    Raises:
        InputError: the PDF cannot be opened or no page could be rendered.
    """
    total = page_count(data)
    pages: List[PdfPage] = []
    for number in range(1, total + 1):
        try:
            pages.append(render_page(data, number, width, temp_dir))
        except RuntimeError as exc:
            logger.warning("pdf page %d/%d failed to render, skipping: %s", number, total, exc)
    if not pages:
        raise InputError("No PDF page could be rendered")
    return pages
