"""PDF upload endpoints: page count and page rasterization."""

from __future__ import annotations

import asyncio
from typing import Optional, Tuple

from fastapi import APIRouter, File, Form, UploadFile

from design2code import pdf as pdf_tools
from design2code.errors import InputError
from design2code.raster import combine_vertically

from ..schemas import (
    PdfAllPagesResponse,
    PdfInfoResponse,
    PdfPageImage,
    PdfPageResponse,
    to_data_url,
)

router = APIRouter(prefix="/api", tags=["pdf"])


async def _read_pdf(upload: Optional[UploadFile]) -> Tuple[bytes, str]:
    data = await upload.read() if upload is not None else b""
    if not data:
        raise InputError("A PDF file is required", missing={"pdfFile": True})
    return data, upload.filename or ""


@router.post("/pdf-info", response_model=PdfInfoResponse)
async def pdf_info(pdf_file: Optional[UploadFile] = File(None, alias="pdfFile")):
    data, filename = await _read_pdf(pdf_file)
    count = await asyncio.to_thread(pdf_tools.page_count, data)
    return PdfInfoResponse(page_count=count, file_size=len(data), file_name=filename)


@router.post("/convert-pdf-page", response_model=PdfPageResponse)
async def convert_pdf_page(
    pdf_file: Optional[UploadFile] = File(None, alias="pdfFile"),
    page: int = Form(1),
):
    """Render one page (1-based) to PNG."""
    data, _ = await _read_pdf(pdf_file)
    rendered = await asyncio.to_thread(pdf_tools.render_page, data, page)
    return PdfPageResponse(
        image=to_data_url(rendered.png),
        page=rendered.page,
        page_count=rendered.page_count,
        width=rendered.width,
        height=rendered.height,
    )


@router.post(
    "/convert-pdf-all",
    response_model=PdfAllPagesResponse,
    response_model_exclude_none=True,
)
async def convert_pdf_all(
    pdf_file: Optional[UploadFile] = File(None, alias="pdfFile"),
    combine: bool = Form(False),
):
    """Render every page; with ``combine`` and more than one page, stitch them top to bottom."""
    data, _ = await _read_pdf(pdf_file)
    pages = await asyncio.to_thread(pdf_tools.render_all_pages, data)

    if combine and len(pages) > 1:
        stitched = await asyncio.to_thread(combine_vertically, [p.png for p in pages])
        return PdfAllPagesResponse(page_count=len(pages), combined=True, image=to_data_url(stitched))

    return PdfAllPagesResponse(
        page_count=len(pages),
        combined=False,
        images=[PdfPageImage(page=p.page, image=to_data_url(p.png)) for p in pages],
    )
