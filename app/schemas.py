"""Pydantic request/response models for the design2code API.

Field names are snake_case in Python; JSON uses the camelCase names the
frontend was built against (``by_alias`` serialization).
"""

from __future__ import annotations

import base64
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ScreenshotRequest(BaseModel):
    """Request for POST /api/screenshot."""

    html: str = ""
    css: str = ""
    device: Optional[str] = Field("desktop", description="desktop | tablet | mobile")


class ScreenshotResponse(BaseModel):
    """Response for POST /api/screenshot. ``fallback`` only appears when the placeholder was used."""

    screenshot: str = Field(..., description="data:image/png;base64 URL")
    device: str
    engine: str
    fallback: Optional[bool] = None


class CompareResponse(_CamelModel):
    """Response for POST /api/compare."""

    diff_percentage: float = Field(..., alias="diffPercentage")
    diff_image: str = Field(..., alias="diffImage")
    num_diff_pixels: int = Field(..., alias="numDiffPixels")
    total_pixels: int = Field(..., alias="totalPixels")


class IterationEntry(_CamelModel):
    """Single iteration in an /api/iterate response."""

    iteration: int
    html: str
    css: str
    screenshot: str
    diff_percentage: Optional[float] = Field(None, alias="diffPercentage")
    diff_image: Optional[str] = Field(None, alias="diffImage")
    engine: str = ""
    fallback: bool = False
    error: Optional[str] = None


class IterateResponse(_CamelModel):
    """Response for POST /api/iterate."""

    iterations: List[IterationEntry]
    status: str = Field(..., description="converged | exhausted | failed | deadline_exceeded")
    best_iteration: Optional[int] = Field(None, alias="bestIteration")


class GenerateCodeResponse(BaseModel):
    """Response for POST /api/generate-code."""

    html: str
    css: str
    js: str = ""
    analysis: str = ""
    provider: str = ""


class PdfInfoResponse(_CamelModel):
    page_count: int = Field(..., alias="pageCount")
    file_size: int = Field(..., alias="fileSize")
    file_name: str = Field("", alias="fileName")


class PdfPageResponse(_CamelModel):
    image: str = Field(..., description="data:image/png;base64 URL")
    page: int
    page_count: int = Field(..., alias="pageCount")
    width: int
    height: int


class PdfPageImage(BaseModel):
    page: int
    image: str


class PdfAllPagesResponse(_CamelModel):
    """Response for POST /api/convert-pdf-all: one stitched image, or one image per page."""

    page_count: int = Field(..., alias="pageCount")
    combined: bool
    image: Optional[str] = None
    images: Optional[List[PdfPageImage]] = None
