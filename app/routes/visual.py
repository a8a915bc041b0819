"""Screenshot, compare and iterate endpoints.

- POST /api/screenshot: render html/css at a device viewport
- POST /api/compare: pixel diff of two uploaded images
- POST /api/iterate: render → diff → adjust loop against a target image
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from design2code.diff import compare_png
from design2code.errors import Design2CodeError, InputError
from design2code.iteration import IterationController
from design2code.models import Document, IterationRun, Viewport
from design2code.rendering import FallbackChain
from design2code.settings import DEFAULT_MAX_ITERATIONS, ITERATE_REQUEST_TIMEOUT_SECONDS

from ..deps import get_iteration_controller, get_render_chain
from ..errors import InternalError
from ..schemas import (
    CompareResponse,
    IterateResponse,
    IterationEntry,
    ScreenshotRequest,
    ScreenshotResponse,
    to_data_url,
)

logger = logging.getLogger("design2code.routes.visual")

router = APIRouter(prefix="/api", tags=["visual"])


def _require(fields: Dict[str, bool], message: str) -> None:
    """Raise InputError listing every missing field."""
    missing = {name: True for name, present in fields.items() if not present}
    if missing:
        raise InputError(f"{message}: {', '.join(missing)}", missing=missing)


def _parse_max_iterations(raw: Optional[str]) -> int:
    if raw is None or str(raw).strip() == "":
        return DEFAULT_MAX_ITERATIONS
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InputError(f"maxIterations must be an integer, got {raw!r}") from None


def _serialize_run(run: IterationRun) -> IterateResponse:
    entries = [
        IterationEntry(
            iteration=it.index,
            html=it.document.markup,
            css=it.document.stylesheet,
            screenshot=to_data_url(it.screenshot),
            diff_percentage=it.diff_percentage,
            diff_image=to_data_url(it.diff.diff_image.to_png()) if it.diff is not None else None,
            engine=it.engine,
            fallback=it.fallback,
            error=it.error,
        )
        for it in run.iterations
    ]
    best = run.best()
    return IterateResponse(
        iterations=entries,
        status=run.status.value,
        best_iteration=best.index if best is not None and best.diff is not None else None,
    )


# --- Endpoints ---


@router.post(
    "/screenshot",
    response_model=ScreenshotResponse,
    response_model_exclude_none=True,
)
async def take_screenshot(
    payload: ScreenshotRequest,
    chain: FallbackChain = Depends(get_render_chain),
):
    """Render html/css full-page at the requested device viewport.

    Falls back to a flat placeholder (``fallback: true``) when every
    browser engine fails.
    """
    _require({"html": bool(payload.html), "css": bool(payload.css)}, "html and css are required")
    viewport = Viewport.resolve(payload.device)

    try:
        outcome = await chain.render(Document(payload.html, payload.css), viewport)
    except Design2CodeError:
        raise
    except Exception as exc:
        logger.exception("screenshot failed")
        raise InternalError("Screenshot generation failed", str(exc)) from exc

    return ScreenshotResponse(
        screenshot=to_data_url(outcome.png),
        device=viewport.value,
        engine=outcome.engine,
        fallback=True if outcome.fallback else None,
    )


@router.post("/compare", response_model=CompareResponse)
async def compare_images(
    original: Optional[UploadFile] = File(None),
    generated: Optional[UploadFile] = File(None),
):
    """Pixel-diff two uploaded images (padded to a common canvas)."""
    _require({"original": original is not None, "generated": generated is not None}, "both images are required")

    original_bytes = await original.read()
    generated_bytes = await generated.read()
    _require({"original": bool(original_bytes), "generated": bool(generated_bytes)}, "uploaded images are empty")

    try:
        result = await asyncio.to_thread(compare_png, original_bytes, generated_bytes)
        diff_png = await asyncio.to_thread(result.diff_image.to_png)
    except Design2CodeError:
        raise
    except Exception as exc:
        logger.exception("image comparison failed")
        raise InternalError("Image comparison failed", str(exc)) from exc

    return CompareResponse(
        diff_percentage=result.diff_percentage,
        diff_image=to_data_url(diff_png),
        num_diff_pixels=result.differing_pixel_count,
        total_pixels=result.total_pixel_count,
    )


@router.post("/iterate", response_model=IterateResponse)
async def iterate_design(
    html: Optional[str] = Form(None),
    css: Optional[str] = Form(None),
    max_iterations: Optional[str] = Form(None, alias="maxIterations"),
    target_image: Optional[UploadFile] = File(None, alias="targetImage"),
    controller: IterationController = Depends(get_iteration_controller),
):
    """Refine html/css until the render matches ``targetImage`` or the budget runs out.

    Always returns at least one iteration; failed passes appear as records
    with ``error`` set and ``diffPercentage: null``.
    """
    target = await target_image.read() if target_image is not None else b""
    _require(
        {"targetImage": bool(target), "html": bool(html), "css": bool(css)},
        "missing required parameters",
    )
    iterations = _parse_max_iterations(max_iterations)

    logger.info(
        "iterate: html=%d css=%d chars, target=%d bytes, maxIterations=%d",
        len(html), len(css), len(target), iterations,
    )

    try:
        run = await controller.run(
            target,
            Document(html, css),
            max_iterations=iterations,
            deadline_seconds=ITERATE_REQUEST_TIMEOUT_SECONDS,
        )
        response = await asyncio.to_thread(_serialize_run, run)
    except Design2CodeError:
        raise
    except Exception as exc:
        logger.exception("iteration failed")
        raise InternalError("Iteration failed", str(exc)) from exc

    logger.info("iterate: %s after %d iteration(s)", response.status, len(response.iterations))
    return response
