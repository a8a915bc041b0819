"""Error envelopes for the HTTP boundary.

Every failure leaves the API as JSON ``{"error": ..., "details": ...}``;
input errors also carry ``missing`` when required fields were absent.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from design2code.errors import (
    DiffComputationError,
    InputError,
    RenderFailure,
    VisionError,
    VisionUnavailableError,
)
from design2code.logging_config import get_api_logger

logger = get_api_logger()


class InternalError(Exception):
    """Unexpected failure inside a route, already logged with traceback."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details


def error_body(error: str, details: str = "", **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"error": error, "details": details}
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _json(status_code: int, error: str, details: str = "", missing: Optional[Dict[str, bool]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=error_body(error, details, missing=missing or None))


async def _input_error(request: Request, exc: InputError) -> JSONResponse:
    logger.info("%s %s: input error: %s", request.method, request.url.path, exc)
    return _json(400, "Invalid request", str(exc), exc.missing)


async def _diff_error(request: Request, exc: DiffComputationError) -> JSONResponse:
    logger.info("%s %s: undecodable image: %s", request.method, request.url.path, exc)
    return _json(400, "Image could not be processed", str(exc))


async def _render_failure(request: Request, exc: RenderFailure) -> JSONResponse:
    logger.error("%s %s: render failed: %s", request.method, request.url.path, exc)
    return _json(500, "Screenshot generation failed", str(exc))


async def _vision_unavailable(request: Request, exc: VisionUnavailableError) -> JSONResponse:
    logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return _json(503, "Code generation unavailable", str(exc))


async def _vision_error(request: Request, exc: VisionError) -> JSONResponse:
    logger.error("%s %s: vision error: %s", request.method, request.url.path, exc)
    return _json(500, "Code generation failed", str(exc))


async def _internal_error(request: Request, exc: InternalError) -> JSONResponse:
    return _json(500, str(exc), exc.details)


async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("%s %s: unhandled error", request.method, request.url.path)
    return _json(500, "Internal server error", str(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(InputError, _input_error)
    app.add_exception_handler(DiffComputationError, _diff_error)
    app.add_exception_handler(RenderFailure, _render_failure)
    app.add_exception_handler(VisionUnavailableError, _vision_unavailable)
    app.add_exception_handler(VisionError, _vision_error)
    app.add_exception_handler(InternalError, _internal_error)
    app.add_exception_handler(Exception, _unhandled)
