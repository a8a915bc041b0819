"""Exception taxonomy for the render → diff → adjust pipeline."""

from __future__ import annotations

from typing import Dict, Optional


class Design2CodeError(Exception):
    """Base class for all service errors."""


class InputError(Design2CodeError):
    """Missing or invalid caller input. Surfaced as HTTP 400, never retried.

    Args:
        message: Human-readable description.
        missing: Field name → True for each missing required field.
    """

    def __init__(self, message: str, missing: Optional[Dict[str, bool]] = None):
        super().__init__(message)
        self.missing = missing or {}


class RenderFailure(Design2CodeError):
    """A browser engine could not produce a screenshot."""

    def __init__(self, message: str, engine: str = ""):
        super().__init__(message)
        self.engine = engine


class DiffComputationError(Design2CodeError):
    """Image bytes could not be decoded for comparison."""


class VisionError(Design2CodeError):
    """A vision provider call failed or returned unusable output."""


class VisionUnavailableError(VisionError):
    """No vision provider is configured."""
