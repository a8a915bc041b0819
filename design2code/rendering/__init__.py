"""Rendering: browser engines, placeholder generator and fallback chain."""

from .base import RenderEngine, SessionTracker, is_malformed_resource_url, session_tracker
from .fallback import FallbackChain, RenderAttempt, RenderOutcome, build_render_chain
from .placeholder import PlaceholderEngine, placeholder_png

__all__ = [
    "FallbackChain",
    "PlaceholderEngine",
    "RenderAttempt",
    "RenderEngine",
    "RenderOutcome",
    "SessionTracker",
    "build_render_chain",
    "is_malformed_resource_url",
    "placeholder_png",
    "session_tracker",
]
