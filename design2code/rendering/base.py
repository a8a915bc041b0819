"""Render engine interface and browser-session accounting."""

from __future__ import annotations

import logging
import re
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Iterator
from urllib.parse import urlsplit

from ..models import Document, Viewport

logger = logging.getLogger("design2code.render")

# Chromium flags for container environments
CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-accelerated-2d-canvas",
    "--no-first-run",
    "--no-zygote",
    "--disable-gpu",
]

_ALLOWED_SCHEMES = frozenset({"http", "https", "data", "blob", "about"})

# A colour code that ended up where a URL belongs, e.g. href="ff0000", once
# resolved against the page origin: the whole path is the hex token
_BARE_HEX_PATH_RE = re.compile(r"^[0-9a-fA-F]{6}$")


def is_malformed_resource_url(url: str) -> bool:
    """True for resource URLs a page should never load.

    Covers unsupported schemes and http(s) URLs whose entire path is a bare
    six-hex-digit token (``/ff0000``). Deeper paths such as ``/products/123456``
    are ordinary resources.
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return True
    if parts.scheme.lower() not in _ALLOWED_SCHEMES:
        return True
    if parts.scheme.lower() in ("data", "blob", "about"):
        return False
    path = parts.path.strip("/")
    return "/" not in path and bool(_BARE_HEX_PATH_RE.match(path))


class SessionTracker:
    """Counts live browser sessions across all engines.

    Engines enter ``track()`` right after their browser process starts and
    leave it once the process is closed, so ``live`` drops back to zero
    when nothing leaks.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._live = 0
        self._opened = 0

    @property
    def live(self) -> int:
        with self._lock:
            return self._live

    @property
    def opened(self) -> int:
        with self._lock:
            return self._opened

    @contextmanager
    def track(self, engine: str) -> Iterator[None]:
        with self._lock:
            self._live += 1
            self._opened += 1
        logger.debug("browser session opened (%s)", engine)
        try:
            yield
        finally:
            with self._lock:
                self._live -= 1
            logger.debug("browser session closed (%s)", engine)


session_tracker = SessionTracker()


class RenderEngine(ABC):
    """Produces a full-page PNG for a Document at a Viewport.

    Implementations raise RenderFailure when no image can be produced.
    """

    name: str = "engine"
    is_placeholder: bool = False

    @abstractmethod
    async def render(self, document: Document, viewport: Viewport) -> bytes:
        ...
