"""Secondary render engine: headless Chrome driven by Selenium.

Selenium is synchronous, so each capture runs in a worker thread. The
page is loaded from a temp file and the window is stretched to the
document's scroll height to get a full-page screenshot.

A worker thread cannot be cancelled, so when the overall timeout fires
the event loop quits the thread's driver instead. The blocked WebDriver
call then fails and the thread unwinds, closing Chrome promptly rather
than at Selenium's own page-load timeout.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
import threading
from pathlib import Path
from typing import Optional

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options

from ..config import TEMP_DIR
from ..errors import RenderFailure
from ..models import Document, Viewport
from ..settings import RENDER_TIMEOUT_SECONDS
from .base import CHROMIUM_ARGS, RenderEngine, SessionTracker, session_tracker

logger = logging.getLogger("design2code.render.selenium")

_SCROLL_HEIGHT_JS = (
    "return Math.max(document.body ? document.body.scrollHeight : 0, "
    "document.documentElement.scrollHeight);"
)


def _quit_quietly(driver: webdriver.Chrome) -> None:
    try:
        driver.quit()
    except WebDriverException as exc:
        logger.debug("driver.quit failed (already closed?): %s", exc.msg)


class _CaptureHandle:
    """Shared between a capture thread and the coroutine awaiting it."""

    def __init__(self):
        self._lock = threading.Lock()
        self._driver: Optional[webdriver.Chrome] = None
        self._abandoned = False

    def attach(self, driver: webdriver.Chrome) -> bool:
        """Register the live driver. False if the render was already abandoned."""
        with self._lock:
            self._driver = driver
            return not self._abandoned

    def abandon(self) -> None:
        """Mark the render abandoned and quit its driver if one is running."""
        with self._lock:
            self._abandoned = True
            driver = self._driver
        if driver is not None:
            _quit_quietly(driver)
class SeleniumEngine(RenderEngine):
    """Renders a Document with a fresh Chrome + chromedriver per call."""

    name = "selenium"

    def __init__(
        self,
        timeout: float = RENDER_TIMEOUT_SECONDS,
        tracker: Optional[SessionTracker] = None,
        temp_dir: Path = TEMP_DIR,
    ):
        self.timeout = timeout
        self.tracker = tracker or session_tracker
        self.temp_dir = temp_dir

    async def render(self, document: Document, viewport: Viewport) -> bytes:
        handle = _CaptureHandle()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._capture, document, viewport, handle),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as exc:
            await asyncio.to_thread(handle.abandon)
            raise RenderFailure(f"render timed out after {self.timeout:.0f}s", engine=self.name) from exc
        except TimeoutException as exc:
            raise RenderFailure(f"page load timed out: {exc.msg}", engine=self.name) from exc
        except WebDriverException as exc:
            raise RenderFailure(f"webdriver error: {exc.msg}", engine=self.name) from exc

    def _options(self, viewport: Viewport) -> Options:
        options = Options()
        options.add_argument("--headless=new")
        for arg in CHROMIUM_ARGS:
            options.add_argument(arg)
        options.add_argument("--hide-scrollbars")
        options.add_argument(f"--window-size={viewport.width},{viewport.height}")
        options.add_argument("--log-level=3")
        return options

    def _capture(self, document: Document, viewport: Viewport, handle: _CaptureHandle) -> bytes:
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", suffix=".html", prefix="render_", dir=self.temp_dir,
            encoding="utf-8", delete=False,
        ) as fh:
            fh.write(document.to_html())
            page_path = Path(fh.name)

        try:
            driver = webdriver.Chrome(options=self._options(viewport))
            with self.tracker.track(self.name):
                try:
                    if not handle.attach(driver):
                        raise RenderFailure("render abandoned before page load", engine=self.name)
                    driver.set_page_load_timeout(self.timeout)
                    driver.get(page_path.as_uri())
                    full_height = int(driver.execute_script(_SCROLL_HEIGHT_JS) or 0)
                    driver.set_window_size(viewport.width, max(viewport.height, full_height))
                    png = driver.get_screenshot_as_png()
                finally:
                    _quit_quietly(driver)
        finally:
            page_path.unlink(missing_ok=True)

        logger.info(
            "rendered %s viewport (%dx%d): %d bytes",
            viewport.value, viewport.width, viewport.height, len(png),
        )
        return png
