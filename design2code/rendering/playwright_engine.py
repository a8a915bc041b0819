"""Primary render engine: headless Chromium driven by Playwright."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Route
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from ..errors import RenderFailure
from ..models import Document, Viewport
from ..settings import RENDER_TIMEOUT_SECONDS
from .base import CHROMIUM_ARGS, RenderEngine, SessionTracker, is_malformed_resource_url, session_tracker

logger = logging.getLogger("design2code.render.playwright")


async def _route_request(route: Route) -> None:
    """Abort resource loads with malformed URLs, let everything else through."""
    url = route.request.url
    try:
        if is_malformed_resource_url(url):
            logger.info("aborting malformed resource request: %s", url[:200])
            await route.abort()
        else:
            await route.continue_()
    except PlaywrightError as exc:
        # Page already closing; the capture itself reports real failures
        logger.debug("route handling failed for %s: %s", url[:200], exc)


class PlaywrightEngine(RenderEngine):
    """Renders a Document with a fresh Chromium process per call.

    Every render starts its own Playwright driver and browser and tears both
    down before returning. This costs launch time on each call, but no
    browser state carries over between documents and a crashed browser only
    fails its own render. Do not replace it with a shared browser or page.

    Args:
        timeout: Ceiling in seconds for launch + load + capture.
        tracker: Live-session accounting.
    """

    name = "playwright"

    def __init__(
        self,
        timeout: float = RENDER_TIMEOUT_SECONDS,
        tracker: Optional[SessionTracker] = None,
    ):
        self.timeout = timeout
        self.tracker = tracker or session_tracker

    async def render(self, document: Document, viewport: Viewport) -> bytes:
        try:
            return await asyncio.wait_for(self._capture(document, viewport), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            raise RenderFailure(f"render timed out after {self.timeout:.0f}s", engine=self.name) from exc
        except PlaywrightTimeoutError as exc:
            raise RenderFailure(f"page load timed out: {exc}", engine=self.name) from exc
        except PlaywrightError as exc:
            raise RenderFailure(f"browser error: {exc}", engine=self.name) from exc

    async def _capture(self, document: Document, viewport: Viewport) -> bytes:
        timeout_ms = self.timeout * 1000
        async with async_playwright() as p:
            browser = await p.chromium.launch(headless=True, args=CHROMIUM_ARGS)
            with self.tracker.track(self.name):
                try:
                    context = await browser.new_context(
                        viewport={"width": viewport.width, "height": viewport.height},
                    )
                    page = await context.new_page()
                    await page.route("**/*", _route_request)
                    page.on(
                        "requestfailed",
                        lambda request: logger.debug("resource failed: %s", request.url[:200]),
                    )
                    await page.set_content(
                        document.to_html(), wait_until="networkidle", timeout=timeout_ms,
                    )
                    png = await page.screenshot(full_page=True, type="png", timeout=timeout_ms)
                finally:
                    await browser.close()

        logger.info(
            "rendered %s viewport (%dx%d): %d bytes",
            viewport.value, viewport.width, viewport.height, len(png),
        )
        return png
