"""FallbackChain: ordered render strategies ending in a placeholder.

Strategies are tried in order until one returns a screenshot of at least
``min_bytes``. The placeholder generator is always last, so a render only
fails outright when every strategy, placeholder included, failed.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Type

from ..errors import RenderFailure
from ..logging_config import get_render_logger
from ..models import Document, Viewport
from ..settings import MIN_SCREENSHOT_BYTES, RENDER_CONCURRENCY, RENDER_ENGINES
from .base import RenderEngine
from .placeholder import PlaceholderEngine

logger = get_render_logger()


@dataclass
class RenderAttempt:
    engine: str
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


@dataclass
class RenderOutcome:
    png: bytes
    engine: str
    fallback: bool = False
    attempts: List[RenderAttempt] = field(default_factory=list)


class FallbackChain:
    """Wraps render engines with ordered fallback.

    Args:
        engines: Browser engines, primary first.
        placeholder: Final strategy; defaults to a flat gray image.
        min_bytes: Screenshots shorter than this count as failures.
        concurrency: Max browser renders in flight through this chain.
    """

    def __init__(
        self,
        engines: Sequence[RenderEngine],
        placeholder: Optional[RenderEngine] = None,
        min_bytes: int = MIN_SCREENSHOT_BYTES,
        concurrency: int = RENDER_CONCURRENCY,
    ):
        self.strategies: List[RenderEngine] = [*engines, placeholder or PlaceholderEngine()]
        self.min_bytes = min_bytes
        self._semaphore = asyncio.Semaphore(max(1, concurrency))

    async def _attempt(self, engine: RenderEngine, document: Document, viewport: Viewport) -> bytes:
        if engine.is_placeholder:
            return await engine.render(document, viewport)
        async with self._semaphore:
            return await engine.render(document, viewport)

    async def render(self, document: Document, viewport: Viewport) -> RenderOutcome:
        attempts: List[RenderAttempt] = []

        for engine in self.strategies:
            try:
                png = await self._attempt(engine, document, viewport)
            except RenderFailure as exc:
                attempts.append(RenderAttempt(engine.name, str(exc)))
                logger.warning("render via %s failed: %s", engine.name, exc)
                continue
            except Exception as exc:
                # Engine bugs or driver crashes outside the engine's own mapping
                attempts.append(RenderAttempt(engine.name, f"{type(exc).__name__}: {exc}"))
                logger.warning("render via %s crashed: %s", engine.name, exc, exc_info=True)
                continue

            if len(png or b"") < self.min_bytes:
                attempts.append(
                    RenderAttempt(engine.name, f"screenshot too small ({len(png or b'')} bytes)")
                )
                logger.warning(
                    "render via %s returned %d bytes (< %d), trying next strategy",
                    engine.name, len(png or b""), self.min_bytes,
                )
                continue

            attempts.append(RenderAttempt(engine.name))
            if engine.is_placeholder:
                logger.warning(
                    "all browser engines failed for %s viewport, using placeholder",
                    viewport.value,
                )
            return RenderOutcome(
                png=png, engine=engine.name, fallback=engine.is_placeholder, attempts=attempts,
            )

        summary = "; ".join(f"{a.engine}: {a.error}" for a in attempts)
        logger.error("all render strategies failed: %s", summary)
        raise RenderFailure(f"All render strategies failed ({summary})", engine="fallback_chain")


def _engine_classes() -> Dict[str, Type[RenderEngine]]:
    from .playwright_engine import PlaywrightEngine
    from .selenium_engine import SeleniumEngine

    return {"playwright": PlaywrightEngine, "selenium": SeleniumEngine}


def build_render_chain(
    engine_names: Optional[Sequence[str]] = None,
    concurrency: int = RENDER_CONCURRENCY,
) -> FallbackChain:
    """Build a FallbackChain from engine names (defaults to RENDER_ENGINES)."""
    names = RENDER_ENGINES if engine_names is None else engine_names
    classes = _engine_classes()
    engines: List[RenderEngine] = []
    for name in names:
        cls = classes.get(name.lower())
        if cls is None:
            logger.warning("unknown render engine %r ignored (known: %s)", name, ", ".join(classes))
            continue
        engines.append(cls())
    logger.info("render chain: %s", " → ".join([e.name for e in engines] + ["placeholder"]))
    return FallbackChain(engines, concurrency=concurrency)
