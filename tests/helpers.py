"""Shared test helpers: PNG builders and a scripted render engine."""

from __future__ import annotations

import asyncio
import base64
from typing import List, Optional, Sequence, Union

from design2code.errors import RenderFailure
from design2code.models import Document, Viewport
from design2code.raster import RasterImage
from design2code.rendering import RenderEngine, SessionTracker

WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


def solid_png(width: int, height: int, rgba=WHITE) -> bytes:
    return RasterImage.solid(width, height, rgba).to_png()


def decode_data_url(url: str) -> RasterImage:
    prefix = "data:image/png;base64,"
    assert url.startswith(prefix), url[:40]
    return RasterImage.from_bytes(base64.b64decode(url[len(prefix):]))


# Each scripted step is PNG bytes (returned) or an exception (raised)
Step = Union[bytes, BaseException]


class FakeEngine(RenderEngine):
    """Scripted engine: plays ``steps`` in order, repeating the last one.

    Every call opens a tracked "session" for its duration, like the real
    engines do around their browser process.
    """

    def __init__(
        self,
        steps: Sequence[Step],
        name: str = "fake",
        delay: float = 0.0,
        tracker: Optional[SessionTracker] = None,
    ):
        self.steps: List[Step] = list(steps)
        self.name = name
        self.delay = delay
        self.tracker = tracker or SessionTracker()
        self.calls: List[tuple] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def render(self, document: Document, viewport: Viewport) -> bytes:
        step = self.steps[min(len(self.calls), len(self.steps) - 1)]
        self.calls.append((document, viewport))
        with self.tracker.track(self.name):
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                if self.delay:
                    await asyncio.sleep(self.delay)
                if isinstance(step, BaseException):
                    raise step
                return step
            finally:
                self.in_flight -= 1


def failing_engine(name: str = "broken", message: str = "browser crashed") -> FakeEngine:
    return FakeEngine([RenderFailure(message, engine=name)], name=name)
