"""Root conftest for engine, controller and API tests.

Provides:
- 800×600 white/black PNG fixtures
- FastAPI AsyncClient with the render chain and code generator overridden

Browser engines are never launched in tests.
"""

from __future__ import annotations

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from design2code.rendering import FallbackChain
from design2code.vision import CodeGenerator

from tests.helpers import BLACK, WHITE, FakeEngine, solid_png


@pytest.fixture
def white_png() -> bytes:
    return solid_png(800, 600, WHITE)


@pytest.fixture
def black_png() -> bytes:
    return solid_png(800, 600, BLACK)


# ---------------------------------------------------------------------------
# FastAPI test client: overrides the render chain and code generator
# ---------------------------------------------------------------------------

@pytest.fixture
def render_chain() -> FallbackChain:
    """Default chain for route tests: one engine returning a white 800×600 page."""
    return FallbackChain([FakeEngine([solid_png(800, 600, WHITE)], name="fake")])


@pytest.fixture
def code_generator() -> CodeGenerator:
    return CodeGenerator([])


@pytest_asyncio.fixture
async def client(render_chain, code_generator) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI routes (lifespan not run)."""
    from app.deps import get_code_generator, get_render_chain
    from app.main import app

    app.dependency_overrides[get_render_chain] = lambda: render_chain
    app.dependency_overrides[get_code_generator] = lambda: code_generator
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()
