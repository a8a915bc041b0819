"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, error envelopes, and includes all
route modules.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from design2code.config import CORS_ORIGINS as _CORS_ORIGINS_RAW
from design2code.config import API_HOST, API_PORT, TEMP_DIR
from design2code.rendering import build_render_chain
from design2code.temp_files import run_periodic_sweep
from design2code.vision import CodeGenerator, build_vision_clients

from .errors import register_exception_handlers

logger = logging.getLogger("design2code.app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build render chain + vision clients, run the temp sweep in the background."""
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    app.state.render_chain = build_render_chain()
    app.state.code_generator = CodeGenerator(build_vision_clients())

    # Warn about optional integrations
    if not app.state.code_generator.clients:
        logger.warning(
            "No GEMINI_API_KEY / OPENAI_API_KEY set, /api/generate-code will return 503. "
            "Screenshot, compare and iterate endpoints work without them."
        )

    sweep_task = asyncio.create_task(run_periodic_sweep(TEMP_DIR))
    yield
    sweep_task.cancel()
    with contextlib.suppress(asyncio.CancelledError):
        await sweep_task
    await app.state.code_generator.close()


app = FastAPI(title="design2code API", version="1.0.0", lifespan=lifespan)

CORS_ORIGINS = [o.strip() for o in _CORS_ORIGINS_RAW.split(",") if o.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
from .routes.visual import router as visual_router  # noqa: E402
from .routes.generate import router as generate_router  # noqa: E402
from .routes.pdf import router as pdf_router  # noqa: E402

app.include_router(visual_router)
app.include_router(generate_router)
app.include_router(pdf_router)


@app.get("/health")
@app.get("/api/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=API_HOST, port=API_PORT)
