"""FastAPI dependencies: service handles built in the lifespan.

Handles live on ``app.state``; when the lifespan has not run (e.g. an ASGI
test transport), they are built on first use. Tests substitute fakes via
``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends, Request

from design2code.iteration import IterationController
from design2code.rendering import FallbackChain, build_render_chain
from design2code.vision import CodeGenerator, build_vision_clients


def get_render_chain(request: Request) -> FallbackChain:
    chain = getattr(request.app.state, "render_chain", None)
    if chain is None:
        chain = build_render_chain()
        request.app.state.render_chain = chain
    return chain


def get_iteration_controller(
    chain: FallbackChain = Depends(get_render_chain),
) -> IterationController:
    return IterationController(chain)


def get_code_generator(request: Request) -> CodeGenerator:
    generator = getattr(request.app.state, "code_generator", None)
    if generator is None:
        generator = CodeGenerator(build_vision_clients())
        request.app.state.code_generator = generator
    return generator
