"""Tests for design2code.iteration: convergence, budget, failures, deadline."""

from __future__ import annotations

import asyncio
import math

import pytest
from PIL import Image

from design2code.adjustments import applied_types
from design2code.errors import InputError, RenderFailure
from design2code.iteration import IterationController
from design2code.models import Document, RunStatus, Viewport
from design2code.raster import RasterImage
from design2code.rendering import FallbackChain

from tests.helpers import BLACK, WHITE, FakeEngine, failing_engine, solid_png

DOC = Document("<div>A</div>", "div { color: #222; }")


def _controller(*engines, placeholder=None, **kwargs) -> IterationController:
    return IterationController(FallbackChain(list(engines), placeholder=placeholder), **kwargs)


# ---------------------------------------------------------------------------
# Terminal states
# ---------------------------------------------------------------------------


class TestConvergence:

    @pytest.mark.asyncio
    async def test_converges_on_first_iteration(self, white_png):
        engine = FakeEngine([white_png])
        run = await _controller(engine).run(white_png, DOC, max_iterations=5)

        assert run.status == RunStatus.CONVERGED
        assert len(run.iterations) == 1
        assert run.iterations[0].diff_percentage == 0.0
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    async def test_converges_after_adjustment(self, white_png, black_png):
        engine = FakeEngine([black_png, white_png])
        run = await _controller(engine).run(white_png, DOC, max_iterations=5)

        assert run.status == RunStatus.CONVERGED
        assert [it.index for it in run.iterations] == [1, 2]
        assert run.best().index == 2


class TestExhaustedBudget:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_iterations", [1, 3, 6])
    async def test_stops_at_max_iterations(self, white_png, black_png, max_iterations):
        engine = FakeEngine([black_png])
        run = await _controller(engine).run(white_png, DOC, max_iterations=max_iterations)

        assert run.status == RunStatus.EXHAUSTED
        assert len(run.iterations) == max_iterations
        assert [it.index for it in run.iterations] == list(range(1, max_iterations + 1))
        assert len(engine.calls) == max_iterations

    @pytest.mark.asyncio
    async def test_adjustments_flow_into_next_iteration(self, white_png, black_png):
        engine = FakeEngine([black_png])
        run = await _controller(engine).run(white_png, DOC, max_iterations=3)

        first, second, third = run.iterations
        assert first.document == DOC
        assert applied_types(second.document.stylesheet) == ["layout", "spacing", "styling", "responsive"]
        assert second.document.markup == DOC.markup
        # Every tier is already present, so nothing more is appended
        assert third.document == second.document
        assert engine.calls[1][0] == second.document

    @pytest.mark.asyncio
    async def test_renders_at_controller_viewport(self, white_png, black_png):
        engine = FakeEngine([black_png])
        await _controller(engine, viewport=Viewport.MOBILE).run(white_png, DOC, max_iterations=2)
        assert {viewport for _, viewport in engine.calls} == {Viewport.MOBILE}


class TestFailures:

    @pytest.mark.asyncio
    async def test_total_render_failure_yields_synthetic_record(self, white_png):
        controller = _controller(
            failing_engine("primary"), placeholder=failing_engine("placeholder"),
            viewport=Viewport.TABLET,
        )
        run = await controller.run(white_png, DOC, max_iterations=3)

        assert run.status == RunStatus.FAILED
        assert len(run.iterations) == 1
        record = run.iterations[0]
        assert record.diff is None
        assert record.error
        assert record.fallback is True
        assert RasterImage.from_bytes(record.screenshot).size == Viewport.TABLET.size

    @pytest.mark.asyncio
    async def test_failure_after_progress_keeps_completed_iterations(self, white_png, black_png):
        engine = FakeEngine([black_png, RenderFailure("crash", engine="fake")])
        run = await _controller(engine, placeholder=failing_engine("placeholder")).run(
            white_png, DOC, max_iterations=5,
        )

        assert run.status == RunStatus.FAILED
        assert [it.index for it in run.iterations] == [1, 2]
        assert run.iterations[0].diff_percentage == 100.0
        assert run.iterations[1].diff is None
        assert run.best().index == 1

    @pytest.mark.asyncio
    async def test_undecodable_target(self, black_png):
        run = await _controller(FakeEngine([black_png])).run(b"definitely not a png", DOC)

        assert run.status == RunStatus.FAILED
        assert len(run.iterations) == 1
        assert run.iterations[0].diff is None
        assert run.iterations[0].screenshot == black_png
        assert run.iterations[0].error

    @pytest.mark.asyncio
    async def test_oversized_target_fails_run(self, monkeypatch, white_png):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1000)
        run = await _controller(FakeEngine([white_png])).run(solid_png(100, 100, WHITE), DOC)

        assert run.status == RunStatus.FAILED
        assert len(run.iterations) == 1
        assert run.iterations[0].diff is None
        assert run.iterations[0].error

    @pytest.mark.asyncio
    async def test_primary_crash_falls_back_to_placeholder(self, white_png):
        run = await _controller(failing_engine("primary")).run(white_png, DOC, max_iterations=2)

        assert run.iterations[0].fallback is True
        assert run.iterations[0].engine == "placeholder"
        assert run.iterations[0].diff is not None


class TestDeadline:

    @pytest.mark.asyncio
    async def test_deadline_before_first_render(self, white_png, black_png):
        engine = FakeEngine([black_png], delay=1.0)
        run = await _controller(engine).run(white_png, DOC, max_iterations=3, deadline_seconds=0.05)

        assert run.status == RunStatus.DEADLINE_EXCEEDED
        assert len(run.iterations) == 1
        assert run.iterations[0].diff is None
        assert engine.tracker.live == 0

    @pytest.mark.asyncio
    async def test_deadline_returns_partial_result(self):
        target = solid_png(200, 150, WHITE)
        engine = FakeEngine([solid_png(200, 150, BLACK)], delay=0.3)
        run = await _controller(engine).run(target, DOC, max_iterations=5, deadline_seconds=0.5)

        assert run.status == RunStatus.DEADLINE_EXCEEDED
        assert len(run.iterations) == 1
        assert run.iterations[0].diff_percentage == 100.0


class TestValidation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("max_iterations", [0, -1, 21])
    async def test_max_iterations_out_of_range(self, white_png, max_iterations):
        engine = FakeEngine([white_png])
        with pytest.raises(InputError):
            await _controller(engine).run(white_png, DOC, max_iterations=max_iterations)
        assert engine.calls == []


# ---------------------------------------------------------------------------
# End-to-end scenario
# ---------------------------------------------------------------------------


class TestScenario:

    @pytest.mark.asyncio
    async def test_white_target_three_iterations(self, white_png):
        """Desktop render of a small page against a white 800×600 target."""
        page = RasterImage.solid(1920, 1080, WHITE)
        pixels = page.pixels.copy()
        pixels[100:300, 100:900] = (30, 30, 30, 255)
        engine = FakeEngine([RasterImage(pixels).to_png()])

        run = await _controller(engine, convergence_threshold=5.0).run(
            white_png, Document("<h1>Hello</h1>", "h1 { font-size: 48px; }"), max_iterations=3,
        )

        assert 1 <= len(run.iterations) <= 3
        assert run.status in (RunStatus.CONVERGED, RunStatus.EXHAUSTED)
        for it in run.iterations:
            assert math.isfinite(it.diff_percentage)
            assert 0.0 <= it.diff_percentage <= 100.0
            assert it.diff.diff_image.size == (1920, 1080)
            RasterImage.from_bytes(it.screenshot)

    @pytest.mark.asyncio
    async def test_concurrent_runs_are_independent(self, white_png, black_png):
        controller = _controller(FakeEngine([black_png]))
        a, b = await asyncio.gather(
            controller.run(white_png, DOC, max_iterations=2),
            controller.run(black_png, DOC, max_iterations=2),
        )
        assert a.status == RunStatus.EXHAUSTED
        assert b.status == RunStatus.CONVERGED
