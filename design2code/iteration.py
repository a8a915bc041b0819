"""IterationController: the Render → Diff → Adjust refinement loop.

State machine over one IterationRun:

    Running(1) → ... → Running(i)
        render (via FallbackChain) → diff against target → record Iteration
        diff < threshold          → Converged
        i == max_iterations       → ExhaustedBudget
        otherwise                 → adjust stylesheet, Running(i + 1)

    RenderFailure / DiffComputationError inside a pass → synthetic record, Failed
    Deadline reached                                   → DeadlineExceeded

Iteration indices are 1-based and strictly increasing. The returned run
always holds at least one record.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional, Sequence, Tuple

from .adjustments import apply_adjustments
from .diff import diff
from .errors import DiffComputationError, InputError, RenderFailure
from .models import Document, Iteration, IterationRun, RunStatus, Viewport
from .raster import RasterImage
from .rendering import FallbackChain, RenderOutcome, placeholder_png
from .settings import (
    CONVERGENCE_THRESHOLD,
    DEFAULT_MAX_ITERATIONS,
    DIFF_TOLERANCE,
    MAX_ITERATIONS_LIMIT,
)

logger = logging.getLogger("design2code.iteration")


class IterationController:
    """Drives one IterationRun per ``run()`` call.

    Holds no per-run state, so one controller can serve concurrent runs;
    each render still gets its own browser process from the chain.

    Args:
        renderer: FallbackChain used for every render.
        viewport: Device class every iteration is rendered at.
        tolerance: Per-pixel color tolerance passed to the differ.
        convergence_threshold: Stop once diff percentage is below this.
        tiers: Optional (type, threshold) override for adjustment tiers.
    """

    def __init__(
        self,
        renderer: FallbackChain,
        *,
        viewport: Viewport = Viewport.DESKTOP,
        tolerance: float = DIFF_TOLERANCE,
        convergence_threshold: float = CONVERGENCE_THRESHOLD,
        tiers: Optional[Sequence[Tuple[str, float]]] = None,
        max_iterations_limit: int = MAX_ITERATIONS_LIMIT,
    ):
        self.renderer = renderer
        self.viewport = viewport
        self.tolerance = tolerance
        self.convergence_threshold = convergence_threshold
        self.tiers = tiers
        self.max_iterations_limit = max_iterations_limit

    def _synthetic(self, index: int, document: Document, error: str) -> Iteration:
        return Iteration(
            index=index,
            document=document,
            screenshot=placeholder_png(self.viewport),
            diff=None,
            engine="placeholder",
            fallback=True,
            error=error,
        )

    async def _render(self, document: Document, remaining: Optional[float]) -> RenderOutcome:
        if remaining is None:
            return await self.renderer.render(document, self.viewport)
        return await asyncio.wait_for(self.renderer.render(document, self.viewport), timeout=remaining)

    async def run(
        self,
        target: bytes,
        document: Document,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        deadline_seconds: Optional[float] = None,
    ) -> IterationRun:
        """Refine ``document`` towards the ``target`` image.

        Args:
            target: Encoded target image (PNG/JPEG bytes).
            document: Initial markup + stylesheet.
            max_iterations: Render passes allowed (1..max_iterations_limit).
            deadline_seconds: Overall budget; completed iterations are
                returned when it runs out.

        Raises:
            InputError: max_iterations outside the allowed range.
        """
        if max_iterations < 1 or max_iterations > self.max_iterations_limit:
            raise InputError(
                f"maxIterations must be between 1 and {self.max_iterations_limit}, got {max_iterations}"
            )

        loop = asyncio.get_running_loop()
        deadline = loop.time() + deadline_seconds if deadline_seconds is not None else None

        run = IterationRun()
        target_image: Optional[RasterImage] = None
        current = document

        for index in range(1, max_iterations + 1):
            remaining = deadline - loop.time() if deadline is not None else None
            if remaining is not None and remaining <= 0:
                logger.warning("deadline reached before iteration %d", index)
                run.status = RunStatus.DEADLINE_EXCEEDED
                break

            try:
                outcome = await self._render(current, remaining)
            except asyncio.TimeoutError:
                logger.warning("deadline reached during iteration %d render", index)
                run.status = RunStatus.DEADLINE_EXCEEDED
                break
            except RenderFailure as exc:
                logger.error("iteration %d: render failed: %s", index, exc)
                run.iterations.append(self._synthetic(index, current, str(exc)))
                run.status = RunStatus.FAILED
                break

            try:
                if target_image is None:
                    target_image = await asyncio.to_thread(RasterImage.from_bytes, target)
                rendered = await asyncio.to_thread(RasterImage.from_bytes, outcome.png)
                result = await asyncio.to_thread(diff, target_image, rendered, self.tolerance)
            except DiffComputationError as exc:
                logger.error("iteration %d: diff failed: %s", index, exc)
                run.iterations.append(Iteration(
                    index=index,
                    document=current,
                    screenshot=outcome.png,
                    diff=None,
                    engine=outcome.engine,
                    fallback=outcome.fallback,
                    error=str(exc),
                ))
                run.status = RunStatus.FAILED
                break

            run.iterations.append(Iteration(
                index=index,
                document=current,
                screenshot=outcome.png,
                diff=result,
                engine=outcome.engine,
                fallback=outcome.fallback,
            ))
            logger.info(
                "iteration %d/%d: diff %.2f%% (engine=%s%s)",
                index, max_iterations, result.diff_percentage, outcome.engine,
                ", placeholder" if outcome.fallback else "",
            )

            if result.diff_percentage < self.convergence_threshold:
                run.status = RunStatus.CONVERGED
                break
            if index == max_iterations:
                run.status = RunStatus.EXHAUSTED
                break
            current = apply_adjustments(current, result.diff_percentage, index, self.tiers)

        if not run.iterations:
            run.iterations.append(
                self._synthetic(1, document, "Request deadline reached before the first render completed")
            )
            run.status = run.status or RunStatus.FAILED

        logger.info("run finished: status=%s, iterations=%d", run.status.value, len(run.iterations))
        return run
