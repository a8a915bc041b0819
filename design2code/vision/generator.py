"""CodeGenerator: design images in, GeneratedCode out.

Providers are tried in order; a provider error or an unparseable
response moves on to the next one.
"""

from __future__ import annotations

import asyncio
import io
from dataclasses import replace
import logging
from typing import List, Sequence

from PIL import Image, UnidentifiedImageError

from ..errors import InputError, VisionError, VisionUnavailableError
from ..raster import combine_vertically
from ..settings import PC_DESIGN_WIDTH, SP_DESIGN_WIDTH
from .client import VisionClient
from .parsing import GeneratedCode, ParseFailure, parse_generated_code
from .prompts import build_code_prompt

logger = logging.getLogger("design2code.vision")


def prepare_design_image(data: bytes, max_width: int) -> bytes:
    """Decode an uploaded design, downscale to ``max_width`` and re-encode as PNG."""
    if not data:
        raise InputError("Design image is empty")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img = img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise InputError(f"Cannot decode design image: {exc}") from exc

    if img.width > max_width:
        height = max(1, round(img.height * max_width / img.width))
        img = img.resize((max_width, height), Image.LANCZOS)

    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


class CodeGenerator:
    """Generates page code from desktop + mobile design images."""

    def __init__(self, clients: Sequence[VisionClient]):
        self.clients: List[VisionClient] = list(clients)

    async def close(self) -> None:
        for client in self.clients:
            await client.close()

    async def generate(self, pc_design: bytes, sp_design: bytes, reference_url: str = "") -> GeneratedCode:
        return await self.generate_multi([pc_design], [sp_design], reference_url)

    async def generate_multi(
        self,
        pc_designs: Sequence[bytes],
        sp_designs: Sequence[bytes],
        reference_url: str = "",
    ) -> GeneratedCode:
        """Generate from one or more images per layout.

        Each layout's images are resized to its design width and stacked
        top to bottom, so a long page can be uploaded in sections.
        """
        if not self.clients:
            raise VisionUnavailableError(
                "No vision provider configured. Set GEMINI_API_KEY or OPENAI_API_KEY."
            )
        if not pc_designs or not sp_designs:
            raise InputError("Both PC and SP design images are required")

        pc_parts, sp_parts = await asyncio.gather(
            asyncio.gather(*(asyncio.to_thread(prepare_design_image, d, PC_DESIGN_WIDTH) for d in pc_designs)),
            asyncio.gather(*(asyncio.to_thread(prepare_design_image, d, SP_DESIGN_WIDTH) for d in sp_designs)),
        )
        pc_png, sp_png = await asyncio.gather(
            asyncio.to_thread(combine_vertically, pc_parts),
            asyncio.to_thread(combine_vertically, sp_parts),
        )
        prompt = build_code_prompt(reference_url)

        errors: List[str] = []
        for client in self.clients:
            try:
                text = await client.generate(prompt, [pc_png, sp_png])
            except VisionError as exc:
                logger.warning("%s generation failed: %s", client.provider, exc)
                errors.append(f"{client.provider}: {exc}")
                continue

            result = parse_generated_code(text)
            if isinstance(result, ParseFailure):
                logger.warning(
                    "%s response unparseable (%s); raw sample: %s",
                    client.provider, result.reason, result.raw_text[:300],
                )
                errors.append(f"{client.provider}: {result.reason}")
                continue

            logger.info(
                "%s generated code: html=%d css=%d js=%d chars (strategy=%s)",
                client.provider, len(result.html), len(result.css), len(result.js), result.strategy,
            )
            return replace(result, provider=client.provider)

        raise VisionError("Code generation failed for every provider: " + "; ".join(errors))
