"""Design-to-code generation endpoint (vision LLM).

Two upload shapes are accepted:

- single (default): one ``pcDesign``/``spDesign`` image each
  (``pcImage``/``spImage`` are accepted as aliases)
- ``mode=multi``: ``pcDesign_0..pcDesign_N`` and ``spDesign_0..spDesign_N``
  with ``pcCount``/``spCount``; each set is stacked top to bottom
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from design2code.errors import Design2CodeError, InputError
from design2code.vision import CodeGenerator, GeneratedCode

from ..deps import get_code_generator
from ..errors import InternalError
from ..schemas import GenerateCodeResponse

logger = logging.getLogger("design2code.routes.generate")

router = APIRouter(prefix="/api", tags=["generate"])

_MULTI_FIELD_RE = re.compile(r"^(pcDesign|spDesign)_(\d+)$")


def _parse_count(raw: Optional[str]) -> int:
    try:
        return max(0, int(str(raw).strip()))
    except (TypeError, ValueError):
        return 0


async def _read(upload: Optional[UploadFile]) -> bytes:
    return await upload.read() if upload is not None else b""


async def _collect_multi(request: Request) -> dict:
    """Read ``pcDesign_N``/``spDesign_N`` uploads, ordered by N."""
    form = await request.form()
    found = {"pcDesign": [], "spDesign": []}
    for field, value in form.multi_items():
        match = _MULTI_FIELD_RE.match(field)
        if match is None or isinstance(value, str):
            continue
        data = await value.read()
        if data:
            found[match.group(1)].append((int(match.group(2)), data))
    return {prefix: [data for _, data in sorted(items)] for prefix, items in found.items()}


@router.post("/generate-code", response_model=GenerateCodeResponse)
async def generate_code(
    request: Request,
    pc_design: Optional[UploadFile] = File(None, alias="pcDesign"),
    sp_design: Optional[UploadFile] = File(None, alias="spDesign"),
    pc_image: Optional[UploadFile] = File(None, alias="pcImage"),
    sp_image: Optional[UploadFile] = File(None, alias="spImage"),
    mode: str = Form("single"),
    pc_count: Optional[str] = Form(None, alias="pcCount"),
    sp_count: Optional[str] = Form(None, alias="spCount"),
    reference_url: Optional[str] = Form(None, alias="referenceUrl"),
    generator: CodeGenerator = Depends(get_code_generator),
):
    """Generate html/css/js from desktop (PC) and mobile (SP) design images."""
    try:
        if mode == "multi":
            code = await _generate_multi(request, pc_count, sp_count, reference_url, generator)
        else:
            pc_bytes = await _read(pc_design) or await _read(pc_image)
            sp_bytes = await _read(sp_design) or await _read(sp_image)
            missing = {name: True for name, data in (("pcDesign", pc_bytes), ("spDesign", sp_bytes)) if not data}
            if missing:
                raise InputError("Both PC and SP design images are required", missing=missing)
            code = await generator.generate(pc_bytes, sp_bytes, reference_url or "")
    except Design2CodeError:
        raise
    except Exception as exc:
        logger.exception("code generation failed")
        raise InternalError("Code generation failed", str(exc)) from exc

    return GenerateCodeResponse(
        html=code.html,
        css=code.css,
        js=code.js,
        analysis=code.analysis,
        provider=code.provider,
    )


async def _generate_multi(
    request: Request,
    pc_count: Optional[str],
    sp_count: Optional[str],
    reference_url: Optional[str],
    generator: CodeGenerator,
) -> GeneratedCode:
    uploads = await _collect_multi(request)
    missing = {
        name: True
        for name, count, files in (
            ("pcDesign", _parse_count(pc_count), uploads["pcDesign"]),
            ("spDesign", _parse_count(sp_count), uploads["spDesign"]),
        )
        if count == 0 or not files
    }
    if missing:
        raise InputError("Both PC and SP design images are required", missing=missing)

    pc_files: List[bytes] = uploads["pcDesign"]
    sp_files: List[bytes] = uploads["spDesign"]
    logger.info("generate-code (multi): %d PC, %d SP image(s)", len(pc_files), len(sp_files))
    return await generator.generate_multi(pc_files, sp_files, reference_url or "")
