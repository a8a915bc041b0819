"""Vision response parsing: tagged result over one explicit strategy chain.

LLM output arrives as free text. ``parse_generated_code`` tries each
extraction strategy in order and returns either ``GeneratedCode`` or
``ParseFailure`` carrying the raw text; callers never guess the shape.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger("design2code.vision.parsing")


@dataclass(frozen=True)
class GeneratedCode:
    html: str
    css: str
    js: str = ""
    analysis: str = ""
    strategy: str = ""
    provider: str = ""


@dataclass(frozen=True)
class ParseFailure:
    raw_text: str
    reason: str


ParseResult = Union[GeneratedCode, ParseFailure]

_FENCED_JSON_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)
_FENCED_ANY_RE = re.compile(r"```[a-zA-Z]*\s*([\s\S]*?)\s*```")
_FENCED_LANG_RE = "```{lang}\\s*([\\s\\S]*?)\\s*```"


def _first_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} span, honoring JSON string escapes."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for pos in range(start, len(text)):
            ch = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start: pos + 1]
        start = text.find("{", start + 1)
    return None


def _from_payload(payload: Any, strategy: str) -> Optional[GeneratedCode]:
    if not isinstance(payload, dict):
        return None
    html = payload.get("html")
    css = payload.get("css")
    if not isinstance(html, str) or not isinstance(css, str) or not html.strip():
        return None
    js = payload.get("js") or payload.get("javascript") or ""
    analysis = payload.get("analysis") or ""
    return GeneratedCode(
        html=html,
        css=css,
        js=js if isinstance(js, str) else "",
        analysis=analysis if isinstance(analysis, str) else json.dumps(analysis, ensure_ascii=False),
        strategy=strategy,
    )


def _loads(candidate: Optional[str]) -> Any:
    if not candidate:
        return None
    try:
        return json.loads(candidate.strip())
    except json.JSONDecodeError:
        return None


def _whole_text(text: str) -> Optional[GeneratedCode]:
    return _from_payload(_loads(text), "json")


def _fenced_json(text: str) -> Optional[GeneratedCode]:
    match = _FENCED_JSON_RE.search(text)
    return _from_payload(_loads(match.group(1) if match else None), "fenced_json")


def _fenced_any(text: str) -> Optional[GeneratedCode]:
    for match in _FENCED_ANY_RE.finditer(text):
        code = _from_payload(_loads(match.group(1)), "fenced_block")
        if code:
            return code
    return None


def _embedded_object(text: str) -> Optional[GeneratedCode]:
    return _from_payload(_loads(_first_json_object(text)), "embedded_object")


def _fenced_sections(text: str) -> Optional[GeneratedCode]:
    sections: Dict[str, str] = {}
    for lang in ("html", "css", "javascript", "js"):
        match = re.search(_FENCED_LANG_RE.format(lang=lang), text, re.IGNORECASE)
        if match:
            sections.setdefault("js" if lang == "javascript" else lang, match.group(1))
    if "html" not in sections or "css" not in sections:
        return None
    return GeneratedCode(
        html=sections["html"],
        css=sections["css"],
        js=sections.get("js", ""),
        analysis="Extracted from fenced code sections",
        strategy="fenced_sections",
    )


STRATEGIES: List[Tuple[str, Callable[[str], Optional[GeneratedCode]]]] = [
    ("json", _whole_text),
    ("fenced_json", _fenced_json),
    ("fenced_block", _fenced_any),
    ("embedded_object", _embedded_object),
    ("fenced_sections", _fenced_sections),
]


def parse_generated_code(text: str) -> ParseResult:
    """Extract {html, css, js} from a vision model response."""
    if not text or not text.strip():
        return ParseFailure(raw_text=text or "", reason="empty response")

    for name, strategy in STRATEGIES:
        code = strategy(text)
        if code is not None:
            if name != "json":
                logger.info("recovered generated code via %s strategy", name)
            return code

    logger.warning("no extraction strategy matched (response length=%d)", len(text))
    return ParseFailure(raw_text=text, reason="no html/css found in response")
