"""Vision LLM REST clients (Gemini, OpenAI).

Both clients take a prompt plus encoded images and return the model's
raw text. Parsing happens in vision/parsing.py.

Usage:
    client = GeminiClient(api_key="...")
    text = await client.generate(prompt, [pc_png, sp_png])
    await client.close()
"""

from __future__ import annotations

import base64
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..config import GEMINI_API_KEY, GEMINI_MODEL, OPENAI_API_KEY, OPENAI_MODEL
from ..errors import VisionError
from ..settings import VISION_HTTP_TIMEOUT, VISION_MAX_OUTPUT_TOKENS, VISION_TEMPERATURE

logger = logging.getLogger("design2code.vision")

GEMINI_API_BASE = "https://generativelanguage.googleapis.com"
OPENAI_API_BASE = "https://api.openai.com"


class VisionClient(ABC):
    """Async REST client for one vision provider.

    Args:
        api_key: Provider API key (required).
        model: Model identifier.
        timeout: HTTP request timeout in seconds.
    """

    provider: str = "vision"
    base_url: str = ""

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = VISION_HTTP_TIMEOUT,
        max_output_tokens: int = VISION_MAX_OUTPUT_TOKENS,
        temperature: float = VISION_TEMPERATURE,
    ):
        if not api_key:
            raise VisionError(f"{self.provider} API key not configured")
        self._api_key = api_key
        self.model = model
        self._timeout = timeout
        self.max_output_tokens = max_output_tokens
        self.temperature = temperature
        self._client: Optional[httpx.AsyncClient] = None

    def _headers(self) -> Dict[str, str]:
        return {}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=self._headers(),
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=3),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _post(self, path: str, payload: Dict[str, Any], params: Optional[Dict] = None) -> Dict[str, Any]:
        client = await self._get_client()
        try:
            resp = await client.post(path, json=payload, params=params)
        except httpx.TimeoutException as e:
            raise VisionError(f"{self.provider} API timeout") from e
        except httpx.ConnectError as e:
            raise VisionError(f"{self.provider} API connection error") from e

        if resp.status_code in (401, 403):
            raise VisionError(f"{self.provider} API rejected the API key ({resp.status_code})")
        if resp.status_code == 429:
            raise VisionError(f"{self.provider} API rate limit exceeded. Retry later.")
        if resp.status_code != 200:
            raise VisionError(f"{self.provider} API error {resp.status_code}: {resp.text[:200]}")

        try:
            return resp.json()
        except ValueError as e:
            raise VisionError(f"{self.provider} API returned non-JSON body") from e

    @abstractmethod
    async def generate(self, prompt: str, images: Sequence[bytes], mime_type: str = "image/png") -> str:
        """Send prompt + images, return the response text."""


class GeminiClient(VisionClient):
    provider = "gemini"
    base_url = GEMINI_API_BASE

    def __init__(self, api_key: str = "", model: str = "", **kwargs):
        super().__init__(api_key or GEMINI_API_KEY, model or GEMINI_MODEL, **kwargs)

    async def generate(self, prompt: str, images: Sequence[bytes], mime_type: str = "image/png") -> str:
        parts: List[Dict[str, Any]] = [{"text": prompt}]
        parts.extend(
            {"inline_data": {"mime_type": mime_type, "data": base64.b64encode(img).decode("ascii")}}
            for img in images
        )
        payload = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
            },
        }
        data = await self._post(
            f"/v1beta/models/{self.model}:generateContent",
            payload,
            params={"key": self._api_key},
        )

        candidates = data.get("candidates") or []
        if not candidates:
            feedback = data.get("promptFeedback", {})
            raise VisionError(f"gemini returned no candidates: {feedback}")
        text = "".join(
            part.get("text", "")
            for part in candidates[0].get("content", {}).get("parts", [])
        )
        logger.info("gemini response: model=%s, length=%d", self.model, len(text))
        return text


class OpenAIClient(VisionClient):
    provider = "openai"
    base_url = OPENAI_API_BASE

    def __init__(self, api_key: str = "", model: str = "", **kwargs):
        super().__init__(api_key or OPENAI_API_KEY, model or OPENAI_MODEL, **kwargs)

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    async def generate(self, prompt: str, images: Sequence[bytes], mime_type: str = "image/png") -> str:
        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        content.extend(
            {
                "type": "image_url",
                "image_url": {
                    "url": f"data:{mime_type};base64,{base64.b64encode(img).decode('ascii')}",
                    "detail": "high",
                },
            }
            for img in images
        )
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": content}],
            "max_tokens": self.max_output_tokens,
            "temperature": self.temperature,
        }
        data = await self._post("/v1/chat/completions", payload)

        choices = data.get("choices") or []
        if not choices:
            raise VisionError("openai returned no choices")
        text = choices[0].get("message", {}).get("content") or ""
        logger.info("openai response: model=%s, length=%d", self.model, len(text))
        return text


def build_vision_clients(
    gemini_api_key: str = GEMINI_API_KEY,
    openai_api_key: str = OPENAI_API_KEY,
) -> List[VisionClient]:
    """Configured providers in preference order (Gemini, then OpenAI)."""
    clients: List[VisionClient] = []
    if gemini_api_key:
        clients.append(GeminiClient(api_key=gemini_api_key))
    if openai_api_key:
        clients.append(OpenAIClient(api_key=openai_api_key))
    if not clients:
        logger.warning("no vision provider configured (GEMINI_API_KEY / OPENAI_API_KEY)")
    return clients
