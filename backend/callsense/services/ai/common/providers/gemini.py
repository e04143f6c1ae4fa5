"""Google Gemini provider (generateContent REST API)."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from .base import BaseProvider, ProviderError, ProviderResponseError, ProviderResult

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/models"

# Earnings commentary is business text; the default filters occasionally block it.
RELAXED_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]


class GeminiProvider(BaseProvider):
    name = "gemini"

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    def _build_payload(
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        top_k: int | None,
        top_p: float | None,
        relax_safety: bool,
    ) -> dict[str, Any]:
        generation_config: dict[str, Any] = {
            "temperature": temperature,
            "maxOutputTokens": max_tokens,
        }
        if top_k is not None:
            generation_config["topK"] = top_k
        if top_p is not None:
            generation_config["topP"] = top_p

        payload: dict[str, Any] = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": generation_config,
        }
        if relax_safety:
            payload["safetySettings"] = RELAXED_SAFETY_SETTINGS
        return payload

    async def generate(
        self,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.3,
        max_tokens: int = 1024,
        top_k: int | None = None,
        top_p: float | None = None,
        timeout_seconds: float = 30.0,
        relax_safety: bool = False,
    ) -> ProviderResult:
        model = model or "gemini-1.5-flash"
        t0 = time.monotonic()

        payload = self._build_payload(
            prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            top_k=top_k,
            top_p=top_p,
            relax_safety=relax_safety,
        )

        async with httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport) as client:
            resp = await client.post(
                f"{self._base_url}/{model}:generateContent",
                params={"key": self._api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
            )
            if resp.is_error:
                raise ProviderError(f"Gemini API error: {resp.status_code} - {resp.text[:500]}")
            data = resp.json()

        elapsed = (time.monotonic() - t0) * 1000
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError) as exc:
            raise ProviderResponseError("No response text from Gemini") from exc
        if not text:
            raise ProviderResponseError("No response text from Gemini")

        usage = data.get("usageMetadata", {})

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("promptTokenCount", 0),
            completion_tokens=usage.get("candidatesTokenCount", 0),
            latency_ms=round(elapsed, 2),
        )
