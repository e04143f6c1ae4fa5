"""Mock provider: deterministic responses for tests and local development."""

from __future__ import annotations

import json
import time

from .base import BaseProvider, ProviderResult

MOCK_ANALYSIS = {
    "managementSentiment": {
        "score": 72,
        "label": "positive",
        "summary": "Mock analysis: management sounded upbeat about demand.",
    },
    "keyThemes": ["AI Infrastructure Leadership", "Data Center Growth", "Supply Chain Management"],
    "overallTone": "confident",
}

# Comparison prompts open with this header; everything else is an analysis.
COMPARISON_PROMPT_PREFIX = "Compare these earnings call excerpts"

MOCK_COMPARISON = {
    "trend": "stable",
    "insights": ["Mock comparison: no material change between quarters"],
}


class MockProvider(BaseProvider):
    name = "mock"

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
        t0 = time.monotonic()
        payload = MOCK_COMPARISON if prompt.lstrip().startswith(COMPARISON_PROMPT_PREFIX) else MOCK_ANALYSIS
        text = json.dumps(payload)
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or "mock-v1",
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
