"""Tests for the shared AI layer.

Covers:
- json_tools: first balanced top-level object, braces inside strings
- providers factory: allowlist, missing key, mock
- Gemini provider: request payload, response parsing, HTTP errors
- router: per-scope generation parameters
- audit: hashing and raw-text opt-in
"""

import asyncio
import json
import os
import unittest
from unittest.mock import patch

import httpx
import pytest

from callsense.core.config import get_settings


class JsonToolsTests(unittest.TestCase):
    """Tests for callsense.services.ai.common.json_tools.extract_json_object."""

    def test_valid_json_object(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        result = extract_json_object('{"overallTone": "mixed", "keyThemes": []}')
        self.assertEqual(result, {"overallTone": "mixed", "keyThemes": []})

    def test_json_with_prose_and_fences(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        text = 'Here is the analysis:\n```json\n{"trend": "improving", "insights": ["a"]}\n```\nHope this helps.'
        self.assertEqual(extract_json_object(text), {"trend": "improving", "insights": ["a"]})

    def test_nested_braces(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        result = extract_json_object('prefix {"a": {"b": {"c": 1}}} suffix')
        self.assertEqual(result["a"]["b"]["c"], 1)

    def test_braces_inside_strings_do_not_end_object(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        text = '{"summary": "uses {curly} and } braces", "n": 1} trailing {"x": 2}'
        result = extract_json_object(text)
        self.assertEqual(result, {"summary": "uses {curly} and } braces", "n": 1})

    def test_escaped_quotes(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        result = extract_json_object('{"msg": "CEO said \\"record\\" quarter"}')
        self.assertIn("record", result["msg"])

    def test_first_object_wins(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        self.assertEqual(extract_json_object('{"a": 1} {"b": 2}'), {"a": 1})

    def test_empty_and_plain_text(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        self.assertIsNone(extract_json_object(""))
        self.assertIsNone(extract_json_object("   "))
        self.assertIsNone(extract_json_object(None))
        self.assertIsNone(extract_json_object("No JSON here at all"))

    def test_unbalanced_returns_none(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        self.assertIsNone(extract_json_object('{"a": {"b": 1}'))

    def test_invalid_first_object_returns_none(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        self.assertIsNone(extract_json_object('{invalid json} {"a": 1}'))

    def test_arrays_are_not_objects(self):
        from callsense.services.ai.common.json_tools import extract_json_object

        self.assertIsNone(extract_json_object("[1, 2, 3]"))


class ProviderFactoryTests(unittest.TestCase):
    """Tests for provider factory (get_provider)."""

    def setUp(self):
        get_settings.cache_clear()

    def tearDown(self):
        get_settings.cache_clear()

    @patch.dict(os.environ, {"AI_ALLOWED_PROVIDERS": "gemini,mock"}, clear=False)
    def test_mock_provider_available_when_allowlisted(self):
        from callsense.services.ai.common.providers import get_provider
        from callsense.services.ai.common.providers.mock import MockProvider

        self.assertIsInstance(get_provider("mock"), MockProvider)

    @patch.dict(os.environ, {"AI_ALLOWED_PROVIDERS": "gemini"}, clear=False)
    def test_provider_outside_allowlist_disabled(self):
        from callsense.services.ai.common.providers import get_provider

        self.assertIsNone(get_provider("mock"))

    @patch.dict(os.environ, {"AI_ALLOWED_PROVIDERS": "gemini,mock", "GEMINI_API_KEY": ""}, clear=False)
    def test_gemini_without_key_disabled(self):
        from callsense.services.ai.common.providers import get_provider

        self.assertIsNone(get_provider("gemini"))

    @patch.dict(os.environ, {"AI_ALLOWED_PROVIDERS": "gemini,mock", "GEMINI_API_KEY": "abc"}, clear=False)
    def test_gemini_with_key(self):
        from callsense.services.ai.common.providers import get_provider
        from callsense.services.ai.common.providers.gemini import GeminiProvider

        self.assertIsInstance(get_provider("Gemini "), GeminiProvider)

    @patch.dict(os.environ, {"AI_ALLOWED_PROVIDERS": "gemini,mock,openai"}, clear=False)
    def test_unknown_provider_disabled(self):
        from callsense.services.ai.common.providers import get_provider

        self.assertIsNone(get_provider("openai"))


class MockProviderTests(unittest.TestCase):
    def test_analysis_prompt_returns_analysis_shape(self):
        from callsense.services.ai.common.providers.mock import MockProvider

        result = asyncio.run(MockProvider().generate("Analyze this earnings call transcript"))
        parsed = json.loads(result.raw_text)
        self.assertEqual(result.provider, "mock")
        self.assertIn("managementSentiment", parsed)

    def test_comparison_prompt_returns_trend_shape(self):
        from callsense.services.ai.common.providers.mock import MockProvider

        result = asyncio.run(
            MockProvider().generate("Compare these earnings call excerpts and provide trend analysis.", model="custom-model")
        )
        self.assertIn("trend", json.loads(result.raw_text))
        self.assertEqual(result.model, "custom-model")

    def test_analysis_prompt_mentioning_trend_keeps_analysis_shape(self):
        from callsense.services.ai.common.providers.mock import MockProvider

        prompt = 'Analyze this earnings call transcript.\nCEO: the "trend" in bookings is up.'
        parsed = json.loads(asyncio.run(MockProvider().generate(prompt)).raw_text)
        self.assertIn("managementSentiment", parsed)
        self.assertNotIn("trend", parsed)


def _gemini_response(text: str, status_code: int = 200) -> httpx.Response:
    return httpx.Response(
        status_code,
        json={
            "candidates": [{"content": {"parts": [{"text": text}]}}],
            "usageMetadata": {"promptTokenCount": 12, "candidatesTokenCount": 34},
        },
    )


@pytest.mark.asyncio
async def test_gemini_provider_sends_generation_config_and_safety_settings():
    from callsense.services.ai.common.providers.gemini import GeminiProvider

    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = request.url
        captured["body"] = json.loads(request.content)
        return _gemini_response('{"ok": true}')

    provider = GeminiProvider("secret", transport=httpx.MockTransport(handler))
    result = await provider.generate(
        "hello", temperature=0.3, max_tokens=1024, top_k=1, top_p=1.0, relax_safety=True
    )

    assert result.raw_text == '{"ok": true}'
    assert result.provider == "gemini"
    assert result.model == "gemini-1.5-flash"
    assert result.prompt_tokens == 12
    assert result.completion_tokens == 34

    assert captured["url"].path.endswith("/gemini-1.5-flash:generateContent")
    assert captured["url"].params["key"] == "secret"
    body = captured["body"]
    assert body["contents"] == [{"parts": [{"text": "hello"}]}]
    assert body["generationConfig"] == {"temperature": 0.3, "maxOutputTokens": 1024, "topK": 1, "topP": 1.0}
    assert {s["threshold"] for s in body["safetySettings"]} == {"BLOCK_NONE"}
    assert len(body["safetySettings"]) == 4


@pytest.mark.asyncio
async def test_gemini_provider_omits_unset_sampling_params():
    from callsense.services.ai.common.providers.gemini import GeminiProvider

    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["body"] = json.loads(request.content)
        return _gemini_response("{}")

    provider = GeminiProvider("secret", transport=httpx.MockTransport(handler))
    await provider.generate("hello", max_tokens=512)

    assert "topK" not in captured["body"]["generationConfig"]
    assert "topP" not in captured["body"]["generationConfig"]
    assert "safetySettings" not in captured["body"]


@pytest.mark.asyncio
async def test_gemini_provider_raises_on_http_error():
    from callsense.services.ai.common.providers.base import ProviderError
    from callsense.services.ai.common.providers.gemini import GeminiProvider

    provider = GeminiProvider(
        "secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(429, text="quota exceeded")),
    )
    with pytest.raises(ProviderError, match="429"):
        await provider.generate("hello")


@pytest.mark.asyncio
async def test_gemini_provider_raises_on_missing_text():
    from callsense.services.ai.common.providers.base import ProviderResponseError
    from callsense.services.ai.common.providers.gemini import GeminiProvider

    provider = GeminiProvider(
        "secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"candidates": []})),
    )
    with pytest.raises(ProviderResponseError):
        await provider.generate("hello")


def test_router_analysis_scope(mock_provider_env):
    from callsense.services.ai.common.providers.mock import MockProvider
    from callsense.services.ai.common.router import resolve

    config = resolve("analysis")
    assert isinstance(config.provider, MockProvider)
    assert config.temperature == 0.3
    assert config.max_tokens == 1024
    assert config.top_k == 1
    assert config.top_p == 1.0
    assert config.relax_safety is True


def test_router_comparison_scope(mock_provider_env):
    from callsense.services.ai.common.router import resolve

    config = resolve("comparison")
    assert config.max_tokens == 512
    assert config.top_k is None
    assert config.top_p is None
    assert config.relax_safety is False


def test_router_without_credential_has_no_provider(no_provider_env):
    from callsense.services.ai.common.router import resolve

    assert resolve("analysis").provider is None


def test_router_rejects_unknown_scope():
    from callsense.services.ai.common.router import resolve

    with pytest.raises(ValueError):
        resolve("intent")


def test_audit_record_hashes_without_raw_text(monkeypatch):
    from callsense.services.ai.common.audit import build_audit_record
    from callsense.services.ai.common.providers.base import ProviderResult

    monkeypatch.setenv("AI_DEBUG_STORE_RAW", "false")
    get_settings.cache_clear()

    record = build_audit_record(
        scope="analysis",
        provider_result=ProviderResult(raw_text="{}", model="m", provider="mock"),
        prompt_text="prompt",
        parsed_output={"overallTone": "mixed"},
        extra_meta={"transcript_chars": 6},
    )
    assert record["action"] == "AI_TRANSCRIPT_SCORED"
    assert len(record["prompt_hash"]) == 64
    assert record["transcript_chars"] == 6
    assert "prompt_raw" not in record


def test_audit_record_stores_raw_when_enabled(monkeypatch):
    from callsense.services.ai.common.audit import build_audit_record
    from callsense.services.ai.common.providers.base import ProviderResult

    monkeypatch.setenv("AI_DEBUG_STORE_RAW", "true")
    get_settings.cache_clear()

    record = build_audit_record(
        scope="unknown",
        provider_result=ProviderResult(raw_text="resp", model="m", provider="mock"),
        prompt_text="prompt",
        parsed_output=None,
    )
    assert record["action"] == "AI_RUN"
    assert record["prompt_raw"] == "prompt"
    assert record["response_raw"] == "resp"


@pytest.mark.asyncio
async def test_comparison_call_sends_no_safety_settings(gemini_env):
    from callsense.services.ai.common.providers import gemini as gemini_module
    from callsense.services.ai.transcript_analysis.remote_scorer import RemoteScorer
    from callsense.utils.rate_limit import SlidingWindowRateLimiter

    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        bodies.append(body)
        prompt = body["contents"][0]["parts"][0]["text"]
        if prompt.startswith("Compare these earnings call excerpts"):
            return _gemini_response('{"trend": "improving", "insights": ["Margins widened"]}')
        return _gemini_response(
            '{"managementSentiment": {"score": 70, "label": "positive", "summary": "Upbeat"},'
            ' "keyThemes": [], "overallTone": "confident"}'
        )

    real_init = gemini_module.GeminiProvider.__init__

    def init_with_transport(self, api_key, **kwargs):
        kwargs["transport"] = httpx.MockTransport(handler)
        real_init(self, api_key, **kwargs)

    scorer = RemoteScorer(SlidingWindowRateLimiter(window_seconds=0))
    with patch.object(gemini_module.GeminiProvider, "__init__", init_with_transport):
        outcome = await scorer.score_one("CEO: Demand remained strong.")
        summary = await scorer.compare_trend([("Q1 2024", "CEO: flat"), ("Q2 2024", "CEO: better")])

    assert outcome.ok
    assert summary.trend == "improving"
    assert "safetySettings" in bodies[0]
    assert "safetySettings" not in bodies[1]
