"""AI transcript scoring through the configured remote provider (Gemini).

Features:
- Shared sliding-window rate limiter (free tier: 15 requests/minute)
- Input truncation (100 000 chars per transcript, 5 000 per quarter when comparing)
- Brace-depth JSON extraction from free-form model output
- Normalization: score clamped to 0-100, label re-derived from the score,
  themes capped at 5
- Every failure degrades to an unavailable outcome, never an exception
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from pydantic import ValidationError

from callsense.core.config import get_settings
from callsense.utils.rate_limit import SlidingWindowRateLimiter

from ..common import router as ai_router
from ..common.audit import log_ai_run
from ..common.json_tools import extract_json_object
from ..common.providers.base import ProviderResult
from .contracts import (
    MAX_THEMES,
    VALID_TONES,
    AnalysisResult,
    ScoringOutcome,
    SentimentAnalysis,
    TrendSummary,
    clamp_score,
    label_for_score,
    tone_for_score,
)

logger = logging.getLogger(__name__)

FALLBACK_SUMMARY = "AI analysis did not include a summary"
NOT_ENOUGH_DATA_INSIGHT = "Not enough data for AI comparison"
COMPARISON_UNAVAILABLE_INSIGHT = "AI comparison unavailable"

ANALYSIS_PROMPT_TEMPLATE = """Analyze this earnings call transcript and return ONLY a valid JSON response with this exact structure:

{{
  "managementSentiment": {{
    "score": <number between 0-100, where 100 is most positive>,
    "label": <"positive" or "neutral" or "negative">,
    "summary": <brief summary of management's sentiment>
  }},
  "keyThemes": <array of 3-5 key strategic themes discussed>,
  "overallTone": <"confident" or "cautious" or "mixed">
}}

Guidelines:
- Score 70-100: positive (strong growth, exceeded expectations)
- Score 40-69: neutral (balanced view, some challenges)
- Score 0-39: negative (significant concerns, missed targets)
- Extract specific themes like "AI Infrastructure Leadership", "Data Center Growth", etc.
- Base analysis on actual content, not speculation

Transcript to analyze:
{transcript}"""

COMPARISON_PROMPT_TEMPLATE = """Compare these earnings call excerpts and provide trend analysis. Return ONLY valid JSON:

{{
  "trend": <"improving" or "stable" or "declining">,
  "insights": [<2-3 key insights about the progression>]
}}

{excerpts}"""


def build_analysis_prompt(text: str, max_chars: int) -> str:
    return ANALYSIS_PROMPT_TEMPLATE.format(transcript=text[:max_chars])


def build_comparison_prompt(entries: Sequence[tuple[str, str]], max_chars: int) -> str:
    excerpts = "\n\n".join(f'{quarter}: "{text[:max_chars]}"' for quarter, text in entries)
    return COMPARISON_PROMPT_TEMPLATE.format(excerpts=excerpts)


def normalize_analysis(parsed: dict[str, Any]) -> AnalysisResult | None:
    """Reconcile provider JSON into an ``AnalysisResult``.

    Returns ``None`` when the payload has no usable management score.
    """
    sentiment = parsed.get("managementSentiment")
    if not isinstance(sentiment, dict):
        return None

    try:
        score = clamp_score(sentiment.get("score"))
    except (TypeError, ValueError):
        return None

    label = label_for_score(score)
    if sentiment.get("label") != label:
        logger.info("Provider label %r overridden by score-derived %r (score=%d)", sentiment.get("label"), label, score)

    summary = sentiment.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        summary = FALLBACK_SUMMARY

    raw_themes = parsed.get("keyThemes")
    if not isinstance(raw_themes, list):
        raw_themes = []
    themes = tuple(str(theme) for theme in raw_themes[:MAX_THEMES])

    tone = parsed.get("overallTone")
    if tone not in VALID_TONES:
        tone = tone_for_score(score)

    return AnalysisResult(
        management_sentiment=SentimentAnalysis(score=score, label=label, summary=summary.strip()),
        key_themes=themes,
        overall_tone=tone,
    )


class RemoteScorer:
    """Scores transcripts with the remote provider behind a shared rate limiter."""

    def __init__(self, rate_limiter: SlidingWindowRateLimiter) -> None:
        self.rate_limiter = rate_limiter

    @property
    def is_configured(self) -> bool:
        return get_settings().remote_scoring_configured

    async def _call(self, scope: str, prompt: str) -> ProviderResult:
        config = ai_router.resolve(scope)
        if config.provider is None:
            raise RuntimeError("Remote provider is not configured")

        await self.rate_limiter.wait_if_needed()
        return await config.provider.generate(
            prompt,
            model=config.model,
            temperature=config.temperature,
            max_tokens=config.max_tokens,
            top_k=config.top_k,
            top_p=config.top_p,
            timeout_seconds=config.timeout_seconds,
            relax_safety=config.relax_safety,
        )

    async def score_one(self, text: str) -> ScoringOutcome:
        settings = get_settings()
        if not settings.remote_scoring_configured:
            logger.warning("AI scoring requested but no provider credential is configured")
            return ScoringOutcome.unavailable("not_configured")

        prompt = build_analysis_prompt(text, settings.ai_max_transcript_chars)

        try:
            provider_result = await self._call("analysis", prompt)
        except Exception as exc:
            logger.warning("AI scoring provider call failed: %s", exc, exc_info=True)
            return ScoringOutcome.unavailable(f"provider_error: {exc}")

        try:
            parsed = extract_json_object(provider_result.raw_text)
            if parsed is None:
                logger.warning("AI scoring: no valid JSON object in provider response")
                return ScoringOutcome.unavailable("no_json")

            result = normalize_analysis(parsed)
            if result is None:
                logger.warning("AI scoring: response has no usable management score")
                return ScoringOutcome.unavailable("invalid_response")

            log_ai_run(
                scope="analysis",
                provider_result=provider_result,
                prompt_text=prompt,
                parsed_output=result.to_payload(),
                extra_meta={"transcript_chars": len(text)},
            )
        except ValidationError as exc:
            logger.warning("AI scoring: response failed validation: %s", exc)
            return ScoringOutcome.unavailable("invalid_response")
        except Exception as exc:
            logger.warning("AI scoring: could not process provider response: %s", exc, exc_info=True)
            return ScoringOutcome.unavailable(f"response_error: {exc}")

        return ScoringOutcome(result=result)

    async def score_many(self, entries: Sequence[tuple[str, str]]) -> dict[str, AnalysisResult]:
        """Score quarters one after another; quarters that fail are left out."""
        results: dict[str, AnalysisResult] = {}
        for quarter, text in entries:
            outcome = await self.score_one(text)
            if outcome.ok:
                results[quarter] = outcome.result.model_copy(update={"quarter": quarter})
                logger.info("AI analyzed %s", quarter)
            else:
                logger.warning("AI analysis failed for %s (%s)", quarter, outcome.error)
        return results

    async def compare_trend(self, entries: Sequence[tuple[str, str]]) -> TrendSummary:
        settings = get_settings()
        if len(entries) < 2 or not settings.remote_scoring_configured:
            return TrendSummary(trend="stable", insights=(NOT_ENOUGH_DATA_INSIGHT,), method="remote")

        prompt = build_comparison_prompt(entries, settings.ai_max_comparison_chars)
        unavailable = TrendSummary(trend="stable", insights=(COMPARISON_UNAVAILABLE_INSIGHT,), method="remote")

        try:
            provider_result = await self._call("comparison", prompt)
        except Exception as exc:
            logger.warning("AI comparison provider call failed: %s", exc, exc_info=True)
            return unavailable

        try:
            parsed = extract_json_object(provider_result.raw_text)
            if parsed is None or "trend" not in parsed or "insights" not in parsed:
                logger.warning("AI comparison: no usable JSON object in provider response")
                return unavailable

            summary = TrendSummary(trend=parsed["trend"], insights=parsed["insights"], method="remote")

            log_ai_run(
                scope="comparison",
                provider_result=provider_result,
                prompt_text=prompt,
                parsed_output={"trend": summary.trend, "insights": list(summary.insights)},
                extra_meta={"quarters": [quarter for quarter, _ in entries]},
            )
        except ValidationError as exc:
            logger.warning("AI comparison: response failed validation: %s", exc)
            return unavailable
        except Exception as exc:
            logger.warning("AI comparison: could not process provider response: %s", exc, exc_info=True)
            return unavailable

        return summary
