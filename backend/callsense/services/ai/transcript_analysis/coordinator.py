"""Chooses between AI and keyword scoring and reports which one ran."""

from __future__ import annotations

import logging

from .contracts import AnalysisResult, CoordinatedAnalysis, InvalidTranscriptError
from .keyword_scorer import KeywordScorer
from .remote_scorer import RemoteScorer

logger = logging.getLogger(__name__)


def ensure_transcript_text(text: object) -> str:
    if not isinstance(text, str):
        raise InvalidTranscriptError(f"Transcript must be text, got {type(text).__name__}")
    if not text.strip():
        raise InvalidTranscriptError("No transcript provided")
    return text


class AnalysisCoordinator:
    def __init__(self, remote_scorer: RemoteScorer, keyword_scorer: KeywordScorer | None = None) -> None:
        self.remote_scorer = remote_scorer
        self.keyword_scorer = keyword_scorer or KeywordScorer()

    @property
    def remote_available(self) -> bool:
        return self.remote_scorer.is_configured

    async def analyze(
        self,
        text: str,
        prefer_remote: bool,
        *,
        quarter: str | None = None,
        qa_text: str | None = None,
    ) -> CoordinatedAnalysis:
        """Score *text*, preferring the AI provider when asked and available.

        Falls back to the keyword scorer when AI is not requested, not
        configured, or the provider call yields no result. ``method_used``
        reports the strategy that produced the result.

        Raises:
            InvalidTranscriptError: *text* is not a non-blank string.
        """
        text = ensure_transcript_text(text)

        result: AnalysisResult | None = None
        method = "local"

        if prefer_remote:
            if self.remote_available:
                outcome = await self.remote_scorer.score_one(text)
                if outcome.ok:
                    result = outcome.result
                    method = "remote"
                else:
                    logger.warning("AI analysis unavailable (%s), falling back to keywords", outcome.error)
            else:
                logger.warning("AI analysis requested but no provider is configured")

        if result is None:
            result = self.keyword_scorer.score(text)

        update: dict[str, object] = {}
        if quarter:
            update["quarter"] = quarter
        if qa_text and qa_text.strip():
            update["qa_sentiment"] = self.keyword_scorer.score_qa(qa_text)
        if update:
            result = result.model_copy(update=update)

        logger.info("Transcript analyzed with %s scoring (requested_remote=%s)", method, prefer_remote)
        return CoordinatedAnalysis(result=result, method_used=method, requested_remote=prefer_remote)
