"""Transcript analysis endpoints: single, batch (AI), trend, availability."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from callsense.core.dependencies import get_coordinator, get_remote_scorer, get_trend_comparator
from callsense.services.ai.transcript_analysis.contracts import InvalidTranscriptError
from callsense.services.ai.transcript_analysis.coordinator import AnalysisCoordinator, ensure_transcript_text
from callsense.services.ai.transcript_analysis.remote_scorer import RemoteScorer
from callsense.services.ai.transcript_analysis.trend import TrendComparator

logger = logging.getLogger(__name__)

router = APIRouter()

METHOD_NAMES = {"remote": "gemini-ai", "local": "keyword-analysis"}


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class _CamelRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class AnalyzeRequest(_CamelRequest):
    transcript: str
    use_ai: bool = Field(default=False, alias="useAI")
    quarter: str | None = None
    qa_text: str | None = None


class QuarterTranscript(_CamelRequest):
    quarter: str = Field(..., min_length=1)
    content: str


class BatchAnalyzeRequest(_CamelRequest):
    transcripts: list[QuarterTranscript] = Field(default_factory=list)


class TrendRequest(_CamelRequest):
    transcripts: list[QuarterTranscript] = Field(default_factory=list)
    use_ai: bool = Field(default=False, alias="useAI")


@router.post("/analyze", summary="Score one earnings-call transcript")
async def analyze_endpoint(
    body: AnalyzeRequest,
    coordinator: AnalysisCoordinator = Depends(get_coordinator),
):
    try:
        analysis = await coordinator.analyze(
            body.transcript,
            body.use_ai,
            quarter=body.quarter,
            qa_text=body.qa_text,
        )
    except InvalidTranscriptError as exc:
        raise HTTPException(400, str(exc)) from exc

    return {
        "success": True,
        "analysis": analysis.result.to_payload(),
        "metadata": {
            "timestamp": _utc_now_iso(),
            "method": METHOD_NAMES[analysis.method_used],
            "aiPowered": analysis.method_used == "remote",
            "aiAvailable": coordinator.remote_available,
            "userRequestedAI": body.use_ai,
            "transcriptLength": len(body.transcript),
        },
    }


@router.get("/analyze", summary="Report whether AI scoring is available")
def analyze_status(coordinator: AnalysisCoordinator = Depends(get_coordinator)):
    ai_available = coordinator.remote_available
    return {
        "status": "ok",
        "aiAvailable": ai_available,
        "service": "gemini" if ai_available else "keyword",
        "message": (
            "AI provider configured - AI analysis available"
            if ai_available
            else "No API key found - only keyword analysis available"
        ),
        "timestamp": _utc_now_iso(),
    }


@router.post("/analyze/batch", summary="AI-score several quarters, skipping failures")
async def analyze_batch_endpoint(
    body: BatchAnalyzeRequest,
    remote_scorer: RemoteScorer = Depends(get_remote_scorer),
):
    try:
        entries = [(t.quarter, ensure_transcript_text(t.content)) for t in body.transcripts]
    except InvalidTranscriptError as exc:
        raise HTTPException(400, str(exc)) from exc

    results = await remote_scorer.score_many(entries)
    return {"results": {quarter: result.to_payload() for quarter, result in results.items()}}


@router.post("/analyze/trend", summary="Compare sentiment across quarters")
async def analyze_trend_endpoint(
    body: TrendRequest,
    coordinator: AnalysisCoordinator = Depends(get_coordinator),
    comparator: TrendComparator = Depends(get_trend_comparator),
):
    try:
        entries = [(t.quarter, ensure_transcript_text(t.content)) for t in body.transcripts]
    except InvalidTranscriptError as exc:
        raise HTTPException(400, str(exc)) from exc

    if body.use_ai and coordinator.remote_available and len(entries) >= 2:
        summary = await comparator.compare_texts(entries)
    else:
        scores = {quarter: coordinator.keyword_scorer.score(text) for quarter, text in entries}
        summary = comparator.compare_results(scores)

    return summary.model_dump(by_alias=True)
