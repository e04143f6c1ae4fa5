"""Contracts for earnings-call transcript scoring.

JSON field names follow the dashboard's camelCase shape
(``managementSentiment``, ``keyThemes``, ``overallTone``); Python attributes
are snake_case.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

SentimentLabel = Literal["positive", "neutral", "negative"]
OverallTone = Literal["confident", "cautious", "mixed"]
TrendLabel = Literal["improving", "stable", "declining"]
AnalysisMethod = Literal["local", "remote"]

VALID_LABELS = frozenset({"positive", "neutral", "negative"})
VALID_TONES = frozenset({"confident", "cautious", "mixed"})
VALID_TRENDS = frozenset({"improving", "stable", "declining"})

MIN_SCORE = 0
MAX_SCORE = 100
MAX_THEMES = 5

POSITIVE_LABEL_THRESHOLD = 65
NEUTRAL_LABEL_THRESHOLD = 35
CONFIDENT_TONE_THRESHOLD = 70
CAUTIOUS_TONE_THRESHOLD = 30


class InvalidTranscriptError(ValueError):
    """Transcript text is missing, blank or not a string."""


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_score(value: object) -> int:
    """Coerce *value* to an int score in [0, 100].

    Raises ``TypeError``/``ValueError`` when *value* is not numeric.
    """
    if isinstance(value, bool) or value is None:
        raise TypeError(f"Score must be numeric, got {value!r}")
    try:
        number = float(value)  # type: ignore[arg-type]
    except OverflowError:
        # int too large for a float: clamp by sign.
        return MAX_SCORE if value > 0 else MIN_SCORE  # type: ignore[operator]
    if math.isnan(number):
        raise ValueError("Score must not be NaN")
    if math.isinf(number):
        return MAX_SCORE if number > 0 else MIN_SCORE
    return max(MIN_SCORE, min(MAX_SCORE, round_half_up(number)))


def label_for_score(score: int) -> SentimentLabel:
    if score >= POSITIVE_LABEL_THRESHOLD:
        return "positive"
    if score >= NEUTRAL_LABEL_THRESHOLD:
        return "neutral"
    return "negative"


def tone_for_score(score: int) -> OverallTone:
    # Tone thresholds are independent of the label thresholds.
    if score >= CONFIDENT_TONE_THRESHOLD:
        return "confident"
    if score <= CAUTIOUS_TONE_THRESHOLD:
        return "cautious"
    return "mixed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class SentimentAnalysis(_CamelModel):
    """Score, label and short summary for one section of a call."""

    score: int = Field(ge=MIN_SCORE, le=MAX_SCORE)
    label: SentimentLabel
    summary: str = Field(min_length=1)

    @classmethod
    def from_score(cls, score: int, summary: str) -> SentimentAnalysis:
        return cls(score=score, label=label_for_score(score), summary=summary)


class AnalysisResult(_CamelModel):
    """Canonical result produced by either scorer."""

    management_sentiment: SentimentAnalysis
    qa_sentiment: SentimentAnalysis | None = None
    key_themes: tuple[str, ...] = Field(default=(), max_length=MAX_THEMES)
    overall_tone: OverallTone
    quarter: str | None = None

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class TrendSummary(_CamelModel):
    # Remote comparisons pass the provider's trend through unchanged.
    trend: str
    insights: tuple[str, ...] = ()
    method: AnalysisMethod = "local"


@dataclass(frozen=True)
class ScoringOutcome:
    """Success/failure result of a remote scoring attempt."""

    result: AnalysisResult | None = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.result is not None

    @classmethod
    def unavailable(cls, error: str) -> ScoringOutcome:
        return cls(result=None, error=error)


@dataclass(frozen=True)
class CoordinatedAnalysis:
    """Analysis result plus the strategy that actually produced it."""

    result: AnalysisResult
    method_used: AnalysisMethod
    requested_remote: bool

    @property
    def fell_back(self) -> bool:
        return self.requested_remote and self.method_used == "local"
