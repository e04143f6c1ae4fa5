"""Keyword-frequency scorer: deterministic, offline, always available.

Used when AI scoring is not requested, not configured, or fails.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .contracts import (
    MAX_SCORE,
    MAX_THEMES,
    MIN_SCORE,
    AnalysisResult,
    SentimentAnalysis,
    label_for_score,
    round_half_up,
    tone_for_score,
)

NEUTRAL_BASELINE = 50
STRONG_PHRASE_BONUS = 10
QA_PHRASE_WEIGHT = 5
QA_SUMMARY = "Q&A session analysis based on response patterns"


@dataclass(frozen=True)
class KeywordTables:
    """Word lists and theme triggers used by ``KeywordScorer``."""

    positive_words: tuple[str, ...]
    negative_words: tuple[str, ...]
    strong_positive_phrases: tuple[str, ...]
    # Ordered: themes are reported in table order.
    themes: tuple[tuple[str, tuple[str, ...]], ...]
    default_theme: str
    qa_confident_phrases: tuple[str, ...]
    qa_defensive_phrases: tuple[str, ...]


DEFAULT_TABLES = KeywordTables(
    positive_words=(
        "growth", "strong", "record", "exceeded", "positive", "momentum",
        "accelerate", "breakthrough", "innovation", "excellent", "robust",
        "outperform", "surge", "expand", "increase", "improve", "gain",
    ),
    negative_words=(
        "decline", "challenge", "concern", "weak", "difficult", "uncertainty",
        "risk", "pressure", "decrease", "slow", "issue", "problem", "loss",
        "below", "miss", "disappoint", "struggle", "threat",
    ),
    strong_positive_phrases=("record revenue", "exceeded expectations"),
    themes=(
        ("AI/ML Growth", ("ai", "artificial intelligence", "machine learning", "neural")),
        ("Data Center Expansion", ("data center", "datacenter", "cloud", "hgx", "dgx")),
        ("Gaming Revenue", ("gaming", "geforce", "rtx", "game")),
        ("Supply Chain Management", ("supply", "inventory", "manufacturing", "production")),
        ("Automotive Innovation", ("automotive", "self-driving", "autonomous")),
        ("Strategic Partnerships", ("partner", "collaboration", "customer")),
    ),
    default_theme="General Business Performance",
    qa_confident_phrases=("absolutely", "definitely", "certainly", "clearly", "obviously"),
    qa_defensive_phrases=("however", "but", "although", "despite", "challenging"),
)


def _word_pattern(word: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)


class KeywordScorer:
    """Scores a transcript by counting positive and negative keywords."""

    def __init__(self, tables: KeywordTables = DEFAULT_TABLES) -> None:
        self.tables = tables
        self._positive = [_word_pattern(w) for w in tables.positive_words]
        self._negative = [_word_pattern(w) for w in tables.negative_words]

    @staticmethod
    def _count(patterns: list[re.Pattern[str]], text: str) -> int:
        return sum(len(p.findall(text)) for p in patterns)

    def sentiment_counts(self, text: str) -> tuple[int, int]:
        """Return ``(positive, negative)`` whole-word match counts."""
        folded = text.casefold()
        return self._count(self._positive, folded), self._count(self._negative, folded)

    def sentiment_score(self, text: str) -> int:
        positive, negative = self.sentiment_counts(text)
        total = positive + negative
        score = NEUTRAL_BASELINE
        if total > 0:
            score = round_half_up(100 * positive / total)

        folded = text.casefold()
        if any(phrase in folded for phrase in self.tables.strong_positive_phrases):
            score += STRONG_PHRASE_BONUS
        return max(MIN_SCORE, min(MAX_SCORE, score))

    def detect_themes(self, text: str) -> list[str]:
        folded = text.casefold()
        themes = [
            name
            for name, triggers in self.tables.themes
            if any(trigger in folded for trigger in triggers)
        ]
        if not themes:
            themes.append(self.tables.default_theme)
        return themes[:MAX_THEMES]

    def score(self, text: str) -> AnalysisResult:
        score = self.sentiment_score(text)
        themes = self.detect_themes(text)
        label = label_for_score(score)

        return AnalysisResult(
            management_sentiment=SentimentAnalysis(
                score=score,
                label=label,
                summary=f"Management expressed {label} sentiment with emphasis on {themes[0]}",
            ),
            key_themes=tuple(themes),
            overall_tone=tone_for_score(score),
        )

    def score_qa(self, qa_text: str) -> SentimentAnalysis:
        """Lightweight confident-vs-defensive heuristic for the Q&A section."""
        folded = qa_text.casefold()
        score = NEUTRAL_BASELINE
        for phrase in self.tables.qa_confident_phrases:
            if phrase in folded:
                score += QA_PHRASE_WEIGHT
        for phrase in self.tables.qa_defensive_phrases:
            if phrase in folded:
                score -= QA_PHRASE_WEIGHT
        score = max(MIN_SCORE, min(MAX_SCORE, score))
        return SentimentAnalysis.from_score(score, QA_SUMMARY)
