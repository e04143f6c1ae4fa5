"""Quarter-over-quarter sentiment trend."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Mapping, Sequence

from .contracts import AnalysisResult, TrendSummary
from .remote_scorer import NOT_ENOUGH_DATA_INSIGHT, RemoteScorer

logger = logging.getLogger(__name__)

DEFAULT_STABLE_MARGIN = 5
LOCAL_NOT_ENOUGH_DATA_INSIGHT = "Not enough data for trend comparison"

_QUARTER_RE = re.compile(r"^\s*Q([1-4])\s+(\d{4})\s*$", re.IGNORECASE)


def parse_quarter(label: str) -> tuple[int, int] | None:
    """``"Q3 2024"`` -> ``(2024, 3)``; ``None`` for other labels."""
    match = _QUARTER_RE.match(label or "")
    if not match:
        return None
    return int(match.group(2)), int(match.group(1))


def sort_quarters(labels: Sequence[str]) -> list[str]:
    """Chronological order; unparseable labels follow in their original order."""
    parsed = [(label, parse_quarter(label)) for label in labels]
    known = sorted((p for p in parsed if p[1] is not None), key=lambda p: p[1])
    unknown = [p for p in parsed if p[1] is None]
    return [label for label, _ in known + unknown]


class QuarterResults:
    """Quarter label -> AnalysisResult; a later write for a label replaces the earlier one."""

    def __init__(self) -> None:
        self._results: dict[str, AnalysisResult] = {}

    def put(self, quarter: str, result: AnalysisResult) -> None:
        self._results[quarter] = result

    def get(self, quarter: str) -> AnalysisResult | None:
        return self._results.get(quarter)

    def __len__(self) -> int:
        return len(self._results)

    def __contains__(self, quarter: object) -> bool:
        return quarter in self._results

    def ordered(self) -> Iterator[tuple[str, AnalysisResult]]:
        for quarter in sort_quarters(list(self._results)):
            yield quarter, self._results[quarter]

    def as_dict(self) -> dict[str, AnalysisResult]:
        return dict(self.ordered())


class TrendComparator:
    def __init__(self, remote_scorer: RemoteScorer | None = None, *, margin: int = DEFAULT_STABLE_MARGIN) -> None:
        self.remote_scorer = remote_scorer
        self.margin = margin

    def classify(self, first: int, last: int) -> str:
        delta = last - first
        if delta > self.margin:
            return "improving"
        if delta < -self.margin:
            return "declining"
        return "stable"

    def compare_scores(self, points: Sequence[tuple[str, int]]) -> TrendSummary:
        """Trend over ``(quarter, score)`` points, oldest first."""
        if len(points) < 2:
            return TrendSummary(trend="stable", insights=(LOCAL_NOT_ENOUGH_DATA_INSIGHT,))

        (first_q, first), (last_q, last) = points[0], points[-1]
        trend = self.classify(first, last)
        delta = last - first

        if trend == "improving":
            insights = [f"Sentiment rose {delta} points from {first_q} to {last_q} ({first} → {last})"]
        elif trend == "declining":
            insights = [f"Sentiment fell {-delta} points from {first_q} to {last_q} ({first} → {last})"]
        else:
            insights = [f"Sentiment held broadly steady between {first_q} and {last_q} ({first} → {last})"]

        if len(points) >= 3:
            moves = [
                (points[i][1] - points[i - 1][1], points[i][0])
                for i in range(1, len(points))
            ]
            move, into = max(moves, key=lambda m: abs(m[0]))
            insights.append(f"Largest quarter-over-quarter move: {move:+d} points into {into}")

            peak_q, peak = max(points, key=lambda p: p[1])
            insights.append(f"Peak sentiment in {peak_q} ({peak})")

        return TrendSummary(trend=trend, insights=tuple(insights))

    def compare_results(self, results: Mapping[str, AnalysisResult]) -> TrendSummary:
        ordered = sort_quarters(list(results))
        points = [(quarter, results[quarter].management_sentiment.score) for quarter in ordered]
        return self.compare_scores(points)

    async def compare_texts(self, entries: Sequence[tuple[str, str]]) -> TrendSummary:
        """AI comparison of raw quarter texts, when the provider is configured."""
        if self.remote_scorer is None or len(entries) < 2 or not self.remote_scorer.is_configured:
            return TrendSummary(trend="stable", insights=(NOT_ENOUGH_DATA_INSIGHT,), method="remote")
        return await self.remote_scorer.compare_trend(entries)
