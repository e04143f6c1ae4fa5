from functools import lru_cache

from callsense.core.config import get_settings
from callsense.services.ai.transcript_analysis.coordinator import AnalysisCoordinator
from callsense.services.ai.transcript_analysis.keyword_scorer import KeywordScorer
from callsense.services.ai.transcript_analysis.remote_scorer import RemoteScorer
from callsense.services.ai.transcript_analysis.trend import TrendComparator
from callsense.utils.rate_limit import SlidingWindowRateLimiter


@lru_cache
def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Process-wide limiter shared by every remote scoring call."""
    settings = get_settings()
    return SlidingWindowRateLimiter(
        max_requests=settings.ai_rate_limit_max_requests,
        window_seconds=settings.ai_rate_limit_window_seconds,
    )


def get_remote_scorer() -> RemoteScorer:
    return RemoteScorer(get_rate_limiter())


def get_coordinator() -> AnalysisCoordinator:
    return AnalysisCoordinator(get_remote_scorer(), KeywordScorer())


def get_trend_comparator() -> TrendComparator:
    return TrendComparator(get_remote_scorer(), margin=get_settings().trend_stable_margin)
