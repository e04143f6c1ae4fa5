import pytest

from callsense.core.config import get_settings
from callsense.core.dependencies import get_rate_limiter


@pytest.fixture(autouse=True)
def _reset_cached_singletons():
    # Tests mutate env vars; never leak a cached Settings or limiter across tests.
    get_settings.cache_clear()
    get_rate_limiter.cache_clear()
    yield
    get_settings.cache_clear()
    get_rate_limiter.cache_clear()


@pytest.fixture
def mock_provider_env(monkeypatch):
    """Remote scoring enabled through the deterministic mock provider."""
    monkeypatch.setenv("AI_ANALYSIS_PROVIDER", "mock")
    monkeypatch.setenv("AI_ALLOWED_PROVIDERS", "gemini,mock")
    monkeypatch.setenv("AI_DEBUG_STORE_RAW", "false")
    get_settings.cache_clear()


@pytest.fixture
def gemini_env(monkeypatch):
    monkeypatch.setenv("AI_ANALYSIS_PROVIDER", "gemini")
    monkeypatch.setenv("AI_ALLOWED_PROVIDERS", "gemini,mock")
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    get_settings.cache_clear()


@pytest.fixture
def no_provider_env(monkeypatch):
    """Gemini selected but no credential: every remote path is disabled."""
    monkeypatch.setenv("AI_ANALYSIS_PROVIDER", "gemini")
    monkeypatch.setenv("AI_ALLOWED_PROVIDERS", "gemini,mock")
    monkeypatch.setenv("GEMINI_API_KEY", "")
    monkeypatch.setenv("GOOGLE_API_KEY", "")
    get_settings.cache_clear()


class FakeClock:
    """Monotonic clock whose ``sleep`` advances time instantly."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()
