import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

_DEFAULT_MAX_REQUESTS = 15
_DEFAULT_WINDOW_SECONDS = 60.0


class SlidingWindowRateLimiter:
    """Caps outbound provider calls to ``max_requests`` per trailing window.

    One instance is shared by every remote scoring attempt in the process
    (see ``callsense.core.dependencies.get_rate_limiter``). Callers are
    serialized on an ``asyncio.Lock`` so the window is never raced.
    """

    def __init__(
        self,
        *,
        max_requests: int = _DEFAULT_MAX_REQUESTS,
        window_seconds: float = _DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._max_requests = max(1, int(max_requests))
        self._window_seconds = float(window_seconds)
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def snapshot(self) -> list[float]:
        """Timestamps currently held in the window (oldest first)."""
        return list(self._requests)

    def _prune(self, now: float) -> None:
        cutoff = now - self._window_seconds
        while self._requests and self._requests[0] <= cutoff:
            self._requests.popleft()

    async def wait_if_needed(self) -> float:
        """Block until a call may be issued, record it, return seconds waited."""
        if self._window_seconds <= 0:
            return 0.0
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._requests) < self._max_requests:
                    break
                delay = self._requests[0] + self._window_seconds - now
                logger.info("Rate limit reached (%d/%d). Waiting %.1fs", len(self._requests), self._max_requests, delay)
                await self._sleep(delay)
                waited += delay
            self._requests.append(now)
        return waited
