"""Sliding-window governor for outbound TMDB requests.

TMDB allows roughly 40 requests per 10 seconds; the governor keeps the
process below a configured ceiling (35 by default). Callers ``await
acquire()`` before each outbound call and are suspended until the oldest
timestamp in the window ages out when the window is full.

The window is mutated only between await points, which is safe under a
single event loop. It is process-local: several instances multiply the
effective request rate.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class SlidingWindowGovernor:
    def __init__(
        self,
        max_requests: int = 35,
        window_seconds: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._timestamps: deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window_seconds:
            self._timestamps.popleft()

    def in_window(self) -> int:
        """Number of requests recorded inside the trailing window."""
        self._prune(self._clock())
        return len(self._timestamps)

    def delay(self) -> float:
        """Seconds until a slot frees up (0 when one is available now)."""
        now = self._clock()
        self._prune(now)
        if len(self._timestamps) < self.max_requests:
            return 0.0
        return self.window_seconds - (now - self._timestamps[0])

    async def acquire(self) -> None:
        """Wait for a slot and record the request."""
        while (wait := self.delay()) > 0:
            logger.info(f"TMDB rate limit reached, waiting {wait:.2f}s")
            await self._sleep(wait)
        self._timestamps.append(self._clock())
