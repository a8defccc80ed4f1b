"""
Rolling-window rate limiter for translation provider calls.

One instance is shared by every job in the process: the quota it protects
belongs to a single upstream account.
"""

import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque

from polylingo.logger import get_logger

logger = get_logger(__name__)

DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_BUFFER_SECONDS = 0.1


class RateLimiter:
    """Allow at most max_requests calls in any trailing window of `window` seconds."""

    def __init__(
        self,
        max_requests: int,
        window: float = DEFAULT_WINDOW_SECONDS,
        buffer: float = DEFAULT_BUFFER_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            max_requests: Calls permitted per window (must be >= 1)
            window: Window length in seconds, rolling rather than calendar aligned
            buffer: Extra wait added past the window edge to absorb scheduling jitter
            clock: Monotonic time source (injectable for tests)
            sleep: Coroutine used to suspend the caller (injectable for tests)
        """
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window = window
        self.buffer = buffer
        self._clock = clock
        self._sleep = sleep
        self._timestamps: Deque[float] = deque()

    def _prune(self, now: float) -> None:
        while self._timestamps and now - self._timestamps[0] >= self.window:
            self._timestamps.popleft()

    def pending_calls(self) -> int:
        """Number of permitted calls still inside the current window."""
        self._prune(self._clock())
        return len(self._timestamps)

    async def acquire(self) -> None:
        """Suspend the caller until a provider call is permitted, then record it."""
        while True:
            now = self._clock()
            self._prune(now)
            if len(self._timestamps) < self.max_requests:
                self._timestamps.append(now)
                return

            wait = self.window - (now - self._timestamps[0]) + self.buffer
            logger.debug(f"Rate limit reached ({self.max_requests}/{self.window:.0f}s), waiting {wait:.2f}s")
            await self._sleep(wait)
