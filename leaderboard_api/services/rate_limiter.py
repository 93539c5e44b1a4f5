"""In-memory fixed-window admission control for leaderboard submissions.

Counters live in this process only: they are lost on restart and each
instance of a scaled deployment enforces its own windows.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 60.0
DEFAULT_MAX_SUBMISSIONS = 15


class RateLimitedError(Exception):
    """Raised when a client exhausted its submissions for the current window."""

    def __init__(self, client_id: str):
        self.client_id = client_id
        super().__init__(f"Too many submissions from {client_id}")


@dataclass(slots=True)
class WindowCounter:
    count: int
    window_start: float


class FixedWindowRateLimiter:
    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_submissions: int = DEFAULT_MAX_SUBMISSIONS,
    ):
        if window_seconds <= 0 or max_submissions <= 0:
            raise ValueError("window_seconds and max_submissions must be positive")
        self.window_seconds = window_seconds
        self.max_submissions = max_submissions
        self._counters: dict[str, WindowCounter] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._counters)

    def _expired(self, counter: WindowCounter, now: float) -> bool:
        return now - counter.window_start > self.window_seconds

    def _evict_expired(self, now: float) -> None:
        stale = [key for key, counter in self._counters.items() if self._expired(counter, now)]
        for key in stale:
            del self._counters[key]

    async def admit(self, client_id: str, now: float | None = None) -> bool:
        """Count one submission for ``client_id``; return False once the window is full.

        A denied attempt does not touch the counter. Admission is serialized,
        so at most ``max_submissions`` concurrent attempts pass per window.
        """
        if now is None:
            now = time.time()

        async with self._lock:
            self._evict_expired(now)

            counter = self._counters.get(client_id)
            if counter is None:
                self._counters[client_id] = WindowCounter(count=1, window_start=now)
                return True

            if counter.count < self.max_submissions:
                counter.count += 1
                return True

        logger.info("Rate limit reached for %s (%d per %ss)", client_id, self.max_submissions, self.window_seconds)
        return False
