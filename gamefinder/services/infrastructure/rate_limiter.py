"""
In-process request spacing for third-party APIs.

SteamSpy asks for at most one request per second and the Steam store starts
answering 429 under bursts, so every client owns a limiter that spaces its
calls by a minimum interval. Concurrent callers queue on the lock.
"""

import asyncio
import time

from gamefinder.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class IntervalRateLimiter:
    """Guarantees at least `min_interval_seconds` between acquisitions."""

    def __init__(self, min_interval_seconds: float, name: str = "default"):
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self.name = name
        self.min_interval_seconds = min_interval_seconds
        self._lock = asyncio.Lock()
        self._last_acquired: float | None = None

    async def acquire(self) -> None:
        async with self._lock:
            if self._last_acquired is not None and self.min_interval_seconds > 0:
                wait = self._last_acquired + self.min_interval_seconds - time.monotonic()
                if wait > 0:
                    logger.debug("Rate limiter waiting", limiter=self.name, wait_seconds=round(wait, 3))
                    await asyncio.sleep(wait)
            self._last_acquired = time.monotonic()
