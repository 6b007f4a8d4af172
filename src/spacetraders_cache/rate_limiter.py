"""In-process token bucket shared by every outbound API call.

One limiter is created at startup and handed to the client, so the whole
process stays under the API's 2 req/s limit no matter how many tasks are
issuing requests.

Usage:
    limiter = RateLimiter(rate=2.0, burst=10)
    permit = await limiter.acquire()  # waits until a token is available
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Refill after an exact (1 - T) / R sleep can land a hair under 1.0
_TOKEN_EPSILON = 1e-9


@dataclass(frozen=True)
class Permit:
    """Proof that one token was taken from the bucket."""

    granted_at: float
    waited: float


class RateLimiter:
    """Token bucket refilled lazily at `rate` tokens/sec, capped at `burst`.

    All reads and writes of the bucket happen under a single asyncio.Lock.
    A caller that finds the bucket empty keeps the lock while it sleeps, so
    waiters are served strictly in arrival order and none can starve.
    """

    def __init__(
        self,
        rate: float = 2.0,
        burst: int = 10,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if rate <= 0:
            raise ValueError(f"rate must be positive, got {rate}")
        if burst < 1:
            raise ValueError(f"burst must be at least 1, got {burst}")
        self.rate = rate
        self.burst = burst
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(burst)
        self._last_refill = clock()
        self._lock = asyncio.Lock()

    @property
    def tokens(self) -> float:
        """Token count as of the last refill (not recomputed)."""
        return self._tokens

    async def acquire(self) -> Permit:
        """Wait until a token is available, then consume it."""
        start = self._clock()
        async with self._lock:
            while True:
                wait = self._try_acquire()
                if wait <= 0:
                    now = self._clock()
                    return Permit(granted_at=now, waited=now - start)
                logger.debug("Rate limiter: waiting %.2fs", wait)
                await self._sleep(wait)

    def _refill(self) -> None:
        now = self._clock()
        elapsed = max(0.0, now - self._last_refill)
        self._tokens = min(float(self.burst), self._tokens + elapsed * self.rate)
        self._last_refill = now

    def _try_acquire(self) -> float:
        """Try to take a token. Returns 0.0 on success, or seconds to wait."""
        self._refill()
        if self._tokens >= 1.0 - _TOKEN_EPSILON:
            self._tokens = max(0.0, self._tokens - 1.0)
            return 0.0
        return (1.0 - self._tokens) / self.rate
