"""Token-bucket pacing for bursts of requests against one site."""

from __future__ import annotations

import asyncio
import time


class TokenBucket:
    """Token-bucket rate limiter.

    Args:
        rate: Tokens replenished per second. ``<= 0`` disables pacing.
        burst: Maximum bucket size (allows short bursts).
    """

    def __init__(self, rate: float, burst: int = 1) -> None:
        self._rate = rate
        self._burst = burst
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @classmethod
    def from_interval(cls, interval_seconds: float) -> TokenBucket:
        """One request every *interval_seconds* (``0`` = unpaced)."""
        rate = 1.0 / interval_seconds if interval_seconds > 0 else 0.0
        return cls(rate=rate, burst=1)

    @property
    def rate(self) -> float:
        """Current tokens-per-second rate."""
        return self._rate

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        if self._rate <= 0:
            return  # unlimited

        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                wait = (1.0 - self._tokens) / self._rate
                await asyncio.sleep(wait)
                self._refill()
            self._tokens -= 1.0

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self._burst, self._tokens + elapsed * self._rate)
        self._last_refill = now
