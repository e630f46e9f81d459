"""Token bucket primitive."""

from __future__ import annotations

import time
from typing import Callable


class TokenBucket:
    """Continuously refilling bucket of ``burst`` tokens at ``rate`` tokens/s.

    Not thread-safe on its own; callers serialize access (the client registry
    holds its lock around every call).
    """

    __slots__ = ("_rate", "_burst", "_clock", "_tokens", "_last_refill")

    def __init__(
        self,
        *,
        rate: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if rate <= 0:
            raise ValueError("rate must be > 0")
        if burst < 1:
            raise ValueError("burst must be >= 1")

        self._rate = float(rate)
        self._burst = burst
        self._clock = clock
        # New buckets start full.
        self._tokens = float(burst)
        self._last_refill = clock()

    @property
    def rate(self) -> float:
        return self._rate

    @property
    def burst(self) -> int:
        return self._burst

    @property
    def tokens(self) -> float:
        """Current token level, including refill up to now."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(float(self._burst), self._tokens + elapsed * self._rate)
        # Clock going backwards never adds tokens.
        self._last_refill = max(now, self._last_refill)

    def try_consume(self) -> bool:
        """Take one whole token if available.

        Returns:
            True if a token was taken, False (state unchanged) otherwise.
        """
        self._refill()
        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return True
        return False

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"TokenBucket(rate={self._rate}, burst={self._burst}, tokens={self._tokens:.3f})"
