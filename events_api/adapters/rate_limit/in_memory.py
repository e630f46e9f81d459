"""In-memory per-client token bucket registry.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: a single lock covers lookup, insert, touch, consume and sweep.
  The lock is never held across I/O or while a downstream handler runs.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from events_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from events_api.adapters.rate_limit.token_bucket import TokenBucket

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class ClientState:
    """Limiter state for one client identity."""

    identity: str
    bucket: TokenBucket
    last_seen: float


class ClientRegistry(AbstractRateLimiter):
    """Map of client identity to token bucket, with idle eviction.

    Every identity gets its own bucket of ``burst`` tokens refilled at ``rps``
    tokens per second. Entries that have not been seen for longer than the
    sweep threshold are dropped; a later request from the same client starts
    again with a full bucket.
    """

    def __init__(
        self,
        *,
        rps: float,
        burst: int,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize an empty registry.

        Args:
            rps: Refill rate for new buckets, in tokens per second.
            burst: Capacity of new buckets.
            clock: Monotonic time source in seconds, shared with the buckets.

        Raises:
            ValueError: If rps or burst are invalid.
        """
        if rps <= 0:
            raise ValueError("rps must be > 0")
        if burst < 1:
            raise ValueError("burst must be >= 1")

        self._rps = rps
        self._burst = burst
        self._clock = clock
        self._lock = threading.Lock()
        self._clients: dict[str, ClientState] = {}

    def _get_or_create_locked(self, identity: str) -> ClientState:
        state = self._clients.get(identity)
        if state is None:
            state = ClientState(
                identity=identity,
                bucket=TokenBucket(rate=self._rps, burst=self._burst, clock=self._clock),
                last_seen=self._clock(),
            )
            self._clients[identity] = state
        return state

    def get_or_create(self, identity: str) -> ClientState:
        """Return the state for ``identity``, creating it if absent.

        Concurrent callers with the same identity always receive the same
        ClientState object.
        """
        if not identity:
            raise ValueError("identity must be a non-empty string")

        with self._lock:
            return self._get_or_create_locked(identity)

    def touch(self, identity: str) -> None:
        """Mark ``identity`` as seen now. Unknown identities are ignored."""
        with self._lock:
            state = self._clients.get(identity)
            if state is not None:
                state.last_seen = self._clock()

    def consume(self, key: str) -> RateLimitResult:
        """Look up (or create) the client, touch it, and take one token.

        All three steps happen in one critical section, so two concurrent
        requests from the same client never observe the same token count.
        """
        if not key:
            raise ValueError("key must be a non-empty string")

        with self._lock:
            state = self._get_or_create_locked(key)
            state.last_seen = self._clock()
            allowed = state.bucket.try_consume()
            remaining = int(state.bucket.tokens)

        return RateLimitResult(allowed=allowed, limit=self._burst, remaining=remaining)

    def sweep(self, idle_threshold: float) -> int:
        """Remove every client not seen for more than ``idle_threshold`` seconds.

        Returns:
            Number of clients removed. Running it again right away removes none.
        """
        with self._lock:
            now = self._clock()
            stale = [
                identity
                for identity, state in self._clients.items()
                if now - state.last_seen > idle_threshold
            ]
            for identity in stale:
                del self._clients[identity]
            remaining = len(self._clients)

        if stale:
            logger.debug(
                "registry.swept",
                extra={
                    "removed": len(stale),
                    "clients": remaining,
                    "idle_threshold_s": idle_threshold,
                },
            )
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._clients.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._clients)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._clients

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"ClientRegistry(rps={self._rps}, burst={self._burst}, clients={len(self)})"
