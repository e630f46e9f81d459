"""Rate limiter interfaces.

The HTTP layer depends on this abstraction (not the concrete registry) so the
per-process store can be swapped for a shared one without touching the gate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a consume operation.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        limit: Bucket capacity (burst size).
        remaining: Whole tokens left after this request.
    """

    allowed: bool
    limit: int
    remaining: int


class AbstractRateLimiter(ABC):
    """Interface for per-client rate limiters."""

    @abstractmethod
    def consume(self, key: str) -> RateLimitResult:
        """Consume one unit of budget for a given key.

        Args:
            key: Client identity (e.g., IP address).

        Returns:
            RateLimitResult describing whether it was allowed.
        """
        raise NotImplementedError

    @abstractmethod
    def sweep(self, idle_threshold: float) -> int:
        """Forget clients idle for longer than ``idle_threshold`` seconds.

        Returns:
            Number of clients removed.
        """
        raise NotImplementedError
