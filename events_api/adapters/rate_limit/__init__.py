"""Rate limiting adapters.

An in-memory token bucket registry plus the background sweeper that keeps it
bounded. The HTTP layer only sees ``AbstractRateLimiter``.
"""

from events_api.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from events_api.adapters.rate_limit.in_memory import ClientRegistry, ClientState
from events_api.adapters.rate_limit.sweeper import RegistrySweeper
from events_api.adapters.rate_limit.token_bucket import TokenBucket

__all__ = [
    "AbstractRateLimiter",
    "ClientRegistry",
    "ClientState",
    "RateLimitResult",
    "RegistrySweeper",
    "TokenBucket",
]
