"""Events API: event CRUD behind a per-client token bucket rate limiter."""
