"""Per-client admission gate for the HTTP middleware chain.

Every request is attributed to a client identity (the host part of the
transport peer address). When limiting is enabled, the gate takes one token
from that client's bucket and either forwards the request or answers 429
without calling the rest of the chain.

Per request:
    START -> extract identity -> enabled? -> consume -> FORWARD | REJECT
An unusable peer address ends in ERROR (500), not in a rate limit rejection.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from fastapi import Request, Response

from events_api.adapters.rate_limit.base import AbstractRateLimiter
from events_api.core.errors import IdentityExtractionError, RateLimitExceeded
from events_api.core.exception_handlers import render_app_error

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]


@dataclass(frozen=True)
class ClientIdentity:
    """Who a request is attributed to for rate limiting."""

    host: str
    port: int | None = None

    def __str__(self) -> str:
        return self.host


def split_host_port(address: str) -> tuple[str, int | None]:
    """Split ``host:port`` (or ``[v6-host]:port``) into its parts.

    Raises:
        IdentityExtractionError: If no host can be recovered.
    """
    address = address.strip()
    if address.startswith("["):
        host, sep, rest = address[1:].partition("]")
        if not sep or (rest and not rest.startswith(":")):
            raise IdentityExtractionError(peer=address)
        port_str = rest[1:]
    elif address.count(":") == 1:
        host, _, port_str = address.partition(":")
    else:
        # Bare IPv6 literal or bare host
        host, port_str = address, ""

    if not host:
        raise IdentityExtractionError(peer=address)

    if not port_str:
        return host, None
    if not port_str.isdigit():
        raise IdentityExtractionError(peer=address)
    return host, int(port_str)


def extract_client_identity(request: Request) -> ClientIdentity:
    """Derive the client identity from the ASGI peer address.

    Raises:
        IdentityExtractionError: If the server did not supply a usable peer.
    """
    client = request.scope.get("client")
    if not client:
        raise IdentityExtractionError(peer=client)

    if isinstance(client, str):
        host, port = split_host_port(client)
        return ClientIdentity(host=host, port=port)

    try:
        host, port = client[0], client[1]
    except (TypeError, IndexError) as exc:
        raise IdentityExtractionError(peer=client) from exc

    if not isinstance(host, str) or not host.strip():
        raise IdentityExtractionError(peer=client)

    host = host.strip()
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return ClientIdentity(host=host, port=port if isinstance(port, int) else None)


class AdmissionGate:
    """HTTP middleware enforcing the per-client token bucket.

    The limiter is owned by the application (see ``create_app``) and handed
    in here, so tests can build a fresh one per case.

    Usage:
        app.middleware("http")(AdmissionGate(registry, enabled=True))
    """

    def __init__(self, limiter: AbstractRateLimiter, *, enabled: bool = True) -> None:
        self._limiter = limiter
        self._enabled = enabled

    @property
    def limiter(self) -> AbstractRateLimiter:
        return self._limiter

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def __call__(self, request: Request, call_next: CallNext) -> Response:
        try:
            identity = extract_client_identity(request)
        except IdentityExtractionError as exc:
            logger.error(
                "rate_limit.identity_extraction_failed",
                extra={
                    "peer": repr(exc.peer),
                    "request_path": request.url.path,
                    "request_method": request.method,
                },
            )
            return render_app_error(exc)

        request.state.client_identity = identity

        if not self._enabled:
            return await call_next(request)

        # consume() releases the registry lock before returning, so the
        # downstream handler never runs inside the critical section.
        result = self._limiter.consume(identity.host)
        if not result.allowed:
            # Expected traffic shaping, not an error.
            logger.info(
                "rate_limit.rejected",
                extra={
                    "client_ip": identity.host,
                    "limit": result.limit,
                    "request_path": request.url.path,
                },
            )
            return render_app_error(RateLimitExceeded())

        logger.debug(
            "rate_limit.allowed",
            extra={
                "client_ip": identity.host,
                "limit": result.limit,
                "remaining": result.remaining,
            },
        )
        return await call_next(request)
