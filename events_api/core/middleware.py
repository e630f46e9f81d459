"""HTTP middleware for the API's request pipeline.

Chain, outermost first (see ``install_middleware``):

    recover_panic -> request_id -> enable_cors -> AdmissionGate -> body limit -> routes

The panic recovery layer sits outside the rate limiter, so a failure in a
route handler never leaves the limiter's already-committed state half done.

Usage:
    install_middleware(
        app,
        gate=AdmissionGate(registry),
        trusted_origins=[...],
        max_body_bytes=1_048_576,
        request_id_header="X-Request-ID",
    )
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Awaitable, Callable, Sequence

from fastapi import FastAPI, Request, Response

from events_api.core.errors import PayloadTooLargeAppError
from events_api.core.exception_handlers import render_app_error, server_error_response
from events_api.core.logging import clear_request_id, get_request_id, set_request_id

logger = logging.getLogger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]
HttpMiddleware = Callable[[Request, CallNext], Awaitable[Response]]

PREFLIGHT_ALLOW_METHODS = "OPTIONS, PUT, PATCH, DELETE"
PREFLIGHT_ALLOW_HEADERS = "Authorization, Content-Type"


async def recover_panic(request: Request, call_next: CallNext) -> Response:
    """Turn any exception escaping the inner chain into a 500 response.

    Sets ``Connection: close`` so the server drops the connection after
    replying; whatever state the failing request left on it is discarded.
    """

    try:
        return await call_next(request)
    except Exception as exc:  # noqa: BLE001 - last line of defence
        logger.error(
            "panic_recovered",
            exc_info=exc,
            extra={
                "error_type": type(exc).__name__,
                "request_path": request.url.path,
                "request_method": request.method,
                "request_id": get_request_id(),
            },
        )
        return server_error_response(headers={"Connection": "close"})


def build_request_id_middleware(header_name: str) -> HttpMiddleware:
    """Create middleware for request ID generation and propagation.

    Uses the incoming correlation header (``header_name``, configured by
    ``LOG_REQUEST_ID_HEADER``) or a fresh UUID, keeps it in contextvars for
    log correlation while the request runs, and echoes it back along with the
    total duration.

    Side Effects:
        - Sets request_id in contextvars (accessible via get_request_id())
        - Clears it after the request completes
        - Adds the request id header and X-Request-Duration-ms to the response
    """

    async def request_id_middleware(request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get(header_name) or str(uuid.uuid4())
        set_request_id(request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            clear_request_id()

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers[header_name] = request_id
        response.headers.setdefault("X-Request-Duration-ms", f"{duration_ms:.2f}")
        return response

    return request_id_middleware


def build_cors_middleware(trusted_origins: Sequence[str]) -> HttpMiddleware:
    """Create middleware answering CORS for an exact-match origin allowlist.

    Preflight requests from a trusted origin are answered here with 200 and
    never reach the rate limiter or the routes.
    """

    trusted = tuple(trusted_origins)

    async def enable_cors(request: Request, call_next: CallNext) -> Response:
        origin = request.headers.get("Origin", "")
        allowed = bool(origin) and origin in trusted

        if (
            allowed
            and request.method == "OPTIONS"
            and request.headers.get("Access-Control-Request-Method")
        ):
            response: Response = Response(status_code=200)
            response.headers["Access-Control-Allow-Methods"] = PREFLIGHT_ALLOW_METHODS
            response.headers["Access-Control-Allow-Headers"] = PREFLIGHT_ALLOW_HEADERS
        else:
            response = await call_next(request)

        response.headers.append("Vary", "Origin")
        response.headers.append("Vary", "Access-Control-Request-Method")
        if allowed:
            response.headers["Access-Control-Allow-Origin"] = origin
        return response

    return enable_cors


def build_body_limit_middleware(max_bytes: int) -> HttpMiddleware:
    """Reject requests whose body is larger than ``max_bytes``.

    A declared Content-Length is checked up front. Without one (chunked
    transfer) the body is read here and measured; Starlette caches it, so the
    route still receives it.
    """

    def too_large(size: int) -> Response:
        logger.info(
            "request_body.rejected",
            extra={"content_length": size, "max_bytes": max_bytes},
        )
        return render_app_error(
            PayloadTooLargeAppError(
                code="body_too_large",
                message=f"body must not be larger than {max_bytes} bytes",
            )
        )

    async def limit_request_body(request: Request, call_next: CallNext) -> Response:
        declared = request.headers.get("Content-Length")
        if declared and declared.isdigit():
            if int(declared) > max_bytes:
                return too_large(int(declared))
        else:
            body = await request.body()
            if len(body) > max_bytes:
                return too_large(len(body))
        return await call_next(request)

    return limit_request_body


def install_middleware(
    app: FastAPI,
    *,
    gate: HttpMiddleware,
    trusted_origins: Sequence[str],
    max_body_bytes: int,
    request_id_header: str = "X-Request-ID",
) -> None:
    """Register the middleware chain on ``app``.

    Starlette puts the most recently added middleware outermost, so they are
    added innermost first.
    """

    app.middleware("http")(build_body_limit_middleware(max_body_bytes))
    app.middleware("http")(gate)
    app.middleware("http")(build_cors_middleware(trusted_origins))
    app.middleware("http")(build_request_id_middleware(request_id_header))
    app.middleware("http")(recover_panic)
