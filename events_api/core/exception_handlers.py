"""Global exception handlers for consistent error responses.

Every error leaves the API in the same single-field envelope:

    {"error": "<message>"}            # most errors
    {"error": {"<field>": "<why>"}}   # validation errors

Design:
- AppError subclasses -> their own ``status_code`` (400, 404, 409, 422, 429, 500)
- Starlette HTTP errors (unknown route, wrong method) -> same envelope
- Request validation errors -> 400 for unreadable bodies, 422 per field
- Unexpected Exception -> generic 500 (safety net, no details leaked)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from events_api.core.errors import (
    NOT_FOUND_MESSAGE,
    SERVER_ERROR_MESSAGE,
    AppError,
)
from events_api.core.logging import get_request_id

logger = logging.getLogger(__name__)


def error_response(
    status_code: int,
    message: Any,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Build the JSON error envelope response."""

    return JSONResponse(
        status_code=status_code,
        content={"error": message},
        headers=headers,
    )


def render_app_error(exc: AppError) -> JSONResponse:
    """Render an AppError without logging it.

    Used directly by middleware, which runs outside FastAPI's handler stack.
    """

    return error_response(exc.status_code, exc.message)


def server_error_response(headers: dict[str, str] | None = None) -> JSONResponse:
    return error_response(500, SERVER_ERROR_MESSAGE, headers=headers)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors.

    Server-side faults (5xx) are logged at ERROR with their details; client
    faults at INFO, since they are part of normal traffic.
    """

    log_extra = {
        "error_code": exc.code,
        "status_code": exc.status_code,
        "request_path": request.url.path,
        "request_method": request.method,
        "request_id": get_request_id(),
    }
    if exc.status_code >= 500:
        logger.error("app_error_handled", extra={**log_extra, "details": exc.details})
    else:
        logger.info("app_error_handled", extra=log_extra)

    return render_app_error(exc)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render router-level HTTP errors (404, 405, ...) in the error envelope."""

    if exc.status_code == 404:
        message: Any = NOT_FOUND_MESSAGE
    elif exc.status_code == 405:
        message = f"the {request.method} method is not supported for this resource"
    else:
        message = exc.detail

    return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path", "header")]
    return ".".join(parts) or "body"


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Translate request validation failures.

    Bodies that cannot be read as the expected JSON object are a bad request
    (400); well-formed input with bad values is 422 with a message per field.
    """

    errors = exc.errors()

    for err in errors:
        err_type = err.get("type")
        loc = tuple(err.get("loc", ()))
        if err_type == "json_invalid":
            return error_response(400, "body contains badly-formed JSON")
        if err_type == "missing" and loc == ("body",):
            return error_response(400, "body must not be empty")
        if err_type == "extra_forbidden":
            return error_response(400, f"body contains unknown key {_field_name(loc)!r}")
        if err_type in ("model_attributes_type", "dict_type") and loc == ("body",):
            return error_response(400, "body must be a JSON object")

    fields: dict[str, str] = {}
    for err in errors:
        name = _field_name(err.get("loc", ()))
        msg = str(err.get("msg", "is invalid"))
        # Messages from our own validators arrive prefixed by pydantic
        msg = msg.removeprefix("Value error, ")
        fields.setdefault(name, msg)

    return error_response(422, fields)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure for debugging while returning a generic message, so no
    stack trace or exception text reaches the client.
    """

    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )

    return server_error_response()


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Calling it more than once simply re-registers the same handlers.
    """

    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(RequestValidationError)(validation_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
