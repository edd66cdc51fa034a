"""Error handling pipeline for roost requests.

Maps pipeline failures, ``HTTPError`` exceptions and unexpected
exceptions to Response objects, using registered error handlers or
JSON defaults.

Handlers registered with ``@app.error(...)`` are looked up by exact
type first, then by status code.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from roost.errors import HTTPError
from roost.http.request import Request
from roost.http.response import Response, json_response
from roost.outcomes import Failure
from roost.server.negotiation import negotiate

if TYPE_CHECKING:
    from kida import Environment

logger = logging.getLogger("roost.server")

type ErrorHandlers = dict[int | type, Callable[..., Any]]


async def call_error_handler(
    handler: Callable[..., Any],
    request: Request,
    error: Any,
    kida_env: Environment | None,
) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request,
    error) arguments, and may be sync or async.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, error)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result

    return negotiate(result, kida_env=kida_env)


async def handle_failure(
    failure: Failure,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
) -> Response:
    """Map a typed pipeline failure to a Response.

    The default body is ``failure.to_dict()`` as JSON, with the
    failure's status.
    """
    handler = error_handlers.get(type(failure)) or error_handlers.get(failure.status)
    if handler is not None:
        response = await call_error_handler(handler, request, failure, kida_env)
        if response.status == 200:
            response = response.with_status(failure.status)
        return response
    return json_response(failure.to_dict(), status=failure.status)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
) -> Response:
    """Map an HTTPError raised by a handler to a Response."""
    logger.debug("%d %s %s; %s", exc.status, request.method, request.path, exc.detail)

    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, kida_env)
        # Preserve the HTTP status from the exception unless the handler
        # explicitly returned a Response with its own status
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    resp = json_response(
        {"error": "http_error", "detail": exc.detail or f"Error {exc.status}"},
        status=exc.status,
    )
    for name, value in exc.headers:
        resp = resp.with_header(name, value)
    return resp


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(type(exc)) or error_handlers.get(500)
    if handler is not None:
        response = await call_error_handler(handler, request, exc, kida_env)
        if response.status == 200:
            response = response.with_status(500)
        return response

    detail = f"{type(exc).__name__}: {exc}" if debug else "Internal Server Error"
    return json_response({"error": "internal_error", "detail": detail}, status=500)
