"""ASGI handler: translates ASGI scope/messages to roost types.

The only component that touches raw ASGI directly. For every HTTP
request it:

1. reads the whole body off the receive channel (bounded by
   ``max_content_length``)
2. runs the dispatcher while a sibling task watches the channel for
   ``http.disconnect``; a disconnect cancels resolution, and since
   nobody is listening, no response is sent
3. turns the outcome into a Response and sends it
"""

from __future__ import annotations

import logging
from contextvars import Token
from typing import TYPE_CHECKING

import anyio

from roost._internal.asgi import Receive, Scope, Send
from roost.context import request_var
from roost.errors import HTTPError
from roost.http.request import Request
from roost.http.response import Response
from roost.outcomes import Failure, InvalidPayload, Outcome, Success
from roost.server.dispatcher import Dispatcher
from roost.server.errors import (
    ErrorHandlers,
    handle_failure,
    handle_http_error,
    handle_internal_error,
)
from roost.server.negotiation import negotiate
from roost.server.sender import send_response

if TYPE_CHECKING:
    from kida import Environment

logger = logging.getLogger("roost.server")


class _ClientGone(Exception):
    """The client disconnected before the request body was complete."""


class _TooLarge(Exception):
    """The request body exceeds the configured limit."""


async def _read_body(receive: Receive, limit: int) -> bytes:
    chunks: list[bytes] = []
    size = 0
    while True:
        message = await receive()
        if message["type"] == "http.disconnect":
            raise _ClientGone
        chunk = message.get("body", b"")
        size += len(chunk)
        if size > limit:
            raise _TooLarge
        if chunk:
            chunks.append(chunk)
        if not message.get("more_body", False):
            return b"".join(chunks)


async def _dispatch_until_disconnect(
    dispatcher: Dispatcher,
    request: Request,
    receive: Receive,
) -> tuple[Outcome | None, Exception | None, bool]:
    """Run the dispatcher, cancelling it if the client goes away.

    Returns ``(outcome, error, disconnected)``.
    """
    outcome: Outcome | None = None
    error: Exception | None = None
    disconnected = False

    async with anyio.create_task_group() as tg:

        async def watch() -> None:
            nonlocal disconnected
            while True:
                message = await receive()
                if message["type"] == "http.disconnect":
                    disconnected = True
                    logger.debug("client disconnected: %s %s", request.method, request.path)
                    tg.cancel_scope.cancel()
                    return

        tg.start_soon(watch)
        try:
            outcome = await dispatcher.handle(request)
        except Exception as exc:
            error = exc
        tg.cancel_scope.cancel()

    return outcome, error, disconnected


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    dispatcher: Dispatcher,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None = None,
    debug: bool = False,
    max_content_length: int = 16 * 1024 * 1024,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive, body=b"")
    declared = request.content_length
    try:
        if declared is not None and declared > max_content_length:
            raise _TooLarge
        body = await _read_body(receive, max_content_length)
    except _ClientGone:
        logger.debug("client disconnected while sending %s %s", request.method, request.path)
        return
    except _TooLarge:
        too_large = InvalidPayload(
            reason=f"Request body exceeds {max_content_length} bytes", code=413
        )
        response = await handle_failure(too_large, request, error_handlers, kida_env)
        await send_response(response, send)
        return

    request = Request.from_asgi(scope, receive, body=body)
    token: Token[Request] = request_var.set(request)
    try:
        outcome, error, disconnected = await _dispatch_until_disconnect(
            dispatcher, request, receive
        )
        if disconnected:
            return
        response = await _to_response(
            outcome, error, request, error_handlers, kida_env, debug
        )
    finally:
        request_var.reset(token)

    await send_response(response, send)


async def _to_response(
    outcome: Outcome | None,
    error: Exception | None,
    request: Request,
    error_handlers: ErrorHandlers,
    kida_env: Environment | None,
    debug: bool,
) -> Response:
    try:
        if error is not None:
            raise error
        match outcome:
            case Success(value):
                return negotiate(value, kida_env=kida_env)
            case Failure():
                return await handle_failure(outcome, request, error_handlers, kida_env)
        msg = f"Dispatcher produced no outcome for {request.method} {request.path}"
        raise RuntimeError(msg)
    except HTTPError as exc:
        return await handle_http_error(exc, request, error_handlers, kida_env)
    except Exception as exc:
        return await handle_internal_error(exc, request, error_handlers, kida_env, debug)
