"""Request-scoped context via ContextVar.

``request_var`` holds the current ``Request`` while the ASGI handler is
dispatching it, so service providers and helpers deep in a call stack
can reach it without threading it through every signature.

``ContextVar`` is task-local, so no locks are needed.
"""

from contextvars import ContextVar

from roost.http.request import Request

request_var: ContextVar[Request] = ContextVar("roost_request")
"""The current request. Set by the ASGI handler before dispatch."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
