"""Immutable HTTP request.

Frozen metadata with async body access. The ASGI handler reads the body
before dispatch, so by the time a handler sees a ``Request`` the body is
already cached and ``body()``/``json()``/``form()`` never block on the
network.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from roost._internal.asgi import Receive, Scope
from roost.http.headers import Headers
from roost.http.query import QueryParams

if TYPE_CHECKING:
    from roost.http.forms import FormData


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Metadata (method, path, headers, etc.) is frozen at creation. The
    body is accessed asynchronously via ``.body()``, ``.json()``,
    ``.form()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None

    # ASGI receive callable for body streaming
    _receive: Receive

    # Mutable cache for body and parsed payloads
    # (dict contents are mutable even though the field reference is frozen)
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Computed properties --

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    @property
    def content_length(self) -> int | None:
        value = self.headers.get("content-length")
        if value is None:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def url(self) -> str:
        """Full request URL (path + query string)."""
        qs = self.query.raw
        if qs:
            return f"{self.path}?{qs.decode('latin-1')}"
        return self.path

    @property
    def accepts_html(self) -> bool:
        """True if the client prefers HTML over JSON."""
        accept = self.headers.get("accept", "")
        return "text/html" in accept and "application/json" not in accept

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body (cached after the first read)."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            if message["type"] == "http.disconnect":
                break
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    async def form(self) -> FormData:
        """Parse the body as form data (URL-encoded or multipart).

        Raises ``PayloadError`` if the body is not a form encoding.
        """
        if "_form" in self._cache:
            return self._cache["_form"]

        from roost.http.forms import parse_form_data

        ct = self.content_type or "application/x-www-form-urlencoded"
        result = await parse_form_data(await self.body(), ct)
        self._cache["_form"] = result
        return result

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Scope,
        receive: Receive,
        *,
        body: bytes | None = None,
        path_params: dict[str, str] | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable.

        Pass *body* when it has already been read off the channel.
        """
        server = scope.get("server")
        client = scope.get("client")
        cache: dict[str, Any] = {} if body is None else {"_body": body}
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=Headers(scope.get("headers", ())),
            query=QueryParams(scope.get("query_string", b"")),
            path_params=path_params or {},
            http_version=scope.get("http_version", "1.1"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            _receive=receive,
            _cache=cache,
        )
