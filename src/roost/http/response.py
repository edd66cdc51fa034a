"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response.
"""

from __future__ import annotations

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

JSON_CONTENT_TYPE = "application/json"
HTML_CONTENT_TYPE = "text/html; charset=utf-8"


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations.

    Handlers may return one directly to take full control of status,
    headers and body; negotiation passes it through untouched.
    """

    body: str | bytes = ""
    status: int = 200
    content_type: str = HTML_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        new = tuple(headers.items())
        return replace(self, headers=(*self.headers, *new))

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body

    def json(self) -> Any:
        """Decode a JSON body."""
        return json_module.loads(self.body_bytes)


def json_response(data: Any, status: int = 200) -> Response:
    """Serialize *data* as a JSON response.

    Values the encoder does not know (datetimes, decimals, UUIDs) are
    written with ``str()``.
    """
    body = json_module.dumps(data, default=str)
    return Response(body=body, status=status, content_type=JSON_CONTENT_TYPE)


@dataclass(frozen=True, slots=True)
class Redirect:
    """A redirect response, e.g. after a successful form post."""

    url: str
    status: int = 303
    headers: tuple[tuple[str, str], ...] = ()
