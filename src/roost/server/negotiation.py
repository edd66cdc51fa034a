"""Content negotiation: maps handler return values to Response objects.

isinstance-based dispatch, no magic, fully predictable.
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

from roost.entities.entity import Entity
from roost.errors import ConfigurationError
from roost.forms.form import Form
from roost.http.response import Redirect, Response, json_response
from roost.templating import Template, render_template

if TYPE_CHECKING:
    from kida import Environment


def to_jsonable(value: Any) -> Any:
    """Convert entities, forms and other dataclasses to JSON-ready data.

    Entities serialize their columns only; relations are never loaded
    by serialization.
    """
    match value:
        case Entity():
            return value.to_dict()
        case Form():
            return value.values()
        case list() | tuple():
            return [to_jsonable(item) for item in value]
        case dict():
            return {key: to_jsonable(item) for key, item in value.items()}
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return dataclasses.asdict(value)
        case _:
            return value


def negotiate(value: Any, *, kida_env: Environment | None = None) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``          -> pass through
    2. ``Redirect``          -> 3xx with Location header
    3. ``Template``          -> render via kida -> text/html
    4. ``None``              -> 204 No Content
    5. ``str``               -> 200, text/html
    6. ``bytes``             -> 200, application/octet-stream
    7. ``Entity`` / ``Form`` / dataclass / ``dict`` / ``list``
                             -> 200, application/json
    8. ``(value, int)``      -> negotiate value, override status
    9. ``(value, int, dict)``-> negotiate value, override status + headers
    """
    match value:
        case Response():
            return value
        case Redirect():
            return (
                Response(body="")
                .with_status(value.status)
                .with_header("Location", value.url)
                .with_headers(dict(value.headers))
            )
        case Template():
            if kida_env is None:
                msg = (
                    "Template return type requires kida integration. "
                    "Ensure a template_dir is configured in AppConfig."
                )
                raise ConfigurationError(msg)
            return Response(body=render_template(kida_env, value))
        case None:
            return Response(body=b"", status=204)
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case Entity() | Form() | dict() | list():
            return json_response(to_jsonable(value))
        case (inner, int() as status):
            return negotiate(inner, kida_env=kida_env).with_status(status)
        case (inner, int() as status, dict() as headers):
            return negotiate(inner, kida_env=kida_env).with_status(status).with_headers(headers)
        case _ if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return json_response(to_jsonable(value))
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return an Entity, Form, dict, list, str, bytes, None, "
                "Template, Response, or Redirect."
            )
            raise TypeError(msg)
