"""Request payload parsing: JSON, URL-encoded and multipart bodies.

Every payload comes out as a mapping of field names to raw values, ready
for ``roost.forms.bind``. ``FormData`` and ``QueryParams`` also provide
``get_list`` for multi-valued fields (checkboxes, repeated keys).

URL-encoded forms use stdlib ``urllib.parse``. Multipart bodies go
through ``python-multipart``.
"""

import json
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs

JSON_TYPES = frozenset({"application/json"})
FORM_TYPES = frozenset({"application/x-www-form-urlencoded", "multipart/form-data"})


class PayloadError(ValueError):
    """Raised when a request body cannot be decoded."""


@dataclass(frozen=True, slots=True)
class UploadFile:
    """An uploaded file from a multipart form submission.

    The content is held in memory as bytes.
    """

    filename: str
    content_type: str
    size: int
    _content: bytes

    async def read(self) -> bytes:
        return self._content

    async def save(self, path: Path) -> None:
        """Write the file content to *path*. Parent directories must exist."""
        path.write_bytes(self._content)

    def __repr__(self) -> str:
        return f"UploadFile({self.filename!r}, {self.content_type!r}, {self.size} bytes)"


class FormData(Mapping[str, Any]):
    """Immutable parsed form data.

    ``__getitem__`` returns the first value for a key, falling back to
    an uploaded file of that name, so a form field annotated
    ``UploadFile`` binds like any other field.

    Usage::

        form = await request.form()
        username = form["username"]
        avatar = form.files.get("avatar")  # UploadFile or None
    """

    __slots__ = ("_data", "_files")

    def __init__(
        self,
        data: dict[str, list[str]],
        files: dict[str, UploadFile] | None = None,
    ) -> None:
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_files", files or {})

    @property
    def files(self) -> Mapping[str, UploadFile]:
        """Uploaded files by field name."""
        return self._files

    def __getitem__(self, key: str) -> Any:
        values = self._data.get(key)
        if values:
            return values[0]
        if key in self._files:
            return self._files[key]
        raise KeyError(key)

    def __contains__(self, key: object) -> bool:
        return key in self._data or key in self._files

    def __iter__(self) -> Iterator[str]:
        yield from self._data
        yield from (k for k in self._files if k not in self._data)

    def __len__(self) -> int:
        return len(self._data.keys() | self._files.keys())

    def __repr__(self) -> str:
        items = ", ".join(f"{k!r}: {self[k]!r}" for k in self)
        return f"FormData({{{items}}})"

    def get(self, key: str, default: Any = None) -> Any:
        try:
            return self[key]
        except KeyError:
            return default

    def get_list(self, key: str) -> list[str]:
        """Return all values for *key* (checkboxes, multi-selects)."""
        return list(self._data.get(key, []))


def media_type(content_type: str | None) -> str:
    """The bare media type: ``"text/html; charset=utf-8"`` -> ``"text/html"``."""
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


async def parse_payload(body: bytes, content_type: str | None) -> Mapping[str, Any]:
    """Decode a request body into a field mapping.

    - empty body: an empty ``FormData``
    - ``application/json`` (or ``+json``): the decoded object, which
      must be a JSON object
    - URL-encoded or multipart: ``FormData``

    Raises ``PayloadError`` for malformed bodies and unsupported
    content types.
    """
    if not body:
        return FormData({})

    ct = media_type(content_type)
    if ct in JSON_TYPES or ct.endswith("+json"):
        try:
            data = json.loads(body)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise PayloadError(f"Malformed JSON body: {exc}") from exc
        if not isinstance(data, dict):
            raise PayloadError("JSON body must be an object")
        return data

    if ct in FORM_TYPES or not ct:
        return await parse_form_data(body, content_type or "application/x-www-form-urlencoded")

    raise PayloadError(f"Unsupported content type: {content_type!r}")


async def parse_form_data(body: bytes, content_type: str) -> FormData:
    """Parse a form body into ``FormData``.

    Raises ``PayloadError`` if the content type is not a form encoding
    or the body does not decode.
    """
    ct = media_type(content_type)

    if ct == "application/x-www-form-urlencoded":
        return _parse_urlencoded(body)

    if ct == "multipart/form-data":
        return _parse_multipart(body, content_type)

    raise PayloadError(f"Unsupported form content type: {content_type!r}")


def _parse_urlencoded(body: bytes) -> FormData:
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadError("Form body is not valid UTF-8") from exc
    return FormData(parse_qs(text, keep_blank_values=True))


def _parse_multipart(body: bytes, content_type: str) -> FormData:
    from python_multipart.exceptions import MultipartParseError
    from python_multipart.multipart import MultipartParser, parse_options_header

    _, options = parse_options_header(content_type.encode("latin-1"))
    boundary = options.get(b"boundary")
    if boundary is None:
        raise PayloadError("Multipart form data missing boundary parameter")

    data: dict[str, list[str]] = {}
    files: dict[str, UploadFile] = {}

    # Per-part state, reset at every part boundary
    headers: dict[str, str] = {}
    header_field = bytearray()
    header_value = bytearray()
    content = bytearray()

    def on_part_begin() -> None:
        headers.clear()
        content.clear()

    def on_header_field(chunk: bytes, start: int, end: int) -> None:
        header_field.extend(chunk[start:end])

    def on_header_value(chunk: bytes, start: int, end: int) -> None:
        header_value.extend(chunk[start:end])

    def on_header_end() -> None:
        headers[header_field.decode("latin-1").lower()] = header_value.decode("latin-1")
        header_field.clear()
        header_value.clear()

    def on_part_data(chunk: bytes, start: int, end: int) -> None:
        content.extend(chunk[start:end])

    def on_part_end() -> None:
        _, params = parse_options_header(
            headers.get("content-disposition", "").encode("latin-1")
        )
        name = params.get(b"name")
        if name is None:
            return
        field_name = name.decode("utf-8")
        filename = params.get(b"filename")
        if filename is not None:
            raw = bytes(content)
            files[field_name] = UploadFile(
                filename=filename.decode("utf-8"),
                content_type=headers.get("content-type", "application/octet-stream"),
                size=len(raw),
                _content=raw,
            )
        else:
            data.setdefault(field_name, []).append(content.decode("utf-8", errors="replace"))

    callbacks: dict[str, Any] = {
        "on_part_begin": on_part_begin,
        "on_part_data": on_part_data,
        "on_part_end": on_part_end,
        "on_header_field": on_header_field,
        "on_header_value": on_header_value,
        "on_header_end": on_header_end,
    }

    parser = MultipartParser(boundary, callbacks)
    try:
        parser.write(body)
        parser.finalize()
    except MultipartParseError as exc:
        raise PayloadError(f"Malformed multipart body: {exc}") from exc

    return FormData(data, files)
