"""Tests for roost.http.forms: request payload decoding."""

import pytest

from roost.http.forms import FormData, PayloadError, UploadFile, media_type, parse_payload


class TestMediaType:
    def test_strips_parameters(self) -> None:
        assert media_type("application/json; charset=utf-8") == "application/json"

    def test_lowercases(self) -> None:
        assert media_type("Application/JSON") == "application/json"

    def test_none(self) -> None:
        assert media_type(None) == ""


class TestParsePayload:
    async def test_empty_body(self) -> None:
        payload = await parse_payload(b"", "application/json")
        assert isinstance(payload, FormData)
        assert len(payload) == 0

    async def test_json_object(self) -> None:
        payload = await parse_payload(b'{"title": "Hello", "tags": [1, 2]}', "application/json")
        assert payload == {"title": "Hello", "tags": [1, 2]}

    async def test_json_suffix_type(self) -> None:
        payload = await parse_payload(b'{"a": 1}', "application/vnd.api+json")
        assert payload == {"a": 1}

    async def test_json_must_be_object(self) -> None:
        with pytest.raises(PayloadError, match="must be an object"):
            await parse_payload(b"[1, 2]", "application/json")

    async def test_malformed_json(self) -> None:
        with pytest.raises(PayloadError, match="Malformed JSON"):
            await parse_payload(b"{not json", "application/json")

    async def test_urlencoded(self) -> None:
        payload = await parse_payload(
            b"title=Hello+world&tags=1&tags=2", "application/x-www-form-urlencoded"
        )
        assert payload["title"] == "Hello world"
        assert payload.get_list("tags") == ["1", "2"]

    async def test_missing_content_type_reads_as_form(self) -> None:
        payload = await parse_payload(b"title=Hello", None)
        assert payload["title"] == "Hello"

    async def test_unsupported_content_type(self) -> None:
        with pytest.raises(PayloadError, match="Unsupported content type"):
            await parse_payload(b"hello", "text/plain")

    async def test_multipart(self) -> None:
        boundary = "roostboundary"
        body = (
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="title"\r\n'
            "\r\n"
            "Hello\r\n"
            f"--{boundary}\r\n"
            'Content-Disposition: form-data; name="cover"; filename="cover.txt"\r\n'
            "Content-Type: text/plain\r\n"
            "\r\n"
            "file body\r\n"
            f"--{boundary}--\r\n"
        ).encode()
        payload = await parse_payload(body, f"multipart/form-data; boundary={boundary}")
        assert payload["title"] == "Hello"
        cover = payload["cover"]
        assert isinstance(cover, UploadFile)
        assert cover.filename == "cover.txt"
        assert cover.content_type == "text/plain"
        assert await cover.read() == b"file body"

    async def test_multipart_without_boundary(self) -> None:
        with pytest.raises(PayloadError, match="boundary"):
            await parse_payload(b"--x--", "multipart/form-data")


class TestFormData:
    def test_first_value(self) -> None:
        data = FormData({"tag": ["a", "b"]})
        assert data["tag"] == "a"
        assert data.get_list("tag") == ["a", "b"]

    def test_get_default(self) -> None:
        assert FormData({}).get("missing", "x") == "x"

    def test_files_are_members(self) -> None:
        upload = UploadFile(filename="a.txt", content_type="text/plain", size=1, _content=b"a")
        data = FormData({"title": ["Hi"]}, {"cover": upload})
        assert "cover" in data
        assert set(data) == {"title", "cover"}
        assert data.files["cover"] is upload
