"""Tests for the ASGI boundary: body reading, disconnects, and sending."""

from typing import Any

import anyio

from roost.app import App
from roost.config import AppConfig
from roost.context import get_request
from roost.http.request import Request
from roost.http.response import Response
from roost.server.sender import send_response


def _scope(method: str, path: str, headers: list[tuple[bytes, bytes]] | None = None) -> dict:
    return {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": headers or [],
        "http_version": "1.1",
    }


class Recorder:
    """Collects ASGI messages sent by the app."""

    def __init__(self) -> None:
        self.messages: list[dict[str, Any]] = []

    async def __call__(self, message: dict[str, Any]) -> None:
        self.messages.append(message)

    @property
    def status(self) -> int | None:
        for message in self.messages:
            if message["type"] == "http.response.start":
                return message["status"]
        return None

    @property
    def body(self) -> bytes:
        return b"".join(
            m.get("body", b"") for m in self.messages if m["type"] == "http.response.body"
        )


class TestDisconnect:
    async def test_disconnect_cancels_resolution(self) -> None:
        app = App()
        provider_finished: list[bool] = []

        class Slow:
            pass

        async def make_slow() -> Slow:
            await anyio.sleep(1)
            provider_finished.append(True)
            return Slow()

        app.provide(Slow, make_slow)

        @app.route("/slow")
        async def slow(dep: Slow) -> str:
            return "done"

        disconnect = anyio.Event()
        body_sent = False

        async def receive() -> dict[str, Any]:
            nonlocal body_sent
            if not body_sent:
                body_sent = True
                return {"type": "http.request", "body": b"", "more_body": False}
            await disconnect.wait()
            return {"type": "http.disconnect"}

        send = Recorder()
        async with anyio.create_task_group() as tg:
            tg.start_soon(app, _scope("GET", "/slow"), receive, send)
            await anyio.sleep(0.05)
            disconnect.set()

        assert provider_finished == []
        assert send.messages == []

    async def test_disconnect_while_reading_body(self) -> None:
        app = App()
        called: list[bool] = []

        @app.route("/upload", methods=["POST"])
        async def upload() -> None:
            called.append(True)

        messages = iter(
            [
                {"type": "http.request", "body": b"part", "more_body": True},
                {"type": "http.disconnect"},
            ]
        )

        async def receive() -> dict[str, Any]:
            return next(messages)

        send = Recorder()
        await app(_scope("POST", "/upload"), receive, send)
        assert called == []
        assert send.messages == []


class TestBodyLimits:
    async def test_declared_length_too_large(self) -> None:
        app = App(AppConfig(max_content_length=10))

        @app.route("/upload", methods=["POST"])
        async def upload() -> None: ...

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        send = Recorder()
        headers = [(b"content-length", b"100")]
        await app(_scope("POST", "/upload", headers), receive, send)
        assert send.status == 413

    async def test_streamed_body_too_large(self) -> None:
        app = App(AppConfig(max_content_length=10))

        @app.route("/upload", methods=["POST"])
        async def upload() -> None: ...

        chunk = {"type": "http.request", "body": b"x" * 8, "more_body": True}

        async def receive() -> dict[str, Any]:
            return chunk

        send = Recorder()
        await app(_scope("POST", "/upload"), receive, send)
        assert send.status == 413
        assert b"invalid_payload" in send.body

    async def test_chunked_body_is_joined(self) -> None:
        app = App()

        @app.route("/echo", methods=["POST"])
        async def echo(request: Request) -> bytes:
            return await request.body()

        messages = iter(
            [
                {"type": "http.request", "body": b"hello ", "more_body": True},
                {"type": "http.request", "body": b"world", "more_body": False},
            ]
        )

        async def receive() -> dict[str, Any]:
            try:
                return next(messages)
            except StopIteration:
                await anyio.sleep_forever()
                raise

        send = Recorder()
        await app(_scope("POST", "/echo"), receive, send)
        assert send.status == 200
        assert send.body == b"hello world"


class TestRequestContext:
    async def test_current_request_visible_to_providers(self) -> None:
        app = App()

        class CurrentPath(str):
            pass

        app.provide(CurrentPath, lambda: CurrentPath(get_request().path))

        @app.route("/where")
        async def where(path: CurrentPath) -> str:
            return str(path)

        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        blocked = False

        async def receive_once() -> dict[str, Any]:
            nonlocal blocked
            if blocked:
                await anyio.sleep_forever()
            blocked = True
            return await receive()

        send = Recorder()
        await app(_scope("GET", "/where"), receive_once, send)
        assert send.body == b"/where"


class TestSender:
    async def test_sets_content_length(self) -> None:
        send = Recorder()
        await send_response(Response(body="hello"), send)
        start = send.messages[0]
        assert start["status"] == 200
        assert (b"content-length", b"5") in start["headers"]
        assert send.body == b"hello"

    async def test_no_body_for_204(self) -> None:
        send = Recorder()
        await send_response(Response(body="ignored", status=204), send)
        assert send.body == b""
        assert (b"content-length", b"0") in send.messages[0]["headers"]

    async def test_header_names_lowercased(self) -> None:
        send = Recorder()
        await send_response(Response().with_header("X-Trace", "abc"), send)
        assert (b"x-trace", b"abc") in send.messages[0]["headers"]
