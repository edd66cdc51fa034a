"""Tests for roost.app: registration, freezing, and the full request path."""

from dataclasses import dataclass
from typing import Any, ClassVar

import pytest

from roost.app import App
from roost.config import AppConfig
from roost.controller import Controller
from roost.data import Database, DatabaseStore, Persistence
from roost.entities import Entity, HasMany
from roost.errors import ConfigurationError, DuplicateRoute, HTTPError, UnknownRule
from roost.forms import Form, field
from roost.http.request import Request
from roost.http.response import Redirect
from roost.outcomes import EntityNotFound, ValidationFailed
from roost.testing import TestClient
from roost.validation import rule


@dataclass(frozen=True, slots=True)
class Comment(Entity):
    id: int | None = None
    article_id: int | None = None
    body: str = ""


@dataclass(frozen=True, slots=True)
class Article(Entity):
    id: int | None = None
    title: str = ""
    content: str = ""
    created_at: str = ""
    updated_at: str = ""

    comments: ClassVar[HasMany[Comment]] = HasMany(Comment, "article_id")


@dataclass(frozen=True, slots=True)
class ArticleForm(Form):
    title: str = field(rules=["required", rule("min_length", 5)])
    content: str = field(rules=["required"])


SCHEMA = """
CREATE TABLE articles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    content TEXT NOT NULL,
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);
CREATE TABLE comments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    article_id INTEGER REFERENCES articles(id),
    body TEXT NOT NULL
);
INSERT INTO articles (id, title, content, created_at, updated_at)
    VALUES (3, 'Three', 'c', '2024-01-01', '2024-01-01');
INSERT INTO articles (id, title, content, created_at, updated_at)
    VALUES (7, 'Seven', 'c', '2024-01-01', '2024-01-01');
INSERT INTO comments (article_id, body) VALUES (7, 'first');
"""


def _blog_app(tmp_path, seen: list[Any] | None = None) -> App:
    """The article resource wired to a fresh SQLite database."""
    app = App(db=f"sqlite:///{tmp_path / 'blog.db'}")
    articles = Controller("/articles", name="articles")
    seen = seen if seen is not None else []

    @app.on_startup
    async def create_schema() -> None:
        await app.db.execute_script(SCHEMA)

    @articles.get("")
    async def index(store: Persistence) -> list[Article]:
        return await store.find_all(Article)

    @articles.post("")
    async def create(form: ArticleForm, store: Persistence) -> tuple[Article, int]:
        seen.append(("create", form))
        return await store.save(Article.from_form(form)), 201

    @articles.get(":Article")
    async def show(article: Article) -> Article:
        seen.append(("show", article))
        return article

    @articles.patch(":Article")
    async def update(article: Article, form: ArticleForm, store: Persistence) -> Article:
        seen.append(("update", article))
        return await store.save(article.fill(form))

    @articles.delete(":Article")
    async def destroy(article: Article, store: Persistence) -> None:
        seen.append(("destroy", article))
        await store.delete(article)

    @articles.get(":Article/comments")
    async def comments(article: Article) -> list[Comment]:
        return await article.comments.all()

    app.mount(articles)
    return app


class TestAppRegistration:
    def test_route_decorator(self) -> None:
        app = App()

        @app.route("/health")
        def health() -> dict[str, bool]:
            return {"ok": True}

        assert [(r.verb, r.path) for r in app.routes] == [("GET", "/health")]

    def test_route_with_methods(self) -> None:
        app = App()

        @app.route("/ping", methods=["get", "post"])
        def ping() -> str:
            return "pong"

        assert [r.verb for r in app.routes] == ["GET", "POST"]

    def test_mount_keeps_declaration_order(self) -> None:
        app = App(store=DatabaseStore(Database("sqlite:///:memory:")))
        articles = Controller("/articles")

        @articles.get(":Article")
        async def show(article: Article) -> Article:
            return article

        @articles.get("")
        async def index() -> list[Article]:
            return []

        app.mount(articles)
        assert [r.path for r in app.routes] == ["/articles/:Article", "/articles"]

    def test_cannot_register_after_freeze(self) -> None:
        app = App()
        app.routes  # noqa: B018
        with pytest.raises(RuntimeError, match="Cannot modify"):
            app.provide(str, str)

    def test_db_from_config(self) -> None:
        app = App(AppConfig(database_url="sqlite:///:memory:"))
        assert app.db.driver == "sqlite"
        assert isinstance(app.store, DatabaseStore)

    def test_explicit_store_wins(self) -> None:
        class Store:
            pass

        store = Store()
        app = App(db="sqlite:///:memory:", store=store)  # type: ignore[arg-type]
        assert app.store is store

    def test_no_database(self) -> None:
        with pytest.raises(ConfigurationError, match="No database configured"):
            App().db  # noqa: B018


class TestFreezeErrors:
    def test_entity_without_store(self) -> None:
        app = App()

        @app.route("/articles/:Article")
        async def show(article: Article) -> Article:
            return article

        with pytest.raises(ConfigurationError, match="no store"):
            app.routes  # noqa: B018

    def test_duplicate_route(self) -> None:
        app = App()

        @app.route("/articles")
        def first() -> str:
            return "a"

        @app.route("/articles/")
        def second() -> str:
            return "b"

        with pytest.raises(DuplicateRoute):
            app.routes  # noqa: B018

    def test_unknown_rule(self) -> None:
        @dataclass
        class SlugForm(Form):
            slug: str = field(rules=["slug"])

        app = App()

        @app.route("/slugs", methods=["POST"])
        async def create(form: SlugForm) -> None: ...

        with pytest.raises(UnknownRule):
            app.routes  # noqa: B018

    async def test_lifespan_reports_startup_failure(self) -> None:
        app = App()

        @app.route("/things/:Thing")
        async def show(thing: Article) -> None: ...

        sent: list[dict[str, Any]] = []
        messages = iter([{"type": "lifespan.startup"}])

        async def receive() -> dict[str, Any]:
            return next(messages)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert sent[0]["type"] == "lifespan.startup.failed"


class TestArticleResource:
    async def test_create_reports_every_invalid_field(self, tmp_path) -> None:
        seen: list[Any] = []
        app = _blog_app(tmp_path, seen)
        async with TestClient(app) as client:
            response = await client.post("/articles", json={"title": "", "content": "Body"})
            count = await app.db.fetch_val("SELECT COUNT(*) FROM articles")

        assert response.status == 422
        data = response.json()
        assert data["error"] == "validation_failed"
        assert data["errors"] == {
            "title": ["This field is required", "Must be at least 5 characters"]
        }
        assert seen == []
        assert count == 2

    async def test_create(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.post(
                "/articles", json={"title": "Hello world", "content": "Body"}
            )
            listing = await client.get("/articles")

        assert response.status == 201
        created = response.json()
        assert created["title"] == "Hello world"
        assert created["id"] is not None
        assert created["created_at"]
        assert [a["title"] for a in listing.json()] == ["Three", "Seven", "Hello world"]

    async def test_create_from_urlencoded_form(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.post(
                "/articles", form={"title": "Hello world", "content": "Body"}
            )
        assert response.status == 201

    async def test_update_missing_article(self, tmp_path) -> None:
        seen: list[Any] = []
        app = _blog_app(tmp_path, seen)
        async with TestClient(app) as client:
            response = await client.patch(
                "/articles/42", json={"title": "Hello world", "content": "Body"}
            )

        assert response.status == 404
        assert response.json() == {
            "error": "entity_not_found",
            "detail": "Article 42 not found",
            "entity": "Article",
            "id": 42,
        }
        assert seen == []

    async def test_update(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.patch(
                "/articles/7", json={"title": "Seven, revised", "content": "New"}
            )
            stored = await app.store.find_by_id(Article, 7)

        assert response.status == 200
        assert response.json()["title"] == "Seven, revised"
        assert stored.title == "Seven, revised"
        assert stored.created_at == "2024-01-01"

    async def test_show_does_not_load_relations(self, tmp_path) -> None:
        seen: list[Any] = []
        app = _blog_app(tmp_path, seen)
        async with TestClient(app) as client:
            response = await client.get("/articles/7")

        assert response.status == 200
        assert response.json()["title"] == "Seven"
        assert "comments" not in response.json()
        [(_, article)] = seen
        assert article.comments.loaded is False

    async def test_relation_loaded_on_request(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.get("/articles/7/comments")
        assert [c["body"] for c in response.json()] == ["first"]

    async def test_delete(self, tmp_path) -> None:
        seen: list[Any] = []
        app = _blog_app(tmp_path, seen)
        async with TestClient(app) as client:
            response = await client.delete("/articles/3")
            remaining = await app.db.fetch_val("SELECT COUNT(*) FROM articles WHERE id = 3")

        assert response.status == 204
        assert response.body == b""
        assert [name for name, _ in seen] == ["destroy"]
        assert remaining == 0

    async def test_invalid_identifier(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.get("/articles/seven")
        assert response.status == 400
        assert response.json()["error"] == "invalid_parameter"

    async def test_unknown_route(self, tmp_path) -> None:
        app = _blog_app(tmp_path)
        async with TestClient(app) as client:
            response = await client.put("/articles/7", json={})
        assert response.status == 404
        assert response.json()["error"] == "route_not_found"


class RecordingStore:
    """Persistence fake that records deletes."""

    def __init__(self) -> None:
        self.deleted: list[Any] = []

    async def find_by_id(self, entity: type, identifier: Any) -> Any:
        return entity(id=identifier)

    async def find_all(self, entity: type) -> list[Any]:
        return []

    async def query_by_foreign_key(self, entity: type, foreign_field: str, value: Any) -> list[Any]:
        return []

    async def save(self, record: Any) -> Any:
        return record

    async def delete(self, record: Any) -> None:
        self.deleted.append(record)


class TestCustomStore:
    async def test_delete_reaches_store(self) -> None:
        store = RecordingStore()
        app = App(store=store)  # type: ignore[arg-type]
        articles = Controller("/articles")

        @articles.delete(":Article")
        async def destroy(article: Article, store: Persistence) -> None:
            await store.delete(article)

        app.mount(articles)
        async with TestClient(app) as client:
            response = await client.delete("/articles/3")

        assert response.status == 204
        assert store.deleted == [Article(id=3)]

    async def test_store_injected_by_concrete_type(self) -> None:
        store = RecordingStore()
        app = App(store=store)  # type: ignore[arg-type]

        @app.route("/store")
        async def which(s: RecordingStore) -> dict[str, bool]:
            return {"same": s is store}

        async with TestClient(app) as client:
            response = await client.get("/store")
        assert response.json() == {"same": True}


class TestErrorHandlers:
    async def test_failure_handler_by_type(self) -> None:
        app = App(store=RecordingStore())  # type: ignore[arg-type]

        @app.route("/articles/:Article", methods=["PATCH"])
        async def update(article: Article, form: ArticleForm) -> None: ...

        @app.error(ValidationFailed)
        def invalid(request: Request, failure: ValidationFailed) -> dict[str, Any]:
            return {"fields": sorted(failure.errors)}

        async with TestClient(app) as client:
            response = await client.patch("/articles/1", json={})

        assert response.status == 422
        assert response.json() == {"fields": ["content", "title"]}

    async def test_failure_handler_by_status(self) -> None:
        class EmptyStore(RecordingStore):
            async def find_by_id(self, entity: type, identifier: Any) -> Any:
                return None

        app = App(store=EmptyStore())  # type: ignore[arg-type]

        @app.route("/articles/:Article")
        async def show(article: Article) -> Article:
            return article

        @app.error(404)
        def not_found() -> str:
            return "<p>Nothing here</p>"

        async with TestClient(app) as client:
            missing = await client.get("/articles/9")
            no_route = await client.get("/nowhere")

        assert missing.status == 404
        assert missing.text == "<p>Nothing here</p>"
        assert no_route.text == "<p>Nothing here</p>"

    async def test_handler_may_set_status(self) -> None:
        class EmptyStore(RecordingStore):
            async def find_by_id(self, entity: type, identifier: Any) -> Any:
                return None

        app = App(store=EmptyStore())  # type: ignore[arg-type]

        @app.route("/articles/:Article")
        async def show(article: Article) -> Article:
            return article

        @app.error(EntityNotFound)
        def gone(request: Request, failure: EntityNotFound) -> Redirect:
            return Redirect("/articles")

        async with TestClient(app) as client:
            response = await client.get("/articles/9")

        assert response.status == 303
        assert ("location", "/articles") in response.headers

    async def test_http_error(self) -> None:
        app = App()

        @app.route("/admin")
        async def admin() -> None:
            raise HTTPError(403, "Admins only", headers=(("X-Reason", "role"),))

        async with TestClient(app) as client:
            response = await client.get("/admin")

        assert response.status == 403
        assert response.json() == {"error": "http_error", "detail": "Admins only"}
        assert ("x-reason", "role") in response.headers

    async def test_unexpected_exception_is_500(self, caplog) -> None:
        app = App()

        @app.route("/boom")
        async def boom() -> None:
            raise LookupError("secret detail")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 500
        assert response.json() == {"error": "internal_error", "detail": "Internal Server Error"}
        assert any(r.levelname == "ERROR" for r in caplog.records)

    async def test_debug_exposes_exception(self) -> None:
        app = App(AppConfig(debug=True))

        @app.route("/boom")
        async def boom() -> None:
            raise LookupError("secret detail")

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.json()["detail"] == "LookupError: secret detail"

    async def test_exception_handler_by_type(self) -> None:
        app = App()

        @app.route("/boom")
        async def boom() -> None:
            raise LookupError("missing")

        @app.error(LookupError)
        async def lookup(request: Request, exc: LookupError) -> tuple[dict[str, str], int]:
            return {"lookup": str(exc)}, 409

        async with TestClient(app) as client:
            response = await client.get("/boom")

        assert response.status == 409
        assert response.json() == {"lookup": "missing"}


class TestLifecycle:
    async def test_hooks_run_in_order(self) -> None:
        app = App()
        events: list[str] = []

        @app.on_startup
        def first() -> None:
            events.append("first")

        @app.on_startup
        async def second() -> None:
            events.append("second")

        @app.on_shutdown
        def stop() -> None:
            events.append("stop")

        async with TestClient(app):
            events.append("serving")

        assert events == ["first", "second", "serving", "stop"]

    async def test_database_connects_at_startup(self, tmp_path) -> None:
        app = App(db=f"sqlite:///{tmp_path / 'app.db'}")
        async with TestClient(app):
            assert app.db.connected
        assert not app.db.connected

    async def test_lifespan_protocol(self) -> None:
        app = App()
        sent: list[dict[str, Any]] = []
        messages = iter([{"type": "lifespan.startup"}, {"type": "lifespan.shutdown"}])

        async def receive() -> dict[str, Any]:
            return next(messages)

        async def send(message: dict[str, Any]) -> None:
            sent.append(message)

        await app({"type": "lifespan"}, receive, send)
        assert [m["type"] for m in sent] == [
            "lifespan.startup.complete",
            "lifespan.shutdown.complete",
        ]


class TestTemplates:
    async def test_template_response(self, tmp_path) -> None:
        from roost.templating import Template

        (tmp_path / "hello.html").write_text("Hello {{ name | shout }}")
        app = App(AppConfig(template_dir=tmp_path))

        @app.template_filter()
        def shout(value: str) -> str:
            return value.upper()

        @app.route("/hello/:name")
        def hello(name: str) -> Template:
            return Template("hello.html", name=name)

        async with TestClient(app) as client:
            response = await client.get("/hello/roost")

        assert response.status == 200
        assert "Hello ROOST" in response.text
