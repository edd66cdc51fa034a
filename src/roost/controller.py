"""Controllers: declarative route registration.

A controller declares a base path, and each handler declares its verb
and an optional sub-path. Nothing is compiled here: the controller only
records what was declared, and ``App.mount()`` hands the declarations to
the app, which builds the route table when it freezes.

Usage::

    articles = Controller("/articles")

    @articles.get(":Article")
    async def show(article: Article) -> Article:
        return article

    @articles.patch("{Article}")
    async def update(article: Article, form: ArticleForm, store: Persistence) -> Article:
        return await store.save(article.fill(form))

    app.mount(articles)

With a ``factory``, handlers take the controller instance first. The
factory runs once per request, standing in for a DI container::

    class ArticleController:
        def __init__(self) -> None:
            self.store = get_store()

    articles = Controller("/articles", factory=ArticleController)

    @articles.delete(":Article")
    async def destroy(self: ArticleController, article: Article) -> None:
        await self.store.delete(article)
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from roost.routing.router import join_paths

type Handler = Callable[..., Any]


@dataclass(frozen=True, slots=True)
class RouteDeclaration:
    """One declared route, waiting for the app to compile it."""

    verb: str
    path: str
    handler: Handler
    name: str | None = None
    factory: Callable[[], Any] | None = None


class Controller:
    """Per-controller route builder.

    Declarations are kept in order; the route table reports them in the
    order controllers were mounted and handlers declared.
    """

    __slots__ = ("_routes", "base_path", "factory", "name")

    def __init__(
        self,
        base_path: str = "/",
        *,
        factory: Callable[[], Any] | None = None,
        name: str | None = None,
    ) -> None:
        self.base_path = base_path
        self.factory = factory
        self.name = name
        self._routes: list[RouteDeclaration] = []

    @property
    def routes(self) -> list[RouteDeclaration]:
        return list(self._routes)

    def route(
        self,
        verb: str,
        path: str = "",
        *,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Declare a handler for *verb* on ``base_path + path``."""

        def decorator(func: Handler) -> Handler:
            route_name = name
            if route_name is None and self.name is not None:
                route_name = f"{self.name}.{func.__name__}"
            self._routes.append(
                RouteDeclaration(
                    verb=verb.upper(),
                    path=join_paths(self.base_path, path),
                    handler=func,
                    name=route_name,
                    factory=self.factory,
                )
            )
            return func

        return decorator

    def get(self, path: str = "", *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route("GET", path, name=name)

    def post(self, path: str = "", *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route("POST", path, name=name)

    def put(self, path: str = "", *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route("PUT", path, name=name)

    def patch(self, path: str = "", *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route("PATCH", path, name=name)

    def delete(self, path: str = "", *, name: str | None = None) -> Callable[[Handler], Handler]:
        return self.route("DELETE", path, name=name)

    def __repr__(self) -> str:
        return f"Controller({self.base_path!r}, routes={len(self._routes)})"
