"""Roost application class.

Mutable during setup (controllers, routes, providers, error handlers).
Frozen at runtime when app.run() or __call__() is first invoked: that
is when every route's parameter specs are derived and every form and
entity spec is built, so configuration mistakes stop the app before it
serves a request.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from roost._internal.asgi import Receive, Scope, Send
from roost._internal.invoke import invoke
from roost.config import AppConfig
from roost.controller import Controller, Handler, RouteDeclaration
from roost.data.database import Database
from roost.data.persistence import Persistence
from roost.data.store import DatabaseStore
from roost.entities.resolver import EntityResolver
from roost.errors import ConfigurationError
from roost.routing.route import ParamKind, RouteSpec
from roost.routing.router import Router, parse_path
from roost.routing.signature import build_param_specs
from roost.server.dispatcher import Dispatcher
from roost.server.handler import handle_request

if TYPE_CHECKING:
    from kida import Environment

logger = logging.getLogger("roost.server")


class App:
    """The roost application.

    Usage::

        app = App(AppConfig(database_url="sqlite:///blog.db"))
        app.mount(articles)

        @app.route("/health")
        def health() -> dict:
            return {"ok": True}

    Thread safety:
        The setup phase is single-threaded (decorators at import time).
        The freeze transition uses a Lock + double-check so exactly one
        thread compiles the app.
    """

    __slots__ = (
        "_db",
        "_dispatcher",
        "_error_handlers",
        "_freeze_lock",
        "_frozen",
        "_kida_env",
        "_pending_routes",
        "_providers",
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "_store",
        "_template_filters",
        "_template_globals",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        db: Database | str | None = None,
        store: Persistence | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pending_routes: list[RouteDeclaration] = []
        self._error_handlers: dict[int | type, Callable[..., Any]] = {}
        self._providers: dict[type, Callable[..., Any]] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._frozen = False
        self._freeze_lock = threading.Lock()

        # Database: an instance, a URL, or config.database_url.
        # A database without an explicit store gets a DatabaseStore.
        url = db if isinstance(db, str) else self.config.database_url
        if isinstance(db, Database):
            self._db: Database | None = db
        elif url is not None:
            self._db = Database(url, echo=self.config.database_echo)
        else:
            self._db = None
        if store is None and self._db is not None:
            store = DatabaseStore(self._db)
        self._store: Persistence | None = store

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._dispatcher: Dispatcher | None = None
        self._kida_env: Environment | None = None

    # -- Accessors --

    @property
    def db(self) -> Database:
        """The app's database. Raises ``ConfigurationError`` if none is set."""
        if self._db is None:
            msg = "No database configured. Pass db= to App() or set AppConfig.database_url."
            raise ConfigurationError(msg)
        return self._db

    @property
    def store(self) -> Persistence:
        """The persistence used for entity resolution and relations."""
        if self._store is None:
            msg = "No store configured. Pass store= or db= to App()."
            raise ConfigurationError(msg)
        return self._store

    @property
    def routes(self) -> list[RouteSpec]:
        """Compiled routes in registration order (freezes the app)."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router.routes

    @property
    def dispatcher(self) -> Dispatcher:
        self._ensure_frozen()
        assert self._dispatcher is not None
        return self._dispatcher

    # -- Route registration --

    def route(
        self,
        path: str,
        *,
        methods: list[str] | None = None,
        name: str | None = None,
    ) -> Callable[[Handler], Handler]:
        """Register a single function for one or more verbs."""

        def decorator(func: Handler) -> Handler:
            self._check_not_frozen()
            for method in methods or ["GET"]:
                self._pending_routes.append(
                    RouteDeclaration(verb=method.upper(), path=path, handler=func, name=name)
                )
            return func

        return decorator

    def mount(self, controller: Controller) -> None:
        """Register every route a controller declared."""
        self._check_not_frozen()
        self._pending_routes.extend(controller.routes)

    def provide(self, annotation: type, factory: Callable[..., Any]) -> None:
        """Register a provider for handler parameters annotated *annotation*.

        The factory runs once per request that needs it and may be sync
        or async::

            app.provide(Clock, SystemClock)

            @articles.post("")
            async def create(form: ArticleForm, clock: Clock) -> Article: ...
        """
        self._check_not_frozen()
        self._providers[annotation] = factory

    # -- Error handlers --

    def error(
        self,
        code_or_type: int | type,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register an error handler for a status, failure type or exception type.

        ::

            @app.error(EntityNotFound)
            def missing(request: Request, failure: EntityNotFound) -> tuple[dict, int]:
                return {"missing": failure.entity}, 404
        """

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._error_handlers[code_or_type] = func
            return func

        return decorator

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the database connects and before the first request.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    async def startup(self) -> None:
        """Freeze, connect the database, and run startup hooks."""
        self._ensure_frozen()
        if self._db is not None:
            await self._db.connect()
        for hook in self._startup_hooks:
            await invoke(hook)

    async def shutdown(self) -> None:
        """Run shutdown hooks, then disconnect the database."""
        for hook in self._shutdown_hooks:
            await invoke(hook)
        if self._db is not None:
            await self._db.disconnect()

    # -- Server --

    def run(
        self,
        host: str | None = None,
        port: int | None = None,
        *,
        workers: int | None = None,
        reload: bool | None = None,
        app_path: str | None = None,
    ) -> None:
        """Compile the app and serve it with pounce.

        Unset arguments fall back to the config; ``debug=True`` serves a
        single reloading worker.
        """
        logging.basicConfig(
            level=self.config.log_level.upper(),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        self._ensure_frozen()

        from roost.server.dev import run_server

        run_server(
            self,
            host or self.config.host,
            port or self.config.port,
            workers=workers if workers is not None else self.config.workers,
            reload=reload if reload is not None else self.config.debug,
            app_path=app_path,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return

        self._ensure_frozen()
        assert self._dispatcher is not None

        await handle_request(
            scope,
            receive,
            send,
            dispatcher=self._dispatcher,
            error_handlers=self._error_handlers,
            kida_env=self._kida_env,
            debug=self.config.debug,
            max_content_length=self.config.max_content_length,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Run the ASGI lifespan protocol.

        Freezing happens inside startup, so a configuration error is
        reported as ``lifespan.startup.failed`` and the server refuses
        to start.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    logger.exception("startup failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                await self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        providers = dict(self._providers)
        if self._store is not None:
            store = self._store
            providers.setdefault(Persistence, lambda: store)
            providers.setdefault(type(store), lambda: store)
        if self._db is not None:
            db = self._db
            providers.setdefault(Database, lambda: db)

        # 1. Compile route table
        router = Router()
        for pending in self._pending_routes:
            segments = tuple(parse_path(pending.path))
            tokens = [s.token for s in segments if s.is_param and s.token]
            params = build_param_specs(
                pending.handler,
                tokens,
                providers=providers.keys(),
                bound=pending.factory is not None,
            )
            if self._store is None and any(p.kind is ParamKind.ENTITY for p in params):
                msg = (
                    f"{pending.verb} {pending.path} resolves entities, but no store "
                    "is configured. Pass store= or db= to App()."
                )
                raise ConfigurationError(msg)
            router.add(
                RouteSpec(
                    verb=pending.verb,
                    path=pending.path,
                    segments=segments,
                    handler=pending.handler,
                    params=params,
                    factory=pending.factory,
                    name=pending.name,
                )
            )
        router.compile()
        self._router = router

        # 2. Kida environment, only when templates are configured
        if self.config.template_dir is not None:
            from roost.templating import create_environment

            self._kida_env = create_environment(
                self.config,
                self._template_filters,
                self._template_globals,
            )

        # 3. Dispatcher
        resolver = EntityResolver(self._store) if self._store is not None else None
        self._dispatcher = Dispatcher(router, resolver=resolver, providers=providers)

        self._frozen = True
        logger.debug("compiled %d routes", len(router.routes))

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register routes, controllers, and providers before calling app.run()."
            )
            raise RuntimeError(msg)
