"""Serve a roost App with pounce.

Pounce's ``run()`` takes an import string (``"blog:app"``), but here we
already hold the live ``App``, so ``pounce.Server`` is driven directly
with the ASGI callable.
"""


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    app_path: str | None = None,
) -> None:
    """Start a pounce server for *app*.

    Args:
        app: ASGI callable (a roost ``App``).
        host: Bind host address.
        port: Bind port number.
        workers: Worker count; development mode always uses one.
        reload: Restart on file changes (development).
        app_path: Optional ``"module:attribute"`` import string so a
            reloading server re-imports the app after code changes.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    config = ServerConfig(
        host=host,
        port=port,
        workers=1 if reload else workers,
        reload=reload,
    )
    server = Server(config, app, app_path=app_path)
    server.run()
