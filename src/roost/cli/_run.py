"""``roost run``: serve an app with pounce."""

import argparse
import sys

from roost.cli._resolve import resolve_app
from roost.errors import ConfigurationError


def run(args: argparse.Namespace) -> None:
    """Resolve ``args.app`` and start the server.

    CLI flags override the app's config.
    """
    try:
        app = resolve_app(args.app)
    except (ModuleNotFoundError, AttributeError, TypeError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        app.run(
            args.host,
            args.port,
            workers=args.workers,
            reload=args.reload or None,
            app_path=args.app,
        )
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
