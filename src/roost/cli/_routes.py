"""``roost routes``: print the compiled route table.

Each row shows the verb, the pattern, the handler, and how every
handler argument is resolved (``article:entity``, ``form:form``...).
"""

import argparse
import sys

from roost.cli._resolve import resolve_app
from roost.errors import ConfigurationError
from roost.routing.route import RouteSpec


def format_routes(routes: list[RouteSpec]) -> list[str]:
    """Render *routes* as aligned table lines, header first."""
    rows: list[tuple[str, str, str, str]] = []
    for route in routes:
        handler_name = getattr(route.handler, "__qualname__", str(route.handler))
        if route.name:
            handler_name = f"{handler_name} ({route.name})"
        params = ", ".join(f"{p.name}:{p.kind}" for p in route.params) or "-"
        rows.append((route.verb, route.path, handler_name, params))

    header = ("VERB", "PATH", "HANDLER", "PARAMS")
    widths = [max(len(r[i]) for r in (*rows, header)) for i in range(3)]
    fmt = f"{{:<{widths[0]}}}  {{:<{widths[1]}}}  {{:<{widths[2]}}}  {{}}"

    lines = [fmt.format(*header)]
    lines.append("-" * min(sum(widths) + 6 + len(header[3]), 80))
    lines.extend(fmt.format(*row) for row in rows)
    return lines


def run_routes(args: argparse.Namespace) -> None:
    """Resolve ``args.app``, freeze it, and print its route table."""
    try:
        app = resolve_app(args.app)
        routes = app.routes
    except (ModuleNotFoundError, AttributeError, TypeError, ConfigurationError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if not routes:
        print("No routes registered.")
        return
    for line in format_routes(routes):
        print(line)
