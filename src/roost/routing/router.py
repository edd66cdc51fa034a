"""Route table with trie-based path matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.

Ranking: at every segment a literal child is tried before the parameter
child, so among patterns that match a path the one with more leading
literal segments wins. Patterns that overlap with equal rank are rejected
at registration, which keeps ``match()`` free of ties.
"""

import re

from roost.errors import AmbiguousRoute, ConfigurationError, DuplicateRoute
from roost.routing.route import VERBS, PathSegment, RouteMatch, RouteSpec

_TOKEN_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _param(part: str, token: str, path: str) -> PathSegment:
    if not _TOKEN_RE.match(token):
        msg = f"Invalid path token {part!r} in {path!r}"
        raise ConfigurationError(msg)
    return PathSegment(value=part, is_param=True, token=token)


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/articles"           -> [PathSegment("articles")]
        "/articles/:Article"  -> [PathSegment("articles"), PathSegment(":Article", is_param=True, ...)]
        "/articles/{Article}" -> [PathSegment("articles"), PathSegment("{Article}", is_param=True, ...)]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            segments.append(_param(part, part[1:-1], path))
        elif part.startswith(":"):
            segments.append(_param(part, part[1:], path))
        elif part.startswith("<") and part.endswith(">"):
            msg = f"Route {path!r} uses <param>; write :Name or {{Name}} instead."
            raise ConfigurationError(msg)
        else:
            segments.append(PathSegment(value=part))
    return segments


def join_paths(base: str, sub: str) -> str:
    """Join a controller base path and a handler sub-path."""
    parts = [p for p in (base.strip("/"), sub.strip("/")) if p]
    return "/" + "/".join(parts)


def _overlaps(a: RouteSpec, b: RouteSpec) -> bool:
    """True if some concrete path matches both patterns."""
    if len(a.segments) != len(b.segments):
        return False
    for sa, sb in zip(a.segments, b.segments, strict=True):
        if sa.is_param or sb.is_param:
            continue
        if sa.value != sb.value:
            return False
    return True


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("children", "param_child", "routes_by_verb")

    def __init__(self) -> None:
        # Literal segment children: "articles" -> node
        self.children: dict[str, _TrieNode] = {}
        # Parameter child; token names live on the route, not the node
        self.param_child: _TrieNode | None = None
        # Routes ending at this node, keyed by HTTP verb
        self.routes_by_verb: dict[str, RouteSpec] = {}


class Router:
    """Route table with trie-based path matching.

    Usage::

        router = Router()
        router.add(spec)
        router.compile()
        match = router.match("GET", "/articles/42")  # RouteMatch | None
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._routes: list[RouteSpec] = []
        self._compiled = False

    def add(self, route: RouteSpec) -> None:
        """Add a route to the table. Must be called before compile().

        Raises ``DuplicateRoute`` for a repeated (verb, pattern) and
        ``AmbiguousRoute`` for an overlapping pattern of equal rank.
        """
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)
        if route.verb not in VERBS:
            msg = f"Unsupported HTTP verb {route.verb!r} for {route.path!r}"
            raise ConfigurationError(msg)

        node = self._root
        for seg in route.segments:
            if seg.is_param:
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                if seg.value not in node.children:
                    node.children[seg.value] = _TrieNode()
                node = node.children[seg.value]

        existing = node.routes_by_verb.get(route.verb)
        if existing is not None:
            raise DuplicateRoute(route.verb, route.path, existing.path)

        for other in self._routes:
            if other.verb != route.verb or other.rank != route.rank:
                continue
            if _overlaps(route, other):
                raise AmbiguousRoute(route.verb, route.path, other.path)

        node.routes_by_verb[route.verb] = route
        self._routes.append(route)

    @property
    def routes(self) -> list[RouteSpec]:
        """Return all registered routes, in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the table. No more routes can be added."""
        self._compiled = True

    def match(self, verb: str, path: str) -> RouteMatch | None:
        """Match a request verb and path against the table.

        Returns a ``RouteMatch`` binding each path token to its raw
        segment value, or ``None`` if nothing matches.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        found = self._match_node(self._root, verb.upper(), parts, 0, [])
        if found is None:
            return None
        route, values = found
        return RouteMatch(route=route, path_params=dict(zip(route.tokens, values, strict=True)))

    def _match_node(
        self,
        node: _TrieNode,
        verb: str,
        parts: list[str],
        index: int,
        values: list[str],
    ) -> tuple[RouteSpec, list[str]] | None:
        """Recursively match path parts against the trie."""
        # All parts consumed; accept only if this verb ends here
        if index == len(parts):
            route = node.routes_by_verb.get(verb)
            if route is not None:
                return route, values
            return None

        part = parts[index]

        # 1. Literal child first
        child = node.children.get(part)
        if child is not None:
            result = self._match_node(child, verb, parts, index + 1, values)
            if result is not None:
                return result

        # 2. Parameter child
        if node.param_child is not None:
            return self._match_node(node.param_child, verb, parts, index + 1, [*values, part])

        return None
