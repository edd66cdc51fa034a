"""Routing: compiled route table with O(path-depth) matching.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""

from roost.routing.route import ParamKind, ParamSpec, PathSegment, RouteMatch, RouteSpec
from roost.routing.router import Router, join_paths, parse_path

__all__ = [
    "ParamKind",
    "ParamSpec",
    "PathSegment",
    "RouteMatch",
    "RouteSpec",
    "Router",
    "join_paths",
    "parse_path",
]
