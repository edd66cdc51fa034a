"""RouteSpec, ParamSpec, and RouteMatch frozen dataclasses."""

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

VERBS: frozenset[str] = frozenset({"GET", "POST", "PATCH", "PUT", "DELETE"})


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Literal: ``/articles``  (is_param=False)
    Param:   ``/:Article`` or ``/{Article}`` (is_param=True, token="Article")

    Both token spellings parse to the same segment.
    """

    value: str
    is_param: bool = False
    token: str | None = None


class ParamKind(StrEnum):
    """How the dispatcher produces one handler argument."""

    PRIMITIVE = "primitive"
    FORM = "form"
    ENTITY = "entity"
    REQUEST = "request"
    SERVICE = "service"


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """The declared resolution strategy for one handler argument.

    ``token`` names the path token for PRIMITIVE and ENTITY parameters.
    ``annotation`` is the scalar type, ``Form`` subclass, ``Entity``
    subclass, or provided service type.
    """

    kind: ParamKind
    name: str
    annotation: Any = None
    token: str | None = None


@dataclass(frozen=True, slots=True)
class RouteSpec:
    """A frozen route definition.

    Created when the app freezes, compiled into the route table.
    """

    verb: str
    path: str
    segments: tuple[PathSegment, ...]
    handler: Callable[..., Any]
    params: tuple[ParamSpec, ...] = ()
    factory: Callable[[], Any] | None = None
    name: str | None = None

    @property
    def tokens(self) -> tuple[str, ...]:
        """Path parameter tokens, in path order."""
        return tuple(s.token for s in self.segments if s.is_param and s.token)

    @property
    def shape(self) -> tuple[str | None, ...]:
        """The pattern with token names erased (``None`` marks a parameter)."""
        return tuple(None if s.is_param else s.value for s in self.segments)

    @property
    def rank(self) -> int:
        """Number of literal segments before the first parameter."""
        count = 0
        for seg in self.segments:
            if seg.is_param:
                break
            count += 1
        return count


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: RouteSpec
    path_params: dict[str, str] = field(default_factory=dict)
