"""Derive a handler's ParamSpecs from its signature.

Runs once per route when the app freezes. Each parameter is classified
by its annotation, in this order:

1. ``Request`` annotation, or the name ``request``: the request itself
2. ``Form`` subclass: bound from the payload
3. ``Entity`` subclass: loaded through the entity's route token
4. a type registered with ``App.provide()``: the provider's value
5. a name that is a path token: parsed to ``str``/``int``/``float``/``bool``

Anything else is a configuration error. Form and entity specs are built
here too, so unknown rule names and bad entity declarations stop the app
at startup instead of failing the first request.
"""

import inspect
from collections.abc import Callable, Collection, Sequence
from typing import Any

from roost.entities.entity import entity_spec, is_entity
from roost.errors import ConfigurationError
from roost.forms.form import form_spec, is_form
from roost.http.request import Request
from roost.routing.params import is_primitive
from roost.routing.route import ParamKind, ParamSpec


def _describe(handler: Callable[..., Any]) -> str:
    return getattr(handler, "__qualname__", repr(handler))


def _classify(
    param: inspect.Parameter,
    tokens: Sequence[str],
    providers: Collection[type],
    where: str,
) -> ParamSpec | None:
    name = param.name
    annotation = param.annotation
    has_annotation = annotation is not inspect.Parameter.empty

    if annotation is Request or (name == "request" and not has_annotation):
        return ParamSpec(ParamKind.REQUEST, name, Request)

    if is_form(annotation):
        form_spec(annotation)
        return ParamSpec(ParamKind.FORM, name, annotation)

    if is_entity(annotation):
        token = entity_spec(annotation).token
        count = tokens.count(token)
        if count != 1:
            msg = (
                f"{where}: parameter {name!r} resolves {annotation.__name__} through "
                f"path token {token!r}, which appears {count} times in the route"
            )
            raise ConfigurationError(msg)
        return ParamSpec(ParamKind.ENTITY, name, annotation, token=token)

    if has_annotation and annotation in providers:
        return ParamSpec(ParamKind.SERVICE, name, annotation)

    if name in tokens:
        target = annotation if has_annotation else str
        if not is_primitive(target):
            msg = (
                f"{where}: path parameter {name!r} is annotated {target!r}; "
                "path tokens convert to str, int, float or bool"
            )
            raise ConfigurationError(msg)
        return ParamSpec(ParamKind.PRIMITIVE, name, target, token=name)

    if param.default is not inspect.Parameter.empty:
        return None

    msg = (
        f"{where}: cannot resolve parameter {name!r}. Annotate it with a Form, "
        "an Entity, Request, or a provided type, or name a path token."
    )
    raise ConfigurationError(msg)


def build_param_specs(
    handler: Callable[..., Any],
    tokens: Sequence[str],
    *,
    providers: Collection[type] = (),
    bound: bool = False,
) -> tuple[ParamSpec, ...]:
    """Classify *handler*'s parameters against the route's path *tokens*.

    Args:
        handler: The route handler.
        tokens: Path tokens, in path order.
        providers: Types with a registered service provider.
        bound: True when the first parameter receives the controller
            instance and is not resolved.

    Parameters with a default that match none of the rules are left out
    and keep their default.
    """
    where = _describe(handler)
    try:
        sig = inspect.signature(handler, eval_str=True)
    except NameError as exc:
        msg = f"{where}: cannot evaluate annotations ({exc})"
        raise ConfigurationError(msg) from exc

    params = list(sig.parameters.values())
    if bound:
        if not params:
            msg = f"{where}: controller handlers take the controller instance first"
            raise ConfigurationError(msg)
        params = params[1:]

    specs: list[ParamSpec] = []
    for param in params:
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        if param.kind is inspect.Parameter.POSITIONAL_ONLY:
            msg = f"{where}: positional-only parameter {param.name!r} cannot be resolved by name"
            raise ConfigurationError(msg)
        spec = _classify(param, tokens, providers, where)
        if spec is not None:
            specs.append(spec)
    return tuple(specs)
