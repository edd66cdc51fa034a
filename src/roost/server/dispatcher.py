"""The dispatcher: request in, typed outcome out.

Pipeline for one request:

1. match the verb and path against the route table
2. resolve every declared parameter, in declaration order
3. invoke the handler with the resolved arguments

Expected failures come back as ``Failure`` values (``RouteNotFound``,
``InvalidParameter``, ``InvalidPayload``, ``EntityNotFound``,
``ValidationFailed``) and the first one in declaration order stops the
pipeline: the handler is never called and no further parameter is
resolved. Exceptions raised by the handler itself propagate untouched.

Resolution is sequential. Entity lookups are the only I/O, and each
parameter's lookup completes before the next one starts.
"""

import dataclasses
import logging
from collections.abc import Callable, Mapping
from typing import Any

import anyio

from roost._internal.invoke import invoke
from roost.entities.resolver import EntityResolver
from roost.forms.binder import bind
from roost.forms.form import form_spec
from roost.http.forms import PayloadError, parse_payload
from roost.http.request import Request
from roost.outcomes import (
    Failure,
    InvalidParameter,
    InvalidPayload,
    Outcome,
    RouteNotFound,
    Success,
    ValidationFailed,
)
from roost.routing.params import convert_param
from roost.routing.route import ParamKind, ParamSpec, RouteSpec
from roost.routing.router import Router

logger = logging.getLogger("roost.dispatch")

# Methods whose forms bind from the query string when there is no body
_QUERY_METHODS = frozenset({"GET", "HEAD", "DELETE"})


class Dispatcher:
    """Matches, resolves and invokes.

    Usage::

        dispatcher = Dispatcher(router, resolver=EntityResolver(store))
        outcome = await dispatcher.handle(request)
    """

    __slots__ = ("_providers", "_resolver", "_router")

    def __init__(
        self,
        router: Router,
        *,
        resolver: EntityResolver | None = None,
        providers: Mapping[type, Callable[..., Any]] | None = None,
    ) -> None:
        self._router = router
        self._resolver = resolver
        self._providers = dict(providers or {})

    @property
    def router(self) -> Router:
        return self._router

    async def handle(self, request: Request) -> Outcome:
        """Run the full pipeline for *request*."""
        match = self._router.match(request.method, request.path)
        if match is None:
            logger.debug("no route for %s %s", request.method, request.path)
            return RouteNotFound(verb=request.method, path=request.path)

        route = match.route
        request = dataclasses.replace(request, path_params=match.path_params)

        resolved = await self.resolve(route, request)
        if isinstance(resolved, Failure):
            logger.debug(
                "%s %s stopped before the handler: %s",
                request.method,
                request.path,
                resolved.detail,
            )
            return resolved

        return Success(await self.invoke(route, resolved))

    async def resolve(self, route: RouteSpec, request: Request) -> dict[str, Any] | Failure:
        """Resolve *route*'s parameters into handler keyword arguments.

        Returns the first failure instead of the arguments when any
        parameter cannot be produced.
        """
        arguments: dict[str, Any] = {}
        for spec in route.params:
            value = await self._resolve_one(spec, request)
            if isinstance(value, Failure):
                return value
            arguments[spec.name] = value
        return arguments

    async def invoke(self, route: RouteSpec, arguments: Mapping[str, Any]) -> Any:
        """Call the handler. Once started, it runs to completion.

        The shielded scope keeps a client disconnect from cancelling a
        handler halfway through its writes.
        """
        with anyio.CancelScope(shield=True):
            if route.factory is not None:
                instance = await invoke(route.factory)
                return await invoke(route.handler, instance, **arguments)
            return await invoke(route.handler, **arguments)

    # -- Per-kind resolution --

    async def _resolve_one(self, spec: ParamSpec, request: Request) -> Any:
        match spec.kind:
            case ParamKind.PRIMITIVE:
                return self._primitive(spec, request)
            case ParamKind.FORM:
                return await self._form(spec, request)
            case ParamKind.ENTITY:
                return await self._entity(spec, request)
            case ParamKind.REQUEST:
                return request
            case ParamKind.SERVICE:
                return await invoke(self._providers[spec.annotation])
        msg = f"Unhandled parameter kind {spec.kind!r}"
        raise AssertionError(msg)

    def _primitive(self, spec: ParamSpec, request: Request) -> Any:
        raw = request.path_params[spec.token or spec.name]
        try:
            return convert_param(raw, spec.annotation)
        except ValueError:
            return InvalidParameter(
                token=spec.token or spec.name,
                value=raw,
                expected=spec.annotation.__name__,
            )

    async def _form(self, spec: ParamSpec, request: Request) -> Any:
        payload = await self._payload(request)
        if isinstance(payload, Failure):
            return payload
        form, result = bind(form_spec(spec.annotation), payload)
        if not result.is_valid:
            return ValidationFailed(form=spec.annotation.__name__, result=result)
        return form

    async def _entity(self, spec: ParamSpec, request: Request) -> Any:
        if self._resolver is None:
            msg = f"Route parameter {spec.name!r} needs a store, but none is configured"
            raise RuntimeError(msg)
        token = spec.token or spec.name
        return await self._resolver.resolve(spec.annotation, request.path_params[token])

    async def _payload(self, request: Request) -> Mapping[str, Any] | Failure:
        """Decode the request payload once per request."""
        cache = request._cache
        if "_payload" in cache:
            return cache["_payload"]

        body = await request.body()
        payload: Mapping[str, Any] | Failure
        if not body and request.method in _QUERY_METHODS:
            payload = request.query
        else:
            try:
                payload = await parse_payload(body, request.content_type)
            except PayloadError as exc:
                payload = InvalidPayload(reason=str(exc))
        cache["_payload"] = payload
        return payload
