"""Roost: typed resource routing for Python web services.

Handlers declare what they need, and the dispatcher resolves it before
the handler runs: path tokens become primitives or loaded entities,
request bodies become validated forms, and every expected failure is a
typed outcome rather than an exception.

Basic usage::

    from dataclasses import dataclass

    from roost import App, Controller, Entity, Form, field, rule

    @dataclass(frozen=True, slots=True)
    class Article(Entity):
        id: int | None = None
        title: str = ""

    @dataclass(frozen=True, slots=True)
    class ArticleForm(Form):
        title: str = field(rules=["required", rule("max_length", 120)])

    articles = Controller("/articles")

    @articles.get("/:Article")
    async def show(article: Article) -> Article:
        return article

    app = App(db="sqlite:///blog.db")
    app.mount(articles)
    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Controller",
    "Entity",
    "EntityNotFound",
    "Failure",
    "Form",
    "HTTPError",
    "HasMany",
    "InvalidParameter",
    "InvalidPayload",
    "Redirect",
    "Request",
    "Response",
    "RoostError",
    "RouteNotFound",
    "Success",
    "Template",
    "ValidationFailed",
    "field",
    "get_request",
    "rule",
]

_OUTCOMES = frozenset(
    {
        "EntityNotFound",
        "Failure",
        "InvalidParameter",
        "InvalidPayload",
        "RouteNotFound",
        "Success",
        "ValidationFailed",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import roost`` fast while providing a flat top-level API.
    """
    if name == "App":
        from roost.app import App

        return App

    if name == "AppConfig":
        from roost.config import AppConfig

        return AppConfig

    if name == "Controller":
        from roost.controller import Controller

        return Controller

    if name in ("Entity", "HasMany"):
        from roost import entities

        return getattr(entities, name)

    if name in ("Form", "field"):
        from roost import forms

        return getattr(forms, name)

    if name == "rule":
        from roost.validation import rule

        return rule

    if name in _OUTCOMES:
        from roost import outcomes

        return getattr(outcomes, name)

    if name in ("RoostError", "ConfigurationError", "HTTPError"):
        from roost import errors

        return getattr(errors, name)

    if name == "Request":
        from roost.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from roost.http import response

        return getattr(response, name)

    if name == "Template":
        from roost.templating import Template

        return Template

    if name == "get_request":
        from roost.context import get_request

        return get_request

    msg = f"module 'roost' has no attribute {name!r}"
    raise AttributeError(msg)
