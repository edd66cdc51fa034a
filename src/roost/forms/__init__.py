"""Typed request-body forms.

Usage::

    from dataclasses import dataclass

    from roost.forms import Form, bind, field
    from roost.validation import rule

    @dataclass(frozen=True, slots=True)
    class ArticleForm(Form):
        title: str = field(rules=["required", rule("min_length", 5)])
        content: str = field(rules=["required"])
        tags: list[int] = field(default_factory=list)

    form, result = bind(ArticleForm, {"title": "Hello", "content": "..."})

Handlers receive forms by annotation; the dispatcher binds them and
returns a 422 ``ValidationFailed`` outcome when the result is invalid.
"""

from roost.forms.binder import INVALID_TYPE, bind
from roost.forms.form import FieldSpec, Form, FormSpec, field, form_spec, is_form

__all__ = [
    "INVALID_TYPE",
    "FieldSpec",
    "Form",
    "FormSpec",
    "bind",
    "field",
    "form_spec",
    "is_form",
]
