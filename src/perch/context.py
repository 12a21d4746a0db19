"""Request-scoped context via ContextVar.

Provides:
- ``get_request()``: the current ``Request`` for this task.
- ``get_app()``: the ``App`` handling the current request.

Both are set by the ASGI handler and reset after each request. Outside
a request (or before ``App.activate()``) they raise ``LookupError``.
"""

from __future__ import annotations

from contextvars import ContextVar
from typing import TYPE_CHECKING

from perch.http.request import Request

if TYPE_CHECKING:
    from perch.app import App

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the ASGI handler before dispatch."""

app_var: ContextVar[App] = ContextVar("perch_app")
"""The application serving the current request."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()


def get_app() -> App:
    """Return the current application.

    Raises ``LookupError`` if no app is active in this context.
    """
    return app_var.get()
