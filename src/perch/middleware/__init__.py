"""Middleware: pipeline middleware and route guards.

Pipeline middleware is any callable matching::

    async def mw(request: Request, next: Next) -> Response

Route guards are simpler ``guard(uri, method)`` callables run by the
router; see ``perch.routing.router``.

Built-in:
    SessionMiddleware -- Signed cookie sessions (requires itsdangerous)
    group -- Guard restricting a route to user groups
"""

from perch.middleware.groups import group
from perch.middleware.protocol import Middleware, Next
from perch.middleware.sessions import Session, SessionMiddleware, get_session

__all__ = [
    "Middleware",
    "Next",
    "Session",
    "SessionMiddleware",
    "get_session",
    "group",
]
