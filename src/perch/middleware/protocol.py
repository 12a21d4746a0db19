"""Pipeline middleware protocol and Next type alias.

A pipeline middleware is any callable matching::

    async def my_mw(request: Request, next: Next) -> Response: ...

No base class required. Pipeline middleware wraps the whole router
(sessions, timing, headers); route guards are a separate, simpler
``guard(uri, method)`` shape handled by the router.
"""

from collections.abc import Awaitable, Callable
from typing import Protocol

from perch.http.request import Request
from perch.http.response import Response

# The next handler in the middleware chain
type Next = Callable[[Request], Awaitable[Response]]


class Middleware(Protocol):
    """Protocol for perch pipeline middleware.

    Accepts both functions and callable objects::

        async def timing(request: Request, next: Next) -> Response:
            start = time.monotonic()
            response = await next(request)
            return response.with_header("X-Time", f"{time.monotonic() - start:.3f}")
    """

    async def __call__(self, request: Request, next: Next) -> Response: ...
