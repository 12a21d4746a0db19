"""ASGI handler: translates ASGI scope/messages to perch types.

The only component that touches raw ASGI directly. Converts the scope
to a typed Request, applies the User-Agent gate, runs the pipeline
middleware around ``router.dispatch`` and sends the Response back
through ASGI send().
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from contextvars import Token
from typing import TYPE_CHECKING, Any

from perch._internal.asgi import Receive, Scope, Send
from perch.context import app_var, request_var
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.server.sender import send_response

if TYPE_CHECKING:
    from perch.app import App

logger = logging.getLogger("perch.server")

INVALID_USER_AGENT = "Error 404: Valid user-data not found, come back again once you fix that."


def user_agent_rejected(request: Request, min_length: int) -> bool:
    """True when the User-Agent header is missing or shorter than *min_length*."""
    user_agent = request.user_agent
    return not user_agent or len(user_agent) < min_length


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    app: App,
    middleware: tuple[Callable[..., Any], ...],
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    if user_agent_rejected(request, app.config.user_agent_min_length):
        logger.info("Rejected %s %s: missing or short User-Agent", request.method, request.path)
        await send_response(Response(INVALID_USER_AGENT, status=404), send)
        return

    token: Token[Request] = request_var.set(request)
    app_token = app_var.set(app)

    try:

        async def dispatch(req: Request) -> Response:
            return await app.router.dispatch(request=req)

        # Wrap middleware around the dispatch
        handler: Next = dispatch
        for mw in reversed(middleware):
            outer = handler

            async def make_next(req: Request, _mw: Any = mw, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = _http_error_response(exc)
    except Exception as exc:
        response = app.get("errors").handle_exception(exc)
    finally:
        app_var.reset(app_token)
        request_var.reset(token)

    await send_response(response, send)


def _http_error_response(exc: HTTPError) -> Response:
    response = Response(exc.detail or str(exc.status), status=exc.status)
    if exc.headers:
        response = response.with_headers(dict(exc.headers))
    return response
