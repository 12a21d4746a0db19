"""Session middleware: signed cookie sessions.

Session data is serialized as JSON and signed with ``itsdangerous``.
The session object lives in a ContextVar for the duration of the
request, reachable through ``get_session()`` or the ``SessionManager``
service.
"""

from contextvars import ContextVar
from typing import Any

from itsdangerous import BadSignature, URLSafeTimedSerializer

from perch.config import SessionConfig
from perch.errors import ConfigurationError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
}


class Session(dict[str, Any]):
    """The per-request session mapping.

    A plain dict plus a ``destroyed`` flag; when set, the middleware
    expires the cookie instead of re-signing the data.
    """

    __slots__ = ("destroyed",)

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.destroyed = False


_session_var: ContextVar[Session | None] = ContextVar("perch_session", default=None)


def get_session() -> Session:
    """Return the current session.

    Raises ``LookupError`` if called outside a request with
    ``SessionMiddleware`` active.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is added "
            "to the app before accessing the session."
        )
        raise LookupError(msg)
    return session


def bind_session(session: Session | None = None) -> Session:
    """Install *session* (or a fresh one) as the current session.

    For scripts and tests that run services outside the HTTP pipeline.
    """
    session = session if session is not None else Session()
    _session_var.set(session)
    return session


class SessionMiddleware:
    """Signed cookie session middleware.

    Reads the session cookie, verifies its signature, exposes the data
    through ``get_session()`` and writes it back as a ``Set-Cookie`` on
    the way out. With ``no_cache`` enabled, responses also carry
    no-store cache headers.
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="perch.session")

    @property
    def config(self) -> SessionConfig:
        return self._config

    def _load_session(self, request: Request) -> Session:
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return Session()
        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            return Session()
        if not isinstance(data, dict):
            return Session()
        return Session(data)

    def _save_session(self, response: Response, session: Session) -> Response:
        cfg = self._config
        if session.destroyed:
            return response.without_cookie(cfg.cookie_name, path=cfg.path)
        return response.with_cookie(
            name=cfg.cookie_name,
            value=self._serializer.dumps(dict(session)),
            max_age=cfg.max_age,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    async def __call__(self, request: Request, next: Next) -> Response:
        """Load the session, dispatch, then sign the session onto the response."""
        session = self._load_session(request)
        token = _session_var.set(session)
        try:
            response = await next(request)
        finally:
            _session_var.reset(token)

        response = self._save_session(response, session)
        if self._config.no_cache:
            response = response.with_headers(NO_CACHE_HEADERS)
        return response
