"""Session-backed authentication.

Credential checking is delegated to a deployment-supplied verifier::

    def verify(username: str, password: str) -> dict | None:
        row = lookup(username)
        if row and check_password(row, password):
            return {"id": row.id, "username": username, "user_group": row.role}
        return None

    auth = Authentication(verify=verify)
    if await auth.attempt("admin", "password"):
        ...

Without a verifier every attempt fails closed. Without an active session
(no ``secret_key`` configured) every visitor is a guest and logins fail.
The user record is the mapping the verifier returned, stored in the
session under ``AuthConfig.session_key``.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from perch._internal.invoke import invoke
from perch.config import AuthConfig
from perch.services.session import SessionManager

logger = logging.getLogger("perch.auth")

GUEST_GROUP = "guests"

type Verifier = Callable[[str, str], Mapping[str, Any] | None | Awaitable[Mapping[str, Any] | None]]


class Authentication:
    __slots__ = ("_config", "_session", "_verify")

    def __init__(
        self,
        config: AuthConfig | None = None,
        *,
        session: SessionManager | None = None,
        verify: Verifier | None = None,
    ) -> None:
        self._config = config or AuthConfig()
        self._session = session or SessionManager()
        self._verify = verify

    @property
    def config(self) -> AuthConfig:
        return self._config

    async def attempt(self, username: str, password: str) -> bool:
        """Verify credentials and log the user in on success."""
        if self._verify is None:
            logger.warning("Login rejected for %r: no credential verifier configured", username)
            return False
        if not self._session.active:
            logger.warning("Login rejected for %r: sessions are disabled", username)
            return False
        user = await invoke(self._verify, username, password)
        if not user or not isinstance(user, Mapping):
            logger.info("Login failed for %r", username)
            return False
        self._session.regenerate_id()
        self._session.set(self._config.session_key, dict(user))
        logger.info("Login succeeded for %r", username)
        return True

    def check(self) -> bool:
        """True iff a non-empty user record is in the session."""
        return self.user() is not None

    def user(self) -> dict[str, Any] | None:
        if not self._session.active:
            return None
        record = self._session.get(self._config.session_key)
        if not record or not isinstance(record, Mapping):
            return None
        return dict(record)

    def logout(self) -> None:
        if self._session.active:
            self._session.remove(self._config.session_key)

    def get_user_group(self, user: Mapping[str, Any] | None = None) -> str:
        """Group of *user*; ``"guests"`` when there is no user at all."""
        if user is None:
            return GUEST_GROUP
        return str(user.get(self._config.user_group_field, self._config.default_group))
