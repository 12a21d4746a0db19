"""Session service: key/value access, flash values, destroy and id rotation.

Works over the request-scoped session installed by ``SessionMiddleware``.
Tests and scripts can inject a store directly::

    session = SessionManager(Session())
    session.flash("notice", "Saved")
    session.get_flash("notice")   # "Saved"
    session.get_flash("notice")   # None
"""

import secrets
from typing import Any

from perch.middleware.sessions import Session, get_session

FLASH_KEY = "_flash"
ID_KEY = "_sid"


class SessionManager:
    __slots__ = ("_store",)

    def __init__(self, store: Session | None = None) -> None:
        self._store = store

    @property
    def store(self) -> Session:
        """The bound session, or the current request's session."""
        if self._store is not None:
            return self._store
        return get_session()

    @property
    def active(self) -> bool:
        """False outside a request or when sessions are disabled."""
        if self._store is not None:
            return True
        try:
            get_session()
        except LookupError:
            return False
        return True

    def set(self, key: str, value: Any) -> None:
        self.store[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self.store.get(key, default)

    def has(self, key: str) -> bool:
        return key in self.store

    def remove(self, key: str) -> None:
        self.store.pop(key, None)

    # -- Flash values --

    def flash(self, key: str, value: Any) -> None:
        """Store a value readable exactly once via ``get_flash``."""
        self.store.setdefault(FLASH_KEY, {})[key] = value

    def get_flash(self, key: str, default: Any = None) -> Any:
        flashes = self.store.get(FLASH_KEY)
        if not flashes or key not in flashes:
            return default
        value = flashes.pop(key)
        if not flashes:
            del self.store[FLASH_KEY]
        return value

    def clear_flash(self) -> None:
        self.store.pop(FLASH_KEY, None)

    # -- Lifecycle --

    def destroy(self) -> None:
        """Clear all data and expire the session cookie on the response."""
        store = self.store
        store.clear()
        store.destroyed = True

    def regenerate_id(self) -> str:
        """Rotate the session identifier, keeping the data.

        The new id changes the signed payload, so the client receives a
        fresh cookie value.
        """
        store = self.store
        store.destroyed = False
        store[ID_KEY] = secrets.token_urlsafe(16)
        return store[ID_KEY]

    @property
    def id(self) -> str | None:
        return self.store.get(ID_KEY)
