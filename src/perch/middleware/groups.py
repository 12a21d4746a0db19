"""User-group guard.

``group()`` builds the guard the router runs for routes restricted with
``Route.only()``. The special group ``guests`` admits anyone who is not
logged in; every other name is compared, case-insensitively, with the
group of the logged-in user.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING

from perch.context import get_app
from perch.http.response import Response

if TYPE_CHECKING:
    from perch._internal.types import Guard
    from perch.services.auth import Authentication

logger = logging.getLogger("perch.middleware.groups")

FORBIDDEN_MESSAGE = "Forbidden: Access denied for this group."


def _resolve_auth(auth: Authentication | Callable[[], Authentication] | None) -> Authentication:
    if auth is None:
        return get_app().get("auth")
    if hasattr(auth, "get_user_group"):
        return auth  # type: ignore[return-value]
    return auth()


def group(
    groups: str | Iterable[str],
    *,
    auth: Authentication | Callable[[], Authentication] | None = None,
) -> Guard:
    """Return a guard admitting only members of *groups*.

    *auth* is an ``Authentication``, a zero-argument callable returning
    one, or ``None`` to use the ``auth`` service of the current app.
    """
    allowed = frozenset(g.lower() for g in ([groups] if isinstance(groups, str) else groups))

    def guard(uri: str, method: str) -> Response | None:
        authentication = _resolve_auth(auth)
        if "guests" in allowed and not authentication.check():
            return None
        user = authentication.user()
        if user is not None and authentication.get_user_group(user).lower() in allowed:
            return None
        logger.info("Group check rejected %s %s (allowed: %s)", method, uri, ", ".join(sorted(allowed)))
        return Response(FORBIDDEN_MESSAGE, status=403)

    return guard
