"""Perch exception hierarchy.

Two kinds of failure reach the ErrorHandler: ``ApiError`` (user-facing,
rendered as JSON with its code as the HTTP status) and everything else
(internal, logged and rendered as a generic HTML page). ``HTTPError`` is
the lightweight path for plain status responses such as 404.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class CoreError(PerchError):
    """An internal framework failure.

    Raised for unresolvable callbacks, missing action scripts and
    similar problems that should surface as a 500.
    """


class ConfigurationError(CoreError):
    """Raised when configuration, services or routes are invalid."""


class ApiError(PerchError):
    """A user-facing error rendered as a JSON body.

    ``code`` doubles as the HTTP status when it falls in the 100-599
    range; anything else is sent as 500.
    """

    def __init__(self, message: str, code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def status(self) -> int:
        if 100 <= self.code <= 599:
            return self.code
        return 500


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code."""

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 response."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)

