"""Data layer error hierarchy."""

from perch.errors import CoreError


class DataError(CoreError):
    """Base for all perch.data errors."""


class DriverNotInstalledError(DataError):
    """Raised when the required database driver is not installed."""


class ConnectionError(DataError):  # noqa: A001
    """Raised when a database connection cannot be established."""


class QueryError(DataError):
    """Raised when a SQL statement fails."""
