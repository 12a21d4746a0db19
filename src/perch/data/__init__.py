"""Async database access and the fluent query builder.

::

    from perch.data import Database

    db = Database("sqlite:///app.db")
    users = await db.query("users").where("active", "=", 1).order_by("name").get()

SQLite works out of the box; PostgreSQL needs ``pip install perch[data-pg]``.
"""

from perch.data.database import Database
from perch.data.errors import ConnectionError, DataError, DriverNotInstalledError, QueryError
from perch.data.query import QueryBuilder

__all__ = [
    "ConnectionError",
    "DataError",
    "Database",
    "DriverNotInstalledError",
    "QueryBuilder",
    "QueryError",
]
