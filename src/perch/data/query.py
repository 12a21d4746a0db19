"""Fluent SQL builder bound to one Database and one table.

Chain methods mutate the builder and return it; a terminal call
(``first``, ``get``, ``count``, ``insert``, ``update``, ``delete``)
runs the statement immediately::

    user = await (
        db.query("users")
        .where("email", "=", email)
        .or_where("username", "=", email)
        .first()
    )

    new_id = await db.query("users").insert({"name": "Alice", "email": "a@x.io"})

Values are always bound as named parameters. Table and column names
are interpolated into the SQL text as given, so never build them from
untrusted input.

WHERE precedence: all ``where()`` fragments are ANDed into one group,
all ``or_where()`` fragments are ORed into another, and the two groups
are joined with OR, i.e. ``(a AND b) OR (c OR d)``.

A builder is meant to be used for one statement; there is no reset.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from perch.data.database import Database


class QueryBuilder:
    __slots__ = (
        "_bindings",
        "_columns",
        "_db",
        "_joins",
        "_limit",
        "_or_wheres",
        "_order",
        "_table",
        "_wheres",
    )

    def __init__(self, db: Database, table: str | None = None) -> None:
        self._db = db
        self._table = table
        self._columns: list[str] = ["*"]
        self._wheres: list[str] = []
        self._or_wheres: list[str] = []
        self._joins: list[str] = []
        self._order: str | None = None
        self._limit: int | None = None
        self._bindings: dict[str, Any] = {}

    # -- Building --

    def table(self, name: str) -> QueryBuilder:
        self._table = name
        return self

    def select(self, *columns: str | list[str]) -> QueryBuilder:
        """Project the given columns; ``select("id", "name")`` or ``select(["id", "name"])``."""
        if len(columns) == 1 and isinstance(columns[0], list):
            names = list(columns[0])
        else:
            names = [str(c) for c in columns]
        self._columns = names or ["*"]
        return self

    def where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._wheres.append(f"{column} {operator} :{self._bind('w', value)}")
        return self

    def or_where(self, column: str, operator: str, value: Any) -> QueryBuilder:
        self._or_wheres.append(f"{column} {operator} :{self._bind('w', value)}")
        return self

    def join(
        self,
        table: str,
        first: str,
        operator: str,
        second: str,
        type: str = "INNER",  # noqa: A002
    ) -> QueryBuilder:
        self._joins.append(f"{type.upper()} JOIN {table} ON {first} {operator} {second}")
        return self

    def order_by(self, column: str, direction: str = "ASC") -> QueryBuilder:
        self._order = f"{column} {direction.upper()}"
        return self

    def limit(self, count: int) -> QueryBuilder:
        self._limit = count
        return self

    def _bind(self, prefix: str, value: Any) -> str:
        # w_N: N is the binding count before this one
        name = f"{prefix}_{len(self._bindings)}"
        self._bindings[name] = value
        return name

    # -- Compilation --

    @property
    def bindings(self) -> dict[str, Any]:
        """Named parameters, keyed without the leading colon."""
        return dict(self._bindings)

    def _require_table(self) -> str:
        if not self._table:
            msg = "QueryBuilder has no table; call table() first."
            raise ValueError(msg)
        return self._table

    def _where_clause(self) -> str:
        groups = []
        if self._wheres:
            groups.append(" AND ".join(self._wheres))
        if self._or_wheres:
            groups.append(" OR ".join(self._or_wheres))
        if not groups:
            return ""
        return " WHERE " + " OR ".join(groups)

    def to_sql(self, count: bool = False) -> str:
        """Render the SELECT statement.

        With *count*, the projection becomes ``COUNT(*)`` and ORDER BY /
        LIMIT are dropped. A limit of 0 counts as no limit.
        """
        columns = "COUNT(*)" if count else ", ".join(self._columns)
        sql = f'SELECT {columns} FROM "{self._require_table()}"'
        if self._joins:
            sql += " " + " ".join(self._joins)
        sql += self._where_clause()
        if not count:
            if self._order:
                sql += f" ORDER BY {self._order}"
            if self._limit:
                sql += f" LIMIT {int(self._limit)}"
        return sql

    def __repr__(self) -> str:
        table = self._table or "?"
        return f"<QueryBuilder {table!r} wheres={len(self._wheres) + len(self._or_wheres)}>"

    # -- Terminal operations --

    async def get(self) -> list[dict[str, Any]]:
        """All matching rows."""
        return await self._db.fetch_all(self.to_sql(), self._bindings)

    async def first(self) -> dict[str, Any] | None:
        """The first matching row, or ``None``."""
        self._limit = 1
        return await self._db.fetch_one(self.to_sql(), self._bindings)

    async def count(self) -> int:
        value = await self._db.fetch_val(self.to_sql(count=True), self._bindings)
        return int(value or 0)

    async def insert(self, data: dict[str, Any], *, pk: str = "id") -> int | None:
        """Insert one row and return its new id."""
        columns = ", ".join(data)
        placeholders = ", ".join(f":i_{col}" for col in data)
        sql = f'INSERT INTO "{self._require_table()}" ({columns}) VALUES ({placeholders})'
        params = {f"i_{col}": value for col, value in data.items()}
        return await self._db.insert(sql, params, pk=pk)

    async def update(self, data: dict[str, Any]) -> int:
        """Update matching rows and return the affected-row count.

        Only the AND-ed ``where()`` conditions apply. Without any, every
        row in the table is updated.
        """
        assignments = ", ".join(f"{col} = :u_{col}" for col in data)
        sql = f'UPDATE "{self._require_table()}" SET {assignments}'
        if self._wheres:
            sql += " WHERE " + " AND ".join(self._wheres)
        params = {**{f"u_{col}": value for col, value in data.items()}, **self._bindings}
        return await self._db.execute(sql, params)

    async def delete(self) -> int:
        """Delete matching rows and return the affected-row count.

        Like ``update()``, only the AND-ed ``where()`` conditions apply.
        """
        sql = f'DELETE FROM "{self._require_table()}"'
        if self._wheres:
            sql += " WHERE " + " AND ".join(self._wheres)
        return await self._db.execute(sql, self._bindings)
