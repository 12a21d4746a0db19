"""Tests for perch.data: the async Database over SQLite."""

import anyio
import pytest

from perch.config import DatabaseConfig
from perch.data import ConnectionError, DataError, Database, QueryError
from perch.data import database as database_module
from perch.data.database import to_positional

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    age INTEGER
);
"""


@pytest.fixture
async def db(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'app.db'}")
    await database.execute_script(SCHEMA)
    await database.insert_one("users", {"name": "Carol", "email": "carol@example.com", "age": 41})
    await database.insert_one("users", {"name": "Alice", "email": "alice@example.com", "age": 30})
    await database.insert_one("users", {"name": "Bob", "email": "bob@example.com", "age": 17})
    yield database
    await database.disconnect()


class TestDriver:
    def test_sqlite(self) -> None:
        assert Database("sqlite:///:memory:").driver == "sqlite"

    @pytest.mark.parametrize("url", ["postgresql://u@h/db", "postgres://u@h/db", "pgsql://u@h/db"])
    def test_postgresql_aliases(self, url) -> None:
        assert Database(url).driver == "postgresql"

    def test_config_object(self, tmp_path) -> None:
        config = DatabaseConfig(driver="sqlite", path=str(tmp_path / "x.db"))
        assert Database(config).driver == "sqlite"

    def test_unsupported_driver(self) -> None:
        with pytest.raises(DataError, match="Unsupported DB driver"):
            Database("mysql://root@localhost/app")


class TestConnection:
    async def test_lazy_connect(self, tmp_path) -> None:
        database = Database(f"sqlite:///{tmp_path / 'lazy.db'}")
        assert not database.connected
        assert await database.fetch_val("SELECT 1") == 1
        assert database.connected
        await database.disconnect()
        assert not database.connected

    async def test_failure_records_last_error(self, tmp_path) -> None:
        database = Database(f"sqlite:///{tmp_path / 'missing' / 'dir' / 'app.db'}")
        with pytest.raises(ConnectionError, match="Database connection failed"):
            await database.connect()
        error = database.last_error
        assert error["code"]
        assert error["message"]
        assert not database.connected

    async def test_context_manager(self, tmp_path) -> None:
        async with Database(f"sqlite:///{tmp_path / 'cm.db'}") as database:
            assert database.connected
        assert not database.connected

    async def test_concurrent_first_queries_share_one_connect(self, tmp_path, monkeypatch) -> None:
        opened = []
        create_pool = database_module._create_pool

        async def counting_create_pool(driver, config):
            opened.append(driver)
            await anyio.sleep(0.01)
            return await create_pool(driver, config)

        monkeypatch.setattr(database_module, "_create_pool", counting_create_pool)
        database = Database(f"sqlite:///{tmp_path / 'race.db'}")
        results: list[int] = []

        async def query() -> None:
            results.append(await database.fetch_val("SELECT 1"))

        with anyio.fail_after(5):
            async with anyio.create_task_group() as tg:
                tg.start_soon(query)
                tg.start_soon(query)
        assert results == [1, 1]
        assert opened == ["sqlite"]
        assert database.connected
        await database.disconnect()


class TestRawSql:
    async def test_fetch_all_returns_dicts(self, db) -> None:
        rows = await db.fetch_all("SELECT name FROM users ORDER BY name")
        assert rows == [{"name": "Alice"}, {"name": "Bob"}, {"name": "Carol"}]

    async def test_named_params(self, db) -> None:
        row = await db.fetch_one("SELECT age FROM users WHERE name = :name", {"name": "Bob"})
        assert row == {"age": 17}

    async def test_fetch_one_none(self, db) -> None:
        assert await db.fetch_one("SELECT * FROM users WHERE id = :id", {"id": 999}) is None

    async def test_fetch_val(self, db) -> None:
        assert await db.fetch_val("SELECT COUNT(*) FROM users") == 3

    async def test_execute_returns_rowcount(self, db) -> None:
        affected = await db.execute("UPDATE users SET age = age + 1 WHERE age > :min", {"min": 20})
        assert affected == 2

    async def test_insert_returns_id(self, db) -> None:
        new_id = await db.insert("INSERT INTO users (name) VALUES (:name)", {"name": "Dave"})
        assert new_id == 4

    async def test_bad_sql_raises_query_error(self, db) -> None:
        with pytest.raises(QueryError):
            await db.fetch_all("SELECT * FROM nowhere")

    async def test_execute_script(self, db) -> None:
        await db.execute_script(
            "CREATE TABLE tags (id INTEGER PRIMARY KEY, label TEXT);"
            "INSERT INTO tags (label) VALUES ('a');"
            "INSERT INTO tags (label) VALUES ('b');"
        )
        assert await db.count("tags") == 2


class TestTableHelpers:
    async def test_insert_one_increments_count(self, db) -> None:
        before = await db.count("users")
        new_id = await db.insert_one("users", {"name": "Eve", "age": 22})
        assert new_id is not None
        assert await db.count("users") == before + 1

    async def test_find_one(self, db) -> None:
        user = await db.find_one("users", {"name": "Alice"})
        assert user is not None
        assert user["email"] == "alice@example.com"

    async def test_find_one_missing(self, db) -> None:
        assert await db.find_one("users", {"name": "Zed"}) is None

    async def test_find_all_criteria(self, db) -> None:
        rows = await db.find_all("users", {"age": 30})
        assert [r["name"] for r in rows] == ["Alice"]

    async def test_find_all_order_and_limit(self, db) -> None:
        rows = await db.find_all("users", order_by="name DESC", limit=2)
        assert [r["name"] for r in rows] == ["Carol", "Bob"]

    async def test_find_all_default_ascending(self, db) -> None:
        rows = await db.find_all("users", order_by="age")
        assert [r["name"] for r in rows] == ["Bob", "Alice", "Carol"]

    async def test_count_with_criteria(self, db) -> None:
        assert await db.count("users", {"name": "Bob"}) == 1

    async def test_update_one(self, db) -> None:
        affected = await db.update_one("users", {"name": "Bob"}, {"age": 18})
        assert affected == 1
        assert (await db.find_one("users", {"name": "Bob"}))["age"] == 18

    async def test_delete_one(self, db) -> None:
        assert await db.delete_one("users", {"name": "Carol"}) == 1
        assert await db.count("users") == 2

    async def test_delete_one_no_match(self, db) -> None:
        assert await db.delete_one("users", {"name": "Nobody"}) == 0

    async def test_table_exists(self, db) -> None:
        assert await db.table_exists("users")
        assert not await db.table_exists("ghosts")

    async def test_record_exists(self, db) -> None:
        assert await db.record_exists("users", "email", "bob@example.com")
        assert not await db.record_exists("users", "email", "nobody@example.com")


class TestQueryBuilderTerminals:
    async def test_where_or_where(self, db) -> None:
        rows = await (
            db.query("users")
            .where("age", ">", 40)
            .or_where("name", "=", "Bob")
            .order_by("name")
            .get()
        )
        assert [r["name"] for r in rows] == ["Bob", "Carol"]

    async def test_first(self, db) -> None:
        row = await db.query("users").select("name").order_by("age", "desc").first()
        assert row == {"name": "Carol"}

    async def test_count(self, db) -> None:
        assert await db.query("users").where("age", ">=", 18).count() == 2

    async def test_update_uses_and_wheres_only(self, db) -> None:
        affected = await (
            db.query("users").where("name", "=", "Alice").or_where("name", "=", "Bob").update({"age": 50})
        )
        assert affected == 1
        assert (await db.find_one("users", {"name": "Bob"}))["age"] == 17

    async def test_delete(self, db) -> None:
        assert await db.query("users").where("age", "<", 18).delete() == 1

    async def test_insert_two_column_table(self, db) -> None:
        await db.execute("CREATE TABLE pairs (a INTEGER, b INTEGER)")
        before = await db.query("pairs").where("a", "=", 1).count()
        new_id = await db.query("pairs").insert({"a": 1, "b": 2})
        assert new_id is not None and new_id > 0
        assert await db.query("pairs").where("a", "=", 1).count() == before + 1
        assert await db.fetch_all("SELECT a, b FROM pairs") == [{"a": 1, "b": 2}]


class TestTransactions:
    async def test_commit(self, db) -> None:
        async with db.transaction():
            await db.insert_one("users", {"name": "Frank"})
        assert await db.record_exists("users", "name", "Frank")

    async def test_rollback_on_error(self, db) -> None:
        with pytest.raises(RuntimeError):
            async with db.transaction():
                await db.insert_one("users", {"name": "Ghost"})
                raise RuntimeError("boom")
        assert not await db.record_exists("users", "name", "Ghost")
        assert await db.count("users") == 3

    async def test_nested_joins_outer(self, db) -> None:
        with pytest.raises(RuntimeError):
            async with db.transaction():
                async with db.transaction():
                    await db.insert_one("users", {"name": "Inner"})
                raise RuntimeError("outer fails")
        assert not await db.record_exists("users", "name", "Inner")


class TestToPositional:
    def test_rewrites_named(self) -> None:
        sql, args = to_positional("SELECT * FROM t WHERE a = :a AND b = :b", {"a": 1, "b": 2})
        assert sql == "SELECT * FROM t WHERE a = $1 AND b = $2"
        assert args == [1, 2]

    def test_repeated_name_shares_index(self) -> None:
        sql, args = to_positional("WHERE a = :x OR b = :x OR c = :y", {"x": 1, "y": 2})
        assert sql == "WHERE a = $1 OR b = $1 OR c = $2"
        assert args == [1, 2]

    def test_cast_syntax_untouched(self) -> None:
        sql, args = to_positional("SELECT :v::int", {"v": "5"})
        assert sql == "SELECT $1::int"
        assert args == ["5"]

    def test_missing_param(self) -> None:
        with pytest.raises(QueryError, match=":missing"):
            to_positional("WHERE a = :missing", {})

    def test_sequence_passthrough(self) -> None:
        sql, args = to_positional("WHERE a = $1", (7,))
        assert sql == "WHERE a = $1"
        assert args == [7]
