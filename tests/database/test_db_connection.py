from pathlib import Path

import pytest

from memberwarden.database.db_connection import ConnectionManager
from memberwarden.database.db_schema import SCHEMA_VERSION
from memberwarden.errors import StoreIOError


@pytest.mark.asyncio
async def test_open_creates_parent_directory_and_schema(tmp_path):
    path = tmp_path / "nested" / "dir" / "store.db"
    store = ConnectionManager()
    await store.open(path)
    try:
        assert path.parent.is_dir()
        assert store.is_open
        async with store.read() as conn:
            cursor = await conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            tables = {row[0] for row in await cursor.fetchall()}
            cursor = await conn.execute("SELECT MAX(version) FROM schema_version")
            version = (await cursor.fetchone())[0]
        assert {"suspensions", "pinned_messages", "schema_version"} <= tables
        assert version == SCHEMA_VERSION
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_unopened_store_raises_store_io_error():
    store = ConnectionManager()
    assert not store.is_open
    with pytest.raises(StoreIOError):
        store.connection
    with pytest.raises(StoreIOError):
        async with store.transaction():
            pass


@pytest.mark.asyncio
async def test_close_is_idempotent(tmp_path):
    store = ConnectionManager()
    await store.open(tmp_path / "store.db")
    await store.close()
    await store.close()
    assert not store.is_open


@pytest.mark.asyncio
async def test_open_twice_keeps_first_connection(tmp_path):
    store = ConnectionManager()
    await store.open(tmp_path / "store.db")
    first = store.connection
    await store.open(tmp_path / "other.db")
    assert store.connection is first
    await store.close()


@pytest.mark.asyncio
async def test_sqlite_error_in_transaction_rolls_back(store):
    async with store.transaction() as conn:
        await conn.execute("INSERT INTO suspensions (user_id, release_at) VALUES ('1', 100)")

    with pytest.raises(StoreIOError):
        async with store.transaction() as conn:
            await conn.execute("INSERT INTO suspensions (user_id, release_at) VALUES ('2', 200)")
            await conn.execute("INSERT INTO no_such_table VALUES (1)")

    async with store.read() as conn:
        cursor = await conn.execute("SELECT user_id FROM suspensions ORDER BY user_id")
        rows = [row[0] for row in await cursor.fetchall()]
    assert rows == ["1"]


@pytest.mark.asyncio
async def test_other_exceptions_roll_back_and_propagate(store):
    with pytest.raises(RuntimeError):
        async with store.transaction() as conn:
            await conn.execute("INSERT INTO suspensions (user_id, release_at) VALUES ('3', 300)")
            raise RuntimeError("abort")

    async with store.read() as conn:
        cursor = await conn.execute("SELECT COUNT(*) FROM suspensions")
        assert (await cursor.fetchone())[0] == 0


@pytest.mark.asyncio
async def test_open_failure_is_store_io_error(tmp_path):
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("file", encoding="utf-8")
    store = ConnectionManager()
    with pytest.raises(StoreIOError):
        await store.open(Path(blocker) / "store.db")
    assert not store.is_open
