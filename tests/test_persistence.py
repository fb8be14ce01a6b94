"""Tests for the SQLite database manager and schema migrations."""

from __future__ import annotations

import asyncio
from pathlib import Path

import aiosqlite
import pytest

from orgscope.persistence.db import DatabaseManager
from orgscope.persistence.migrations import SCHEMA_VERSION


@pytest.mark.asyncio
async def test_initialize_creates_schema(sqlite_db: DatabaseManager):
    tables = await sqlite_db.fetch("SELECT name FROM sqlite_master WHERE type = 'table'")
    names = {row["name"] for row in tables}
    assert {"users", "schema_version"} <= names

    rows = await sqlite_db.fetch("SELECT MAX(version) AS v FROM schema_version")
    assert rows[0]["v"] == SCHEMA_VERSION

    columns = {row["name"] for row in await sqlite_db.fetch("PRAGMA table_info(users)")}
    assert "version" in columns


@pytest.mark.asyncio
async def test_initialize_is_idempotent(tmp_path: Path):
    path = tmp_path / "users.db"
    for _ in range(2):
        db = DatabaseManager(path)
        await db.initialize()
        await db.close()

    db = DatabaseManager(path)
    await db.initialize()
    rows = await db.fetch("SELECT COUNT(*) AS n FROM schema_version")
    await db.close()
    assert rows[0]["n"] == 1


@pytest.mark.asyncio
async def test_v1_database_gains_version_column(tmp_path: Path):
    path = tmp_path / "legacy.db"
    async with aiosqlite.connect(path) as conn:
        await conn.execute(
            "CREATE TABLE schema_version (version INTEGER PRIMARY KEY, "
            "applied_at TEXT NOT NULL DEFAULT (datetime('now')))"
        )
        await conn.execute("INSERT INTO schema_version (version) VALUES (1)")
        await conn.execute(
            "CREATE TABLE users (seq INTEGER PRIMARY KEY AUTOINCREMENT, id TEXT NOT NULL UNIQUE, "
            "name TEXT NOT NULL, provider TEXT NOT NULL DEFAULT '', "
            "scheme TEXT NOT NULL DEFAULT '', roles TEXT NOT NULL DEFAULT '[]', "
            "super_admin INTEGER NOT NULL DEFAULT 0, "
            "created_at TEXT NOT NULL DEFAULT (datetime('now')))"
        )
        await conn.execute("INSERT INTO users (id, name) VALUES ('u1', 'billietta')")
        await conn.commit()

    db = DatabaseManager(path)
    await db.initialize()
    rows = await db.fetch("SELECT version FROM users WHERE id = 'u1'")
    await db.close()

    assert rows[0]["version"] == 1


@pytest.mark.asyncio
async def test_queries_require_initialize(tmp_path: Path):
    db = DatabaseManager(tmp_path / "users.db")
    with pytest.raises(RuntimeError):
        await db.fetch("SELECT 1")


@pytest.mark.asyncio
async def test_transaction_commits_on_exit(sqlite_db: DatabaseManager):
    async with sqlite_db.transaction() as tx:
        await tx.write("INSERT INTO users (id, name) VALUES ('u1', 'billietta')")
        rows = await tx.fetch("SELECT name FROM users WHERE id = 'u1'")
        assert rows == [{"name": "billietta"}]

    rows = await sqlite_db.fetch("SELECT name FROM users")
    assert rows == [{"name": "billietta"}]


@pytest.mark.asyncio
async def test_transaction_rolls_back_on_error(sqlite_db: DatabaseManager):
    with pytest.raises(LookupError):
        async with sqlite_db.transaction() as tx:
            await tx.write("INSERT INTO users (id, name) VALUES ('u1', 'billietta')")
            raise LookupError("abandon")

    assert await sqlite_db.fetch("SELECT id FROM users") == []
    # the connection is usable again once the block has rolled back
    assert await sqlite_db.write("INSERT INTO users (id, name) VALUES ('u2', 'x')") == 1


@pytest.mark.asyncio
async def test_write_waits_for_open_transaction(sqlite_db: DatabaseManager):
    async with sqlite_db.transaction() as tx:
        pending = asyncio.create_task(
            sqlite_db.write("INSERT INTO users (id, name) VALUES ('late', 'x')")
        )
        await asyncio.sleep(0)
        await tx.write("INSERT INTO users (id, name) VALUES ('early', 'x')")
        assert not pending.done()
    await pending

    rows = await sqlite_db.fetch("SELECT id FROM users ORDER BY seq")
    assert [r["id"] for r in rows] == ["early", "late"]
