"""Single aiosqlite connection shared by the SQLite user store.

The connection runs in autocommit mode. A statement issued through
``fetch``/``write`` stands alone; a sequence that must see its own writes
and nobody else's (a compare-and-swap followed by the lookup explaining a
miss, or a schema migration) runs inside ``transaction()``. One lock
serializes both, so a plain statement never lands inside someone else's
open transaction.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

log = structlog.get_logger(__name__)

Params = tuple[Any, ...]


async def _fetch(conn: aiosqlite.Connection, sql: str, params: Params) -> list[dict[str, Any]]:
    async with conn.execute(sql, params) as cursor:
        return [dict(row) for row in await cursor.fetchall()]


async def _write(conn: aiosqlite.Connection, sql: str, params: Params) -> int:
    async with conn.execute(sql, params) as cursor:
        return max(cursor.rowcount, 0)


class Transaction:
    """Statements issued between ``BEGIN IMMEDIATE`` and ``COMMIT``."""

    def __init__(self, conn: aiosqlite.Connection) -> None:
        self._conn = conn

    async def fetch(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        return await _fetch(self._conn, sql, params)

    async def write(self, sql: str, params: Params = ()) -> int:
        """Run a statement and return the number of rows it changed."""
        return await _write(self._conn, sql, params)


class DatabaseManager:
    """Owns the SQLite file behind ``SQLiteUserStore``.

    ``initialize()`` opens the connection in WAL mode and brings the schema
    up to date; nothing else works until it has run.
    """

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path)
        self._conn: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._db_path

    async def initialize(self) -> None:
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = await aiosqlite.connect(self._db_path, isolation_level=None)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.execute("PRAGMA journal_mode = WAL")

        from orgscope.persistence.migrations import run_migrations

        await run_migrations(self)
        log.info("db_initialized", path=str(self._db_path))

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            log.debug("db_closed", path=str(self._db_path))

    async def fetch(self, sql: str, params: Params = ()) -> list[dict[str, Any]]:
        """Run a query on its own and return the rows as plain dicts."""
        conn = self._connection()
        async with self._lock:
            return await _fetch(conn, sql, params)

    async def write(self, sql: str, params: Params = ()) -> int:
        """Run and commit a single statement; returns the rows changed."""
        conn = self._connection()
        async with self._lock:
            return await _write(conn, sql, params)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        """Hold the write lock for a block of statements.

        The block commits when it exits normally and rolls back when it
        raises, re-raising the error.
        """
        conn = self._connection()
        async with self._lock:
            await conn.execute("BEGIN IMMEDIATE")
            try:
                yield Transaction(conn)
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    def _connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("database is not open; call initialize() first")
        return self._conn
