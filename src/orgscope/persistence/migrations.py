"""Schema migrations for the orgscope SQLite database."""

from __future__ import annotations

import sqlite3
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from orgscope.persistence.db import DatabaseManager

log = structlog.get_logger(__name__)

SCHEMA_VERSION = 2

_DDL_STATEMENTS = [
    # Schema version tracking
    """
    CREATE TABLE IF NOT EXISTS schema_version (
        version     INTEGER PRIMARY KEY,
        applied_at  TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    # Users, with every organization's roles in one JSON column
    """
    CREATE TABLE IF NOT EXISTS users (
        seq         INTEGER PRIMARY KEY AUTOINCREMENT,
        id          TEXT NOT NULL UNIQUE,
        name        TEXT NOT NULL,
        provider    TEXT NOT NULL DEFAULT '',
        scheme      TEXT NOT NULL DEFAULT '',
        roles       TEXT NOT NULL DEFAULT '[]',
        super_admin INTEGER NOT NULL DEFAULT 0,
        created_at  TEXT NOT NULL DEFAULT (datetime('now'))
    )
    """,
    # Indexes
    "CREATE INDEX IF NOT EXISTS idx_users_identity ON users(name, provider, scheme)",
]


_V2_MIGRATIONS = [
    # Optimistic concurrency for read-modify-write role updates
    "ALTER TABLE users ADD COLUMN version INTEGER NOT NULL DEFAULT 1",
]


async def run_migrations(db: DatabaseManager) -> None:
    """Create tables and indexes, then record the schema version.

    Everything runs in one transaction, so a database is either fully
    migrated or left as it was.
    """
    async with db.transaction() as tx:
        for statement in _DDL_STATEMENTS:
            await tx.write(statement.strip())

        rows = await tx.fetch("SELECT MAX(version) AS v FROM schema_version")
        current_version = rows[0]["v"] if rows and rows[0]["v"] is not None else 0

        if current_version < 2:
            columns = {row["name"] for row in await tx.fetch("PRAGMA table_info(users)")}
            for stmt in _V2_MIGRATIONS:
                if "version" in columns:
                    continue
                try:
                    await tx.write(stmt)
                except sqlite3.OperationalError as exc:
                    log.warning("migration_statement_skipped", statement=stmt, error=str(exc))

        if current_version < SCHEMA_VERSION:
            await tx.write(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            log.info("migration_applied", version=SCHEMA_VERSION)
        else:
            log.debug("schema_already_current", version=SCHEMA_VERSION)
