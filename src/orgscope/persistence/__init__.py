"""Persistence layer for orgscope: SQLite-backed durable storage."""

from __future__ import annotations

from orgscope.persistence.db import DatabaseManager, Transaction
from orgscope.persistence.migrations import SCHEMA_VERSION, run_migrations

__all__ = [
    "SCHEMA_VERSION",
    "DatabaseManager",
    "Transaction",
    "run_migrations",
]
