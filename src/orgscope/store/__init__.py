"""User storage backends sharing the UserStore protocol.

Backends are imported on first use, so importing the protocol does not
pull in aiosqlite or SQLAlchemy.
"""

from __future__ import annotations

from orgscope.store.base import UserStore

__all__ = [
    "InMemoryUserStore",
    "PostgresUserStore",
    "SQLiteUserStore",
    "UserStore",
]


def __getattr__(name: str):
    if name == "InMemoryUserStore":
        from orgscope.store.memory import InMemoryUserStore

        return InMemoryUserStore
    if name == "SQLiteUserStore":
        from orgscope.store.sqlite import SQLiteUserStore

        return SQLiteUserStore
    if name == "PostgresUserStore":
        from orgscope.store.postgres import PostgresUserStore

        return PostgresUserStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
