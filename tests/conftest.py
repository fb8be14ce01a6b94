"""Shared test fixtures."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Make _helpers importable from test files
sys.path.insert(0, str(Path(__file__).parent))

from _helpers import ORG, ctx_for  # noqa: E402

from orgscope.context import RequestContext  # noqa: E402
from orgscope.organizations import OrgScopedUserStore  # noqa: E402
from orgscope.persistence.db import DatabaseManager  # noqa: E402
from orgscope.store.memory import InMemoryUserStore  # noqa: E402
from orgscope.store.sqlite import SQLiteUserStore  # noqa: E402


@pytest.fixture
def ctx() -> RequestContext:
    return ctx_for(ORG)


@pytest.fixture
def memory_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def scoped(memory_store: InMemoryUserStore) -> OrgScopedUserStore:
    return OrgScopedUserStore(memory_store, ORG)


@pytest_asyncio.fixture
async def sqlite_db(tmp_path: Path):
    db = DatabaseManager(tmp_path / "orgscope" / "users.db")
    await db.initialize()
    yield db
    await db.close()


@pytest.fixture
def sqlite_store(sqlite_db: DatabaseManager) -> SQLiteUserStore:
    return SQLiteUserStore(sqlite_db)
