"""Build a user store backend from settings."""

from __future__ import annotations

from typing import Any

import structlog

from orgscope.config import OrgScopeSettings, StoreBackend
from orgscope.organizations import OrgScopedUserStore
from orgscope.store.base import UserStore

logger = structlog.get_logger()


def build_user_store(settings: OrgScopeSettings) -> UserStore:
    """Return the configured backend, not yet connected.

    The sqlite and postgres backends still need their database opened or
    their schema created; use :func:`open_user_store` to get a ready store.

    Args:
        settings: orgscope settings; ``store_backend`` picks the backend.

    Returns:
        A UserStore instance.
    """
    backend = StoreBackend(settings.store_backend)

    if backend == StoreBackend.MEMORY:
        from orgscope.store.memory import InMemoryUserStore

        logger.info("user_store_selected", backend="memory")
        return InMemoryUserStore()

    if backend == StoreBackend.SQLITE:
        from orgscope.persistence.db import DatabaseManager
        from orgscope.store.sqlite import SQLiteUserStore

        logger.info("user_store_selected", backend="sqlite", path=str(settings.sqlite_path))
        return SQLiteUserStore(DatabaseManager(settings.sqlite_path))

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

    from orgscope.store.postgres import PostgresUserStore

    engine_kwargs: dict[str, Any] = {}
    if settings.database_url.startswith("postgresql"):
        engine_kwargs["pool_size"] = settings.database_pool_size
    engine = create_async_engine(settings.database_url, **engine_kwargs)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    logger.info("user_store_selected", backend="postgres")
    return PostgresUserStore(session_factory, engine=engine)


async def open_user_store(settings: OrgScopeSettings) -> UserStore:
    """Build the configured backend and make it ready for use."""
    backend = StoreBackend(settings.store_backend)
    store: Any = build_user_store(settings)

    if backend == StoreBackend.SQLITE:
        await store.db.initialize()
    elif backend == StoreBackend.POSTGRES:
        await store.create_schema()
    return store


def scoped_user_store(store: UserStore, organization: str) -> OrgScopedUserStore:
    """Wrap ``store`` in a view restricted to ``organization``."""
    return OrgScopedUserStore(store, organization)
