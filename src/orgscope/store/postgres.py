"""PostgreSQL user store over SQLAlchemy's async engine.

Only portable SQL is issued, so any async SQLAlchemy dialect works; the
tests run it against ``sqlite+aiosqlite``.
"""

from __future__ import annotations

import inspect
import json
import uuid
from typing import TYPE_CHECKING, Any

import structlog

from orgscope.context import RequestContext
from orgscope.errors import UserNotFoundError, UserVersionConflictError
from orgscope.models import Role, User, UserQuery

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

log = structlog.get_logger(__name__)

_CREATE_TABLE = """
    CREATE TABLE IF NOT EXISTS orgscope_users (
        id          VARCHAR(64) PRIMARY KEY,
        seq         BIGINT NOT NULL,
        name        TEXT NOT NULL,
        provider    TEXT NOT NULL DEFAULT '',
        scheme      TEXT NOT NULL DEFAULT '',
        roles       TEXT NOT NULL DEFAULT '[]',
        super_admin BOOLEAN NOT NULL DEFAULT FALSE,
        version     INTEGER NOT NULL DEFAULT 1
    )
"""

_CREATE_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_orgscope_users_identity "
    "ON orgscope_users (name, provider, scheme)"
)

_QUERY_COLUMNS = ("id", "name", "provider", "scheme")


class PostgresUserStore:
    """Durable user store backed by PostgreSQL."""

    def __init__(self, session_factory: object, engine: AsyncEngine | None = None) -> None:
        self._session_factory = session_factory
        self._engine = engine

    async def close(self) -> None:
        """Dispose of the engine, if this store was handed one to own."""
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None

    async def create_schema(self) -> None:
        """Create the users table and its identity index if missing."""
        from sqlalchemy import text

        async with await self._get_session() as session:
            await session.execute(text(_CREATE_TABLE))
            await session.execute(text(_CREATE_INDEX))
            await session.commit()
        log.info("schema_created", table="orgscope_users")

    async def _get_session(self) -> AsyncSession:
        from sqlalchemy.ext.asyncio import AsyncSession

        factory = self._session_factory
        if not callable(factory):
            raise TypeError("session_factory must be callable")
        session = factory()
        if isinstance(session, AsyncSession):
            return session
        close = getattr(session, "close", None)
        if close is not None:
            result = close()
            if inspect.isawaitable(result):
                await result
        raise TypeError("session_factory must return an AsyncSession")

    async def get(self, ctx: RequestContext, query: UserQuery) -> User:
        from sqlalchemy import text

        if query.is_empty():
            raise ValueError("user query must set at least one field")
        clauses = [f"{c} = :{c}" for c in _QUERY_COLUMNS if getattr(query, c) is not None]
        params = {c: getattr(query, c) for c in _QUERY_COLUMNS if getattr(query, c) is not None}

        async with await self._get_session() as session:
            result = await session.execute(
                text(
                    f"SELECT * FROM orgscope_users WHERE {' AND '.join(clauses)} "
                    "ORDER BY seq LIMIT 1"
                ),
                params,
            )
            row = result.mappings().first()
        if row is None:
            raise UserNotFoundError()
        return self._row_to_user(row)

    async def add(self, ctx: RequestContext, user: User) -> User:
        from sqlalchemy import text

        user_id = str(uuid.uuid4())
        async with await self._get_session() as session:
            await session.execute(
                text("""
                    INSERT INTO orgscope_users
                        (id, seq, name, provider, scheme, roles, super_admin, version)
                    VALUES (:id,
                            (SELECT COALESCE(MAX(seq), 0) + 1 FROM orgscope_users),
                            :name, :provider, :scheme, :roles, :super_admin, :version)
                """),
                {
                    "id": user_id,
                    "name": user.name,
                    "provider": user.provider,
                    "scheme": user.scheme,
                    "roles": self._serialize_roles(user.roles),
                    "super_admin": user.super_admin,
                    "version": 1,
                },
            )
            await session.commit()
        user.id = user_id
        user.version = 1
        log.debug("user_added", user_id=user.id, name=user.name)
        return user.copy()

    async def update(self, ctx: RequestContext, user: User) -> None:
        from sqlalchemy import text

        async with await self._get_session() as session:
            result = await session.execute(
                text("""
                    UPDATE orgscope_users
                       SET name = :name, provider = :provider, scheme = :scheme,
                           roles = :roles, super_admin = :super_admin,
                           version = version + 1
                     WHERE id = :id AND version = :version
                """),
                {
                    "id": user.id,
                    "name": user.name,
                    "provider": user.provider,
                    "scheme": user.scheme,
                    "roles": self._serialize_roles(user.roles),
                    "super_admin": user.super_admin,
                    "version": user.version,
                },
            )
            if result.rowcount == 0:
                current = await session.execute(
                    text("SELECT version FROM orgscope_users WHERE id = :id"),
                    {"id": user.id},
                )
                stored = current.scalar()
                await session.rollback()
                if stored is None:
                    raise UserNotFoundError()
                raise UserVersionConflictError(user.id, user.version, stored)
            await session.commit()
        user.version += 1
        log.debug("user_updated", user_id=user.id, version=user.version)

    async def delete(self, ctx: RequestContext, user: User) -> None:
        from sqlalchemy import text

        async with await self._get_session() as session:
            result = await session.execute(
                text("DELETE FROM orgscope_users WHERE id = :id"),
                {"id": user.id},
            )
            deleted = result.rowcount
            await session.commit()
        if deleted == 0:
            raise UserNotFoundError()
        log.info("user_deleted", user_id=user.id)

    async def all(self, ctx: RequestContext) -> list[User]:
        from sqlalchemy import text

        async with await self._get_session() as session:
            result = await session.execute(text("SELECT * FROM orgscope_users ORDER BY seq"))
            return [self._row_to_user(row) for row in result.mappings()]

    @staticmethod
    def _serialize_roles(roles: list[Role] | None) -> str:
        return json.dumps(
            [{"organization": r.organization, "name": r.name} for r in roles or ()]
        )

    @staticmethod
    def _row_to_user(row: Any) -> User:
        return User(
            id=str(row["id"]),
            name=row["name"],
            provider=row["provider"],
            scheme=row["scheme"],
            roles=[
                Role(organization=r["organization"], name=r["name"])
                for r in json.loads(row["roles"])
            ],
            super_admin=bool(row["super_admin"]),
            version=row["version"],
        )
