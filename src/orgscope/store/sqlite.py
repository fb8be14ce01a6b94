"""SQLite-backed user store for durable single-node persistence."""

from __future__ import annotations

import json
import uuid
from typing import Any

import structlog

from orgscope.context import RequestContext
from orgscope.errors import UserNotFoundError, UserVersionConflictError
from orgscope.models import Role, User, UserQuery
from orgscope.persistence.db import DatabaseManager

log = structlog.get_logger(__name__)

_INSERT_SQL = """
    INSERT INTO users (id, name, provider, scheme, roles, super_admin, version)
    VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_UPDATE_SQL = """
    UPDATE users
       SET name = ?, provider = ?, scheme = ?, roles = ?, super_admin = ?, version = version + 1
     WHERE id = ? AND version = ?
"""

_SELECT_ALL = "SELECT * FROM users ORDER BY seq"

_SELECT_VERSION = "SELECT version FROM users WHERE id = ?"

_DELETE_BY_ID = "DELETE FROM users WHERE id = ?"

_QUERY_COLUMNS = ("id", "name", "provider", "scheme")


def _serialize_roles(roles: list[Role] | None) -> str:
    return json.dumps(
        [{"organization": r.organization, "name": r.name} for r in roles or ()],
        ensure_ascii=False,
    )


def _deserialize_roles(raw: str) -> list[Role]:
    return [Role(organization=r["organization"], name=r["name"]) for r in json.loads(raw)]


def _row_to_user(row: dict[str, Any]) -> User:
    return User(
        id=row["id"],
        name=row["name"],
        provider=row["provider"],
        scheme=row["scheme"],
        roles=_deserialize_roles(row["roles"]),
        super_admin=bool(row["super_admin"]),
        version=row["version"],
    )


def _where_clause(query: UserQuery) -> tuple[str, tuple[Any, ...]]:
    clauses: list[str] = []
    params: list[Any] = []
    for column in _QUERY_COLUMNS:
        value = getattr(query, column)
        if value is not None:
            clauses.append(f"{column} = ?")
            params.append(value)
    return " AND ".join(clauses), tuple(params)


class SQLiteUserStore:
    """Durable SQLite-backed user store."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    @property
    def db(self) -> DatabaseManager:
        return self._db

    async def close(self) -> None:
        await self._db.close()

    async def get(self, ctx: RequestContext, query: UserQuery) -> User:
        """Return the first user matching every field set on ``query``."""
        if query.is_empty():
            raise ValueError("user query must set at least one field")
        where, params = _where_clause(query)
        rows = await self._db.fetch(
            f"SELECT * FROM users WHERE {where} ORDER BY seq LIMIT 1", params
        )
        if not rows:
            raise UserNotFoundError()
        return _row_to_user(rows[0])

    async def add(self, ctx: RequestContext, user: User) -> User:
        """Persist a new user under a freshly generated id."""
        user_id = str(uuid.uuid4())
        await self._db.write(
            _INSERT_SQL,
            (
                user_id,
                user.name,
                user.provider,
                user.scheme,
                _serialize_roles(user.roles),
                int(user.super_admin),
                1,
            ),
        )
        user.id = user_id
        user.version = 1
        log.debug("user_added", user_id=user.id, name=user.name)
        return user.copy()

    async def update(self, ctx: RequestContext, user: User) -> None:
        """Overwrite a user record if nobody else changed it since it was read."""
        async with self._db.transaction() as tx:
            count = await tx.write(
                _UPDATE_SQL,
                (
                    user.name,
                    user.provider,
                    user.scheme,
                    _serialize_roles(user.roles),
                    int(user.super_admin),
                    user.id,
                    user.version,
                ),
            )
            if count == 0:
                rows = await tx.fetch(_SELECT_VERSION, (user.id,))
                if not rows:
                    raise UserNotFoundError()
                raise UserVersionConflictError(user.id, user.version, rows[0]["version"])
        user.version += 1
        log.debug("user_updated", user_id=user.id, version=user.version)

    async def delete(self, ctx: RequestContext, user: User) -> None:
        """Remove the whole user record."""
        count = await self._db.write(_DELETE_BY_ID, (user.id,))
        if count == 0:
            raise UserNotFoundError()
        log.info("user_deleted", user_id=user.id)

    async def all(self, ctx: RequestContext) -> list[User]:
        """Return every user in insertion order."""
        rows = await self._db.fetch(_SELECT_ALL)
        return [_row_to_user(r) for r in rows]
