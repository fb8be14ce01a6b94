"""In-memory user store for testing and single-process deployments."""

from __future__ import annotations

import asyncio
import uuid

import structlog

from orgscope.context import RequestContext
from orgscope.errors import UserNotFoundError, UserVersionConflictError
from orgscope.models import User, UserQuery

log = structlog.get_logger(__name__)


class InMemoryUserStore:
    """Simple in-memory user store.

    Every record handed in or out is copied, so callers can reshape the
    users they receive without touching stored state.
    """

    def __init__(self) -> None:
        self._users: dict[str, User] = {}
        self._lock = asyncio.Lock()

    async def get(self, ctx: RequestContext, query: UserQuery) -> User:
        if query.is_empty():
            raise ValueError("user query must set at least one field")
        for user in self._users.values():
            if query.matches(user):
                return user.copy()
        raise UserNotFoundError()

    async def add(self, ctx: RequestContext, user: User) -> User:
        async with self._lock:
            stored = user.copy()
            stored.id = str(uuid.uuid4())
            stored.version = 1
            self._users[stored.id] = stored
        user.id = stored.id
        user.version = stored.version
        log.debug("user_added", user_id=user.id, name=user.name)
        return user.copy()

    async def update(self, ctx: RequestContext, user: User) -> None:
        async with self._lock:
            stored = self._users.get(user.id)
            if stored is None:
                raise UserNotFoundError()
            if stored.version != user.version:
                raise UserVersionConflictError(user.id, user.version, stored.version)
            user.version += 1
            self._users[user.id] = user.copy()
        log.debug("user_updated", user_id=user.id, version=user.version)

    async def delete(self, ctx: RequestContext, user: User) -> None:
        async with self._lock:
            if self._users.pop(user.id, None) is None:
                raise UserNotFoundError()
        log.debug("user_deleted", user_id=user.id)

    async def all(self, ctx: RequestContext) -> list[User]:
        return [u.copy() for u in self._users.values()]

    def __len__(self) -> int:
        return len(self._users)
