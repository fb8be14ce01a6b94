"""Protocol for pluggable user storage backends."""

from __future__ import annotations

from typing import Protocol

from orgscope.context import RequestContext
from orgscope.models import User, UserQuery


class UserStore(Protocol):
    """Backend interface for storing users and their role assignments.

    ``update`` is a compare-and-swap on ``User.version``: implementations
    raise UserVersionConflictError when the stored record changed since the
    caller read it, and bump the version on success.
    """

    async def get(self, ctx: RequestContext, query: UserQuery) -> User: ...
    async def add(self, ctx: RequestContext, user: User) -> User: ...
    async def update(self, ctx: RequestContext, user: User) -> None: ...
    async def delete(self, ctx: RequestContext, user: User) -> None: ...
    async def all(self, ctx: RequestContext) -> list[User]: ...
