"""Organization-scoped view over a shared user store.

OrgScopedUserStore wraps any UserStore and binds itself to one organization.
Reads only ever show the roles a user holds in that organization; writes only
ever add, replace or remove roles in that organization, and leave every other
organization's roles on the same record untouched.

Add, update and delete read the full record and write it back. The backend's
compare-and-swap on ``User.version`` turns a concurrent writer into a
UserVersionConflictError instead of a lost update; this layer never retries.
"""

from __future__ import annotations

import structlog

from orgscope.context import RequestContext, validate_organization
from orgscope.errors import (
    RoleMissingNameError,
    RoleMissingOrganizationError,
    RoleOrganizationMismatchError,
    UserNotFoundError,
)
from orgscope.models import User, UserQuery
from orgscope.store.base import UserStore

log = structlog.get_logger(__name__)


def validate_organization_roles(organization: str, user: User | None) -> None:
    """Ensure every role on ``user`` names ``organization`` and has a name."""
    if user is None or not user.roles:
        return
    for role in user.roles:
        if not role.organization:
            raise RoleMissingOrganizationError()
        if role.organization != organization:
            raise RoleOrganizationMismatchError(role.organization, organization)
        if not role.name:
            raise RoleMissingNameError()


class OrgScopedUserStore:
    """UserStore restricted to the role assignments of a single organization.

    Several instances, one per organization, may wrap the same store. A user
    with no role in the bound organization does not exist as far as this
    view is concerned.
    """

    def __init__(self, store: UserStore, organization: str) -> None:
        if not organization:
            raise ValueError("organization is required")
        self._store = store
        self._organization = organization
        self._log = log.bind(organization=organization)

    @property
    def organization(self) -> str:
        return self._organization

    async def get(self, ctx: RequestContext, query: UserQuery) -> User:
        """Look a user up across the whole store, then hide foreign roles."""
        validate_organization(ctx)

        user = await self._store.get(ctx, query)
        roles = user.roles_in(self._organization)
        if not roles:
            raise UserNotFoundError()
        user.roles = roles
        return user

    async def add(self, ctx: RequestContext, user: User) -> User:
        """Create the user, or merge its roles into an existing record.

        An existing record is matched on (name, provider, scheme). On a
        merge the caller's user gets the existing id, which is how a caller
        tells a merge from a creation.
        """
        validate_organization(ctx)
        validate_organization_roles(self._organization, user)

        incoming = list(user.roles or [])
        try:
            existing = await self._store.get(ctx, UserQuery.by_identity(user))
        except UserNotFoundError:
            user.roles = incoming
            return await self._store.add(ctx, user)

        existing.roles = existing.roles + incoming
        await self._store.update(ctx, existing)
        self._log.debug("user_roles_merged", user_id=existing.id, added=len(incoming))
        user.id = existing.id
        return user

    async def delete(self, ctx: RequestContext, user: User) -> None:
        """Strip the bound organization's roles; the record itself is kept."""
        validate_organization(ctx)

        existing = await self._store.get(ctx, UserQuery.by_id(user.id))
        removed = len(existing.roles)
        existing.roles = existing.roles_outside(self._organization)
        await self._store.update(ctx, existing)
        self._log.debug(
            "user_roles_removed",
            user_id=existing.id,
            removed=removed - len(existing.roles),
        )

    async def update(self, ctx: RequestContext, user: User) -> None:
        """Replace the bound organization's roles with those on ``user``.

        ``roles=None`` counts as no roles, so it clears the organization's
        assignments on the record.
        """
        validate_organization(ctx)
        validate_organization_roles(self._organization, user)

        incoming = list(user.roles or [])
        existing = await self._store.get(ctx, UserQuery.by_id(user.id))
        existing.roles = existing.roles_outside(self._organization) + incoming
        await self._store.update(ctx, existing)
        self._log.debug("user_roles_replaced", user_id=existing.id, roles=len(incoming))

    async def all(self, ctx: RequestContext) -> list[User]:
        """Every user holding at least one role here, with only those roles."""
        validate_organization(ctx)

        users = await self._store.all(ctx)
        scoped: list[User] = []
        for user in users:
            roles = user.roles_in(self._organization)
            if roles:
                user.roles = roles
                scoped.append(user)
        return scoped
