"""User records and the role assignments that scope them to organizations."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field


@dataclass
class Role:
    """A named permission level held within exactly one organization."""

    organization: str = ""
    name: str = ""


@dataclass
class User:
    """A user record as held by the underlying store, across all organizations."""

    id: str = ""  # assigned by the store on add
    name: str = ""
    provider: str = ""
    scheme: str = ""
    roles: list[Role] = field(default_factory=list)
    super_admin: bool = False
    version: int = 0  # bumped by the store on every successful update

    def copy(self) -> User:
        """Return a deep copy so callers never share role lists with a store.

        A missing role list comes back as an empty one.
        """
        clone = copy.deepcopy(self)
        if clone.roles is None:
            clone.roles = []
        return clone

    def roles_in(self, organization: str) -> list[Role]:
        """Roles belonging to ``organization``, in their original order."""
        return [r for r in self.roles or () if r.organization == organization]

    def roles_outside(self, organization: str) -> list[Role]:
        """Roles belonging to any organization other than ``organization``."""
        return [r for r in self.roles or () if r.organization != organization]


@dataclass
class UserQuery:
    """Sparse lookup filter; unset fields match anything."""

    id: str | None = None
    name: str | None = None
    provider: str | None = None
    scheme: str | None = None

    @classmethod
    def by_id(cls, user_id: str) -> UserQuery:
        return cls(id=user_id)

    @classmethod
    def by_identity(cls, user: User) -> UserQuery:
        """Match on (name, provider, scheme), the identity of a user without an id."""
        return cls(name=user.name, provider=user.provider, scheme=user.scheme)

    def is_empty(self) -> bool:
        return all(v is None for v in (self.id, self.name, self.provider, self.scheme))

    def matches(self, user: User) -> bool:
        if self.id is not None and user.id != self.id:
            return False
        if self.name is not None and user.name != self.name:
            return False
        if self.provider is not None and user.provider != self.provider:
            return False
        if self.scheme is not None and user.scheme != self.scheme:
            return False
        return True
