"""Shared test helpers - importable from test modules."""

from __future__ import annotations

from orgscope.context import RequestContext
from orgscope.models import Role, User

ORG = "1337"
OTHER_ORG = "1338"


def role(organization: str, name: str) -> Role:
    return Role(organization=organization, name=name)


def make_user(
    name: str = "billietta",
    *roles: Role,
    provider: str = "github",
    scheme: str = "oauth2",
) -> User:
    return User(name=name, provider=provider, scheme=scheme, roles=list(roles))


def ctx_for(organization: str | None = ORG) -> RequestContext:
    return RequestContext(organization=organization)
