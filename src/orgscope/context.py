"""Per-call request context threaded explicitly through every store operation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field

from orgscope.errors import OrganizationMissingError


@dataclass(frozen=True)
class RequestContext:
    """Caller-supplied context for a single store operation.

    ``organization`` is whatever organization the embedding service resolved
    for the caller (session, token claim, request header). Deciding whether
    the caller may act as that organization happens before orgscope is
    invoked.
    """

    organization: str | None = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def with_organization(self, organization: str | None) -> RequestContext:
        return RequestContext(organization=organization, request_id=self.request_id)


def validate_organization(ctx: RequestContext | None) -> None:
    """Raise OrganizationMissingError unless ``ctx`` carries an organization."""
    if ctx is None or not ctx.organization:
        raise OrganizationMissingError()
