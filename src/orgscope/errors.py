"""Error hierarchy for orgscope.

All errors raised by orgscope itself inherit from OrgScopeError and carry a
machine-readable ``code``. Errors raised by a storage driver (aiosqlite,
SQLAlchemy) are never wrapped and reach the caller as-is.
"""

from __future__ import annotations


class OrgScopeError(Exception):
    """Base error for all orgscope exceptions."""

    def __init__(self, message: str, code: str = "ORGSCOPE_ERROR") -> None:
        self.code = code
        super().__init__(message)


# -- Context errors --


class OrganizationMissingError(OrgScopeError):
    """The calling context carries no organization."""

    def __init__(self, message: str = "Expected organization in context") -> None:
        super().__init__(message, code="ORGANIZATION_MISSING")


# -- Role validation errors (write paths) --


class RoleValidationError(OrgScopeError):
    """A role supplied on a write path is not valid for the bound organization."""


class RoleMissingOrganizationError(RoleValidationError):
    def __init__(self) -> None:
        super().__init__("user role must have an Organization", code="ROLE_MISSING_ORGANIZATION")


class RoleOrganizationMismatchError(RoleValidationError):
    """A role names an organization other than the one the store is bound to."""

    def __init__(self, organization: str, expected: str) -> None:
        self.organization = organization
        self.expected = expected
        super().__init__(
            f"organizationID {organization} does not match {expected}",
            code="ROLE_ORGANIZATION_MISMATCH",
        )


class RoleMissingNameError(RoleValidationError):
    def __init__(self) -> None:
        super().__init__("user role must have a Name", code="ROLE_MISSING_NAME")


# -- Store errors --


class UserNotFoundError(OrgScopeError):
    """No user matched, or the user has no role in the bound organization."""

    def __init__(self, message: str = "user not found") -> None:
        super().__init__(message, code="USER_NOT_FOUND")


class UserVersionConflictError(OrgScopeError):
    """An update was based on a stale copy of the user record."""

    def __init__(self, user_id: str, expected: int, actual: int) -> None:
        self.user_id = user_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"user {user_id} was modified concurrently (version {expected}, stored {actual})",
            code="USER_VERSION_CONFLICT",
        )
