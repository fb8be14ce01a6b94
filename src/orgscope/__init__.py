"""orgscope - organization-scoped views over a shared user store."""

__all__ = [
    "OrgScopeSettings",
    "OrgScopedUserStore",
    "RequestContext",
    "Role",
    "User",
    "UserQuery",
]
__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy imports: avoid loading storage drivers until they are used."""
    if name == "OrgScopeSettings":
        from orgscope.config import OrgScopeSettings

        return OrgScopeSettings
    if name == "OrgScopedUserStore":
        from orgscope.organizations import OrgScopedUserStore

        return OrgScopedUserStore
    if name == "RequestContext":
        from orgscope.context import RequestContext

        return RequestContext
    if name in ("Role", "User", "UserQuery"):
        from orgscope import models

        return getattr(models, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
