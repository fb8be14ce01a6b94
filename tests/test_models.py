"""Tests for user records, queries and request context."""

import os
import subprocess
import sys
from pathlib import Path

import pytest
from _helpers import ORG, OTHER_ORG, make_user, role

from orgscope.context import RequestContext, validate_organization
from orgscope.errors import OrganizationMissingError, OrgScopeError
from orgscope.models import User, UserQuery


def test_roles_in_and_outside_preserve_order():
    user = make_user(
        "billietta", role(ORG, "a"), role(OTHER_ORG, "b"), role(ORG, "c"), role(OTHER_ORG, "d")
    )
    assert user.roles_in(ORG) == [role(ORG, "a"), role(ORG, "c")]
    assert user.roles_outside(ORG) == [role(OTHER_ORG, "b"), role(OTHER_ORG, "d")]


def test_copy_is_deep():
    user = make_user("billietta", role(ORG, "admin"))
    clone = user.copy()
    clone.roles[0].name = "viewer"
    clone.roles.append(role(OTHER_ORG, "x"))
    assert user.roles == [role(ORG, "admin")]


def test_query_matches_only_set_fields():
    user = User(id="1", name="billietta", provider="github", scheme="oauth2")
    assert UserQuery.by_id("1").matches(user)
    assert UserQuery(name="billietta").matches(user)
    assert UserQuery.by_identity(user).matches(user)
    assert not UserQuery(name="billietta", scheme="ldap").matches(user)
    assert not UserQuery.by_id("2").matches(user)


def test_query_is_empty():
    assert UserQuery().is_empty()
    assert not UserQuery(scheme="oauth2").is_empty()


def test_validate_organization():
    validate_organization(RequestContext(organization=ORG))
    for ctx in (None, RequestContext(), RequestContext(organization="")):
        with pytest.raises(OrganizationMissingError) as exc_info:
            validate_organization(ctx)
        assert isinstance(exc_info.value, OrgScopeError)
        assert exc_info.value.code == "ORGANIZATION_MISSING"


def test_context_keeps_request_id_when_rebound():
    ctx = RequestContext(organization=ORG)
    rebound = ctx.with_organization(OTHER_ORG)
    assert rebound.organization == OTHER_ORG
    assert rebound.request_id == ctx.request_id
    assert RequestContext().request_id != RequestContext().request_id


def test_scoped_store_import_leaves_storage_drivers_unloaded():
    src = Path(__file__).resolve().parent.parent / "src"
    env = dict(os.environ)
    env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(src), env.get("PYTHONPATH")]))
    script = (
        "import sys, orgscope\n"
        "orgscope.OrgScopedUserStore\n"
        "import orgscope.store\n"
        "print(sorted(m for m in ('aiosqlite', 'sqlalchemy') if m in sys.modules))\n"
    )

    result = subprocess.run(
        [sys.executable, "-c", script], env=env, capture_output=True, text=True, check=True
    )

    assert result.stdout.strip() == "[]"


def test_missing_role_list_reads_as_empty():
    user = User(name="billietta", roles=None)
    assert user.roles_in(ORG) == []
    assert user.roles_outside(ORG) == []
    assert user.copy().roles == []
