"""Permission Registry — check/set/get over stored entries.

Tests cover:
    - Public problems grant VIEW regardless of entries
    - set_permissions replaces the full set (no merge), idempotent on repeat
    - Owner entries are never stored; owner synthesized first in listings
    - Non-managers get FORBIDDEN; duplicates get VALIDATION
"""

from uuid import uuid4

from sqlalchemy import select

from problemhub.core.domain_types import (
    ANONYMOUS, Identity, PermissionGrant, PermissionLevel, PrincipalType,
)
from problemhub.models.problem import Problem
from problemhub.models.problem_permission import ProblemPermission
from problemhub.services.permission_registry import PermissionRegistry

OWNER = Identity(user_id="owner-1")
EDITOR = Identity(user_id="editor-2")


def _grant(principal_id, level, principal_type=PrincipalType.USER):
    return PermissionGrant(principal_type, principal_id, level)


async def _problem(test_db, is_public=False) -> Problem:
    problem = Problem(id=uuid4(), owner_id=OWNER.user_id, is_public=is_public)
    test_db.add(problem)
    await test_db.commit()
    return problem


async def test_owner_has_manage_with_empty_registry(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    assert await registry.check_permission(problem, OWNER, PermissionLevel.MANAGE)


async def test_public_problem_grants_view_regardless_of_entries(test_db):
    problem = await _problem(test_db, is_public=True)
    registry = PermissionRegistry(test_db)
    assert await registry.check_permission(problem, ANONYMOUS, PermissionLevel.VIEW)
    assert not await registry.check_permission(problem, ANONYMOUS, PermissionLevel.EDIT)


async def test_set_permissions_grants_levels(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    result = await registry.set_permissions(
        problem, OWNER, [_grant(EDITOR.user_id, PermissionLevel.EDIT)],
    )
    await test_db.commit()

    assert result == {"status": "ok", "stored": 1}
    assert await registry.check_permission(problem, EDITOR, PermissionLevel.EDIT)
    assert not await registry.check_permission(problem, EDITOR, PermissionLevel.MANAGE)


async def test_set_permissions_replaces_rather_than_merges(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    await registry.set_permissions(problem, OWNER, [
        _grant("a", PermissionLevel.VIEW), _grant("b", PermissionLevel.EDIT),
    ])
    await test_db.commit()
    await registry.set_permissions(problem, OWNER, [
        _grant("c", PermissionLevel.MANAGE),
    ])
    await test_db.commit()

    entries = await registry.get_permissions(problem)
    assert [(e["principal_id"], e["level"]) for e in entries] == [
        (OWNER.user_id, "MANAGE"), ("c", "MANAGE"),
    ]


async def test_set_permissions_is_idempotent(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    grants = [
        _grant("setters", PermissionLevel.EDIT, PrincipalType.GROUP),
        _grant("u5", PermissionLevel.VIEW),
    ]
    await registry.set_permissions(problem, OWNER, grants)
    await test_db.commit()
    first = await registry.get_permissions(problem)
    await registry.set_permissions(problem, OWNER, grants)
    await test_db.commit()

    assert await registry.get_permissions(problem) == first


async def test_owner_entry_is_never_stored(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    await registry.set_permissions(problem, OWNER, [
        _grant(OWNER.user_id, PermissionLevel.VIEW),
    ])
    await test_db.commit()

    rows = (await test_db.execute(select(ProblemPermission))).scalars().all()
    assert rows == []
    entries = await registry.get_permissions(problem)
    assert entries == [{
        "principal_type": "user",
        "principal_id": OWNER.user_id,
        "level": "MANAGE",
        "is_owner": True,
    }]


async def test_non_manager_is_forbidden(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    await registry.set_permissions(
        problem, OWNER, [_grant(EDITOR.user_id, PermissionLevel.EDIT)],
    )
    await test_db.commit()

    result = await registry.set_permissions(
        problem, EDITOR, [_grant(EDITOR.user_id, PermissionLevel.MANAGE)],
    )
    assert result["error_code"] == "FORBIDDEN"


async def test_admin_may_set_permissions(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    admin = Identity(user_id="root", is_admin=True)
    result = await registry.set_permissions(
        problem, admin, [_grant("u7", PermissionLevel.VIEW)],
    )
    assert result["status"] == "ok"


async def test_duplicate_principals_fail_validation(test_db):
    problem = await _problem(test_db)
    registry = PermissionRegistry(test_db)
    result = await registry.set_permissions(problem, OWNER, [
        _grant("u5", PermissionLevel.VIEW), _grant("u5", PermissionLevel.EDIT),
    ])
    assert result["error_code"] == "VALIDATION"
    assert result["duplicates"] == ["user:u5"]
