"""Permission Registry — per-problem access-control list plus computed owner/public rules.

Invariants:
    - check_permission for a public problem always grants VIEW
    - set_permissions replaces the FULL entry set under a row lock on the problem:
      concurrent calls serialize, last writer wins, never a merged result
    - set_permissions re-checks the actor's level inside the lock
    - The owner is never stored; get_permissions synthesizes the owner entry
    - Never commits: the Problem Aggregate Service owns the transaction

Design Decisions:
    - Rules live in core/permission_rules.py; this module only loads and stores rows
    - SELECT ... FOR UPDATE on the problem row as the per-problem mutex
      (ADR: SQLite ignores it, PostgreSQL serializes writers and lock-holding readers)
"""

import logging
from collections.abc import Iterable

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from problemhub.core.domain_types import (
    Identity, PermissionGrant, PermissionLevel, PrincipalType,
)
from problemhub.core.errors import ErrorCode, error_result
from problemhub.core.permission_rules import (
    drop_owner_grants, effective_level, find_duplicate_principals,
    has_level, sort_grants,
)
from problemhub.core.repository_protocols import ProblemLike
from problemhub.models.problem import Problem
from problemhub.models.problem_permission import ProblemPermission

logger = logging.getLogger(__name__)


def serialize_grant(grant: PermissionGrant, is_owner: bool = False) -> dict:
    return {
        "principal_type": grant.principal_type.value,
        "principal_id": grant.principal_id,
        "level": grant.level.value,
        "is_owner": is_owner,
    }


class PermissionRegistry:
    """Loads, evaluates and replaces permission entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_grants(self, problem_id) -> list[PermissionGrant]:
        result = await self.db.execute(
            select(ProblemPermission)
            .where(ProblemPermission.problem_id == problem_id)
        )
        return [
            PermissionGrant(
                principal_type=PrincipalType(row.principal_type),
                principal_id=row.principal_id,
                level=PermissionLevel(row.level),
            )
            for row in result.scalars().all()
        ]

    async def effective_level(
        self, problem: ProblemLike, identity: Identity,
    ) -> PermissionLevel | None:
        # Anonymous, admin and owner never depend on stored rows
        if (
            identity.is_anonymous
            or identity.is_admin
            or identity.user_id == problem.owner_id
        ):
            grants: list[PermissionGrant] = []
        else:
            grants = await self.load_grants(problem.id)
        return effective_level(
            identity, problem.owner_id, problem.is_public, grants,
        )

    async def check_permission(
        self,
        problem: ProblemLike,
        identity: Identity,
        required: PermissionLevel,
    ) -> bool:
        level = await self.effective_level(problem, identity)
        return has_level(level, required)

    async def set_permissions(
        self,
        problem: ProblemLike,
        actor: Identity,
        grants: Iterable[PermissionGrant],
    ) -> dict:
        """Atomically replace the problem's entries. Returns result dict."""
        grants = list(grants)
        duplicates = find_duplicate_principals(grants)
        if duplicates:
            return error_result(
                ErrorCode.VALIDATION,
                f"Principals listed more than once: {', '.join(duplicates)}",
                duplicates=duplicates,
            )

        await self.db.execute(
            select(Problem.id).where(Problem.id == problem.id).with_for_update()
        )
        if not await self.check_permission(problem, actor, PermissionLevel.MANAGE):
            return error_result(
                ErrorCode.FORBIDDEN,
                "Managing permissions requires MANAGE on the problem",
            )

        stored = drop_owner_grants(grants, problem.owner_id)
        await self.db.execute(
            delete(ProblemPermission)
            .where(ProblemPermission.problem_id == problem.id)
        )
        self.db.add_all([
            ProblemPermission(
                problem_id=problem.id,
                principal_type=g.principal_type.value,
                principal_id=g.principal_id,
                level=g.level.value,
            )
            for g in stored
        ])
        await self.db.flush()
        logger.info(
            f"Permission set replaced ({len(stored)} entries)",
            extra={"problem_id": problem.id, "user_id": actor.user_id},
        )
        return {"status": "ok", "stored": len(stored)}

    async def get_permissions(self, problem: ProblemLike) -> list[dict]:
        """Owner entry first, then stored entries in principal order."""
        owner = PermissionGrant(
            principal_type=PrincipalType.USER,
            principal_id=problem.owner_id,
            level=PermissionLevel.MANAGE,
        )
        stored = sort_grants(await self.load_grants(problem.id))
        return [serialize_grant(owner, is_owner=True)] + [
            serialize_grant(g) for g in stored
        ]

    async def delete_all(self, problem_id) -> int:
        result = await self.db.execute(
            delete(ProblemPermission)
            .where(ProblemPermission.problem_id == problem_id)
        )
        return result.rowcount
