"""Permission Rules — computes a principal's effective level on a problem.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Owner always resolves to MANAGE (computed, never a stored row)
    - Admin always resolves to MANAGE
    - Public problems grant at least VIEW to everyone, anonymous included
    - Anonymous identities never exceed VIEW and never match stored entries

Design Decisions:
    - Pure functions over ORM methods: testable without a database (ADR: functional core)
    - Entries passed as PermissionGrant values: rules never see ORM objects
"""

from collections.abc import Iterable

from problemhub.core.domain_types import (
    Identity, PermissionGrant, PermissionLevel, PrincipalType,
)


def grant_matches(grant: PermissionGrant, identity: Identity) -> bool:
    """True when the grant names the caller directly or one of the caller's groups."""
    if identity.is_anonymous:
        return False
    if grant.principal_type == PrincipalType.USER:
        return grant.principal_id == identity.user_id
    return grant.principal_id in identity.group_ids


def effective_level(
    identity: Identity,
    owner_id: str,
    is_public: bool,
    grants: Iterable[PermissionGrant],
) -> PermissionLevel | None:
    """Highest level the identity holds on the problem, or None for no access."""
    if identity.is_anonymous:
        return PermissionLevel.VIEW if is_public else None
    if identity.is_admin or identity.user_id == owner_id:
        return PermissionLevel.MANAGE

    best = PermissionLevel.VIEW if is_public else None
    for grant in grants:
        if not grant_matches(grant, identity):
            continue
        if best is None or grant.level.rank > best.rank:
            best = grant.level
    return best


def has_level(
    level: PermissionLevel | None, required: PermissionLevel,
) -> bool:
    return level is not None and level.satisfies(required)


def find_duplicate_principals(
    grants: Iterable[PermissionGrant],
) -> list[str]:
    """Principals named more than once, formatted as 'type:id'."""
    seen: set[tuple[PrincipalType, str]] = set()
    duplicates: list[str] = []
    for grant in grants:
        key = (grant.principal_type, grant.principal_id)
        if key in seen:
            duplicates.append(f"{key[0].value}:{key[1]}")
        seen.add(key)
    return duplicates


def drop_owner_grants(
    grants: Iterable[PermissionGrant], owner_id: str,
) -> list[PermissionGrant]:
    """Owner access is implicit — a stored owner row could later be deleted."""
    return [
        g for g in grants
        if not (g.principal_type == PrincipalType.USER and g.principal_id == owner_id)
    ]


def sort_grants(grants: Iterable[PermissionGrant]) -> list[PermissionGrant]:
    return sorted(
        grants, key=lambda g: (g.principal_type.value, g.principal_id),
    )
