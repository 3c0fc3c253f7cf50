"""Identity Context — builds the per-request Identity from gateway headers.

Invariants:
    - Missing or blank X-User-Id means anonymous; anonymous is never admin and has no groups
    - The Identity is built once per request and passed explicitly to services
    - User and group ids longer than MAX_PRINCIPAL_ID_LENGTH are a VALIDATION error
    - This layer never authenticates: the gateway in front of the API does

Design Decisions:
    - Headers over token decoding: credential verification belongs to the
      authentication service (ADR: core only authorizes)
"""

from fastapi import Header

from problemhub.core.domain_types import (
    ANONYMOUS, MAX_PRINCIPAL_ID_LENGTH, Identity,
)
from problemhub.core.errors import InvalidIdentityError

_TRUTHY = {"1", "true", "yes", "on"}


def parse_identity(
    user_id: str | None, admin_flag: str | None, groups: str | None,
) -> Identity:
    """Build the Identity; ids wider than the principal columns are rejected."""
    if not user_id or not user_id.strip():
        return ANONYMOUS
    user_id = user_id.strip()
    group_ids = frozenset(
        g.strip() for g in (groups or "").split(",") if g.strip()
    )
    for value in (user_id, *group_ids):
        if len(value) > MAX_PRINCIPAL_ID_LENGTH:
            raise InvalidIdentityError(
                f"Principal id exceeds {MAX_PRINCIPAL_ID_LENGTH} characters",
            )
    return Identity(
        user_id=user_id,
        is_admin=(admin_flag or "").strip().lower() in _TRUTHY,
        group_ids=group_ids,
    )


async def get_identity(
    x_user_id: str | None = Header(None),
    x_user_admin: str | None = Header(None),
    x_user_groups: str | None = Header(None),
) -> Identity:
    """FastAPI dependency — the caller's identity as asserted by the gateway."""
    return parse_identity(x_user_id, x_user_admin, x_user_groups)
