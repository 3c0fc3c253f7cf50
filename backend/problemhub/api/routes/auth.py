"""Auth Meta Route — reports the identity the gateway attached to this request.

Invariants:
    - Never authenticates; echoes the Identity Context only
    - Anonymous callers get user_meta = null (not an error)
"""

from fastapi import APIRouter, Depends

from problemhub.api.identity import get_identity
from problemhub.core.domain_types import Identity

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


@router.get("/self")
async def get_self_meta(identity: Identity = Depends(get_identity)):
    """Metadata of the current caller, or null when anonymous."""
    if identity.is_anonymous:
        return {"user_meta": None}
    return {
        "user_meta": {
            "id": identity.user_id,
            "is_admin": identity.is_admin,
            "group_ids": sorted(identity.group_ids),
        },
    }
