"""Problem Routes — create, read and update problems.

Invariants:
    - Every handler resolves Identity via get_identity and passes it explicitly
    - Handlers contain no business logic: validate body, call ProblemService,
      render the result through to_response
    - problem_ref accepts a problem id (UUID) or a display id

Design Decisions:
    - PUT for full-replacement writes (display id, visibility, permissions,
      one locale's statement)
"""

from fastapi import APIRouter, Depends, Query, status

from problemhub.api.dependencies import get_problem_service
from problemhub.api.identity import get_identity
from problemhub.api.result_response import to_response
from problemhub.core.domain_types import Identity
from problemhub.schemas.problem import (
    DisplayIdUpdate, PermissionsUpdate, ProblemCreate, PublicUpdate,
    StatementBody,
)
from problemhub.services.problem_service import ProblemService

router = APIRouter(prefix="/api/v1/problems", tags=["problems"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_problem(
    body: ProblemCreate,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Create a private problem owned by the caller."""
    result = await service.create_problem(
        identity,
        display_id=body.display_id,
        statements=[s.to_payload() for s in body.statements],
    )
    return to_response(result, status.HTTP_201_CREATED)


@router.get("")
async def query_problem_set(
    locale: str | None = Query(None, max_length=35),
    skip: int = Query(0, ge=0),
    take: int = Query(20, ge=1),
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """List problems visible to the caller with pagination."""
    result = await service.query_problem_set(
        identity, locale=locale, skip=skip, take=take,
    )
    return to_response(result)


@router.get("/{problem_ref}")
async def get_problem_detail(
    problem_ref: str,
    locale: str | None = Query(None, max_length=35),
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Problem meta and statement in the requested (or fallback) locale."""
    result = await service.get_problem_detail(identity, problem_ref, locale)
    return to_response(result)


@router.delete("/{problem_ref}")
async def delete_problem(
    problem_ref: str,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Delete the problem with all statements, permissions and files."""
    result = await service.delete_problem(identity, problem_ref)
    return to_response(result)


@router.put("/{problem_ref}/display-id")
async def set_display_id(
    problem_ref: str,
    body: DisplayIdUpdate,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.set_display_id(identity, problem_ref, body.display_id)
    return to_response(result)


@router.put("/{problem_ref}/public")
async def set_public(
    problem_ref: str,
    body: PublicUpdate,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.set_public(identity, problem_ref, body.is_public)
    return to_response(result)


@router.get("/{problem_ref}/permissions")
async def get_permissions(
    problem_ref: str,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.get_permissions(identity, problem_ref)
    return to_response(result)


@router.put("/{problem_ref}/permissions")
async def set_permissions(
    problem_ref: str,
    body: PermissionsUpdate,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    """Replace the full permission entry set (owner entry is implicit)."""
    result = await service.set_permissions(
        identity, problem_ref, body.to_grants(),
    )
    return to_response(result)


@router.get("/{problem_ref}/statements")
async def get_statements_all_locales(
    problem_ref: str,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.get_statements_all_locales(identity, problem_ref)
    return to_response(result)


@router.put("/{problem_ref}/statements/{locale}")
async def update_statement(
    problem_ref: str,
    locale: str,
    body: StatementBody,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.update_statement(
        identity, problem_ref, locale, body.title, body.sections_payload(),
    )
    return to_response(result)


@router.delete("/{problem_ref}/statements/{locale}")
async def delete_statement(
    problem_ref: str,
    locale: str,
    identity: Identity = Depends(get_identity),
    service: ProblemService = Depends(get_problem_service),
):
    result = await service.delete_statement(identity, problem_ref, locale)
    return to_response(result)
