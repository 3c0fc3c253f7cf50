"""Display ID Rules — validation and identifier resolution policy.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - A display id is a single URL path segment ([A-Za-z0-9][A-Za-z0-9._-]*)
    - A display id never parses as a UUID, so the problem_id and display_id
      namespaces never overlap
    - parse_problem_ref tries problem_id first; display_id only when the value
      is not a valid problem_id

Design Decisions:
    - Reject UUID-shaped display ids up-front instead of resolving ambiguity at
      read time (ADR: problem_id match always preferred, so such an alias
      could never be reached)
"""

import re
from uuid import UUID

from problemhub.core.errors import ErrorCode, error_result

MAX_DISPLAY_ID_LENGTH = 64

# One path segment: starts with an alphanumeric, then letters, digits, ".", "_", "-"
DISPLAY_ID_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


def parse_problem_id(value: str) -> UUID | None:
    try:
        return UUID(value)
    except (ValueError, AttributeError, TypeError):
        return None


def parse_problem_ref(ref: str) -> tuple[UUID | None, str | None]:
    """Split an identifier into (problem_id, display_id) — exactly one is set."""
    problem_id = parse_problem_id(ref)
    if problem_id is not None:
        return problem_id, None
    return None, ref


def check_display_id(display_id: str | None) -> dict | None:
    """None clears the alias; anything else must be a usable, non-UUID string."""
    if display_id is None:
        return None
    if not display_id.strip():
        return error_result(
            ErrorCode.VALIDATION, "Display id must not be empty",
            field="display_id",
        )
    if display_id != display_id.strip():
        return error_result(
            ErrorCode.VALIDATION,
            "Display id must not have leading or trailing whitespace",
            field="display_id",
        )
    if len(display_id) > MAX_DISPLAY_ID_LENGTH:
        return error_result(
            ErrorCode.VALIDATION,
            f"Display id exceeds {MAX_DISPLAY_ID_LENGTH} characters",
            field="display_id",
        )
    if not DISPLAY_ID_PATTERN.match(display_id):
        return error_result(
            ErrorCode.VALIDATION,
            "Display id may only contain letters, digits, '.', '_' and '-'"
            " and must start with a letter or digit",
            field="display_id",
        )
    if parse_problem_id(display_id) is not None:
        return error_result(
            ErrorCode.VALIDATION,
            "Display id must not look like a problem id",
            field="display_id",
        )
    return None
