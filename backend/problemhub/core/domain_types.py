"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ProblemId wraps UUID — never use bare UUID in domain logic
    - PermissionLevel is totally ordered: VIEW < EDIT < MANAGE
    - Identity is immutable and carries no behaviour beyond derived flags
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders (ADR: API payloads are JSON)
    - Identity as frozen dataclass: passed explicitly into every service call,
      no ambient current-user lookup (ADR: authorization is a pure function of inputs)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ProblemId = NewType("ProblemId", UUID)
UserId = NewType("UserId", str)
GroupId = NewType("GroupId", str)
ContentRef = NewType("ContentRef", str)

# Width of the owner_id and principal_id columns
MAX_PRINCIPAL_ID_LENGTH = 64


# ─── Enums ───────────────────────────────────────────────────────

class PermissionLevel(str, Enum):
    """Access levels on a problem. MANAGE implies EDIT implies VIEW."""
    VIEW = "VIEW"
    EDIT = "EDIT"
    MANAGE = "MANAGE"

    @property
    def rank(self) -> int:
        return _LEVEL_RANK[self]

    def satisfies(self, required: "PermissionLevel") -> bool:
        return self.rank >= required.rank


_LEVEL_RANK = {
    PermissionLevel.VIEW: 1,
    PermissionLevel.EDIT: 2,
    PermissionLevel.MANAGE: 3,
}


class PrincipalType(str, Enum):
    """Who a permission entry is granted to."""
    USER = "user"
    GROUP = "group"


class FileType(str, Enum):
    """Attachment sets kept per problem — filenames are unique within each set."""
    TESTDATA = "testdata"
    ADDITIONAL = "additional"


class SectionType(str, Enum):
    """Typed blocks making up a localized statement."""
    DESCRIPTION = "description"
    INPUT = "input"
    OUTPUT = "output"
    SAMPLES = "samples"
    NOTES = "notes"


# ─── Value Types ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Identity:
    """Per-request caller identity supplied by the authentication gateway."""
    user_id: str | None = None
    is_admin: bool = False
    group_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None


ANONYMOUS = Identity()


@dataclass(frozen=True)
class PermissionGrant:
    """One (principal → level) pair as supplied to or returned by the registry."""
    principal_type: PrincipalType
    principal_id: str
    level: PermissionLevel
