"""Problem Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - Locale codes match the same pattern the core enforces
    - Titles 1-256 chars, stripped, non-empty
    - Only `samples` sections carry sample pairs
    - PermissionsUpdate converts to core PermissionGrant values (schemas never reach the DB)

Design Decisions:
    - Enums from core/domain_types for typed fields: one source of truth for valid values
    - field_validator for side-effect-free transforms (strip) — keeps models pure
    - The services re-validate: they are callable without the HTTP layer
"""

from pydantic import BaseModel, Field, field_validator, model_validator

from problemhub.core.domain_types import (
    MAX_PRINCIPAL_ID_LENGTH, PermissionGrant, PermissionLevel, PrincipalType,
    SectionType,
)

LOCALE_PATTERN = r"^[A-Za-z]{2,3}(-[A-Za-z0-9]{2,8})*$"


class Sample(BaseModel):
    """One sample input/output pair."""
    input: str = Field(max_length=100_000)
    output: str = Field(max_length=100_000)


class ContentSection(BaseModel):
    """Typed statement block."""
    type: SectionType
    title: str | None = Field(None, max_length=256)
    text: str | None = Field(None, max_length=200_000)
    samples: list[Sample] | None = None

    @model_validator(mode="after")
    def validate_samples_placement(self):
        if self.samples and self.type != SectionType.SAMPLES:
            raise ValueError("only samples sections may carry samples")
        return self


class StatementBody(BaseModel):
    """Title plus ordered sections of one locale."""
    title: str = Field(min_length=1, max_length=256)
    content_sections: list[ContentSection] = Field(default_factory=list, max_length=64)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title cannot be empty or whitespace")
        return v

    def sections_payload(self) -> list[dict]:
        return [
            s.model_dump(mode="json", exclude_none=True)
            for s in self.content_sections
        ]


class StatementInput(StatementBody):
    """Statement supplied at creation time, locale included."""
    locale: str = Field(pattern=LOCALE_PATTERN, max_length=35)

    def to_payload(self) -> dict:
        return {
            "locale": self.locale,
            "title": self.title,
            "content_sections": self.sections_payload(),
        }


class ProblemCreate(BaseModel):
    """Problem creation — optional alias and initial statements."""
    display_id: str | None = Field(None, max_length=64)
    statements: list[StatementInput] = Field(default_factory=list, max_length=32)


class DisplayIdUpdate(BaseModel):
    """New display id; null clears it."""
    display_id: str | None = Field(None, max_length=64)


class PublicUpdate(BaseModel):
    is_public: bool


class PermissionEntry(BaseModel):
    """One principal -> level grant."""
    principal_type: PrincipalType
    principal_id: str = Field(min_length=1, max_length=MAX_PRINCIPAL_ID_LENGTH)
    level: PermissionLevel

    def to_grant(self) -> PermissionGrant:
        return PermissionGrant(
            principal_type=self.principal_type,
            principal_id=self.principal_id,
            level=self.level,
        )


class PermissionsUpdate(BaseModel):
    """Full replacement of a problem's permission entries."""
    entries: list[PermissionEntry] = Field(default_factory=list, max_length=1000)

    def to_grants(self) -> list[PermissionGrant]:
        return [e.to_grant() for e in self.entries]
