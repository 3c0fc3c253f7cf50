"""ProblemStatement ORM — one localized statement of a problem.

Invariants:
    - Always belongs to a Problem (problem_id FK, ON DELETE CASCADE)
    - (problem_id, locale) is unique; locale stored lower-cased
    - content_sections is an ordered JSON list of typed blocks

Design Decisions:
    - JSON for content_sections: sections are read and written as a whole,
      never queried individually
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime, JSON, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from problemhub.db.base import Base


class ProblemStatement(Base):
    """Localized statement — title plus content sections for one locale."""
    __tablename__ = "problem_statements"
    __table_args__ = (
        UniqueConstraint(
            "problem_id", "locale", name="uq_problem_statements_problem_locale",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    problem_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("problems.id", ondelete="CASCADE"),
        nullable=False,
    )
    locale: Mapped[str] = mapped_column(String(35), nullable=False)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content_sections: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    problem: Mapped["Problem"] = relationship(
        "Problem", back_populates="statements",
    )
