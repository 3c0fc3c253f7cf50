"""Problem ORM — persists the aggregate root for statements, permissions and files.

Invariants:
    - id is UUID primary key, immutable once assigned
    - display_id is optional and globally unique (unique constraint, NULLs allowed)
    - owner_id is the authenticated user who created the problem
    - is_public defaults to False

Design Decisions:
    - display_id uniqueness enforced by the database: the compare-and-set for
      set_display_id is the constraint itself, the service pre-check only
      produces a friendlier error
    - cascade delete for statements, permissions and files (ORM + FK level)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from problemhub.db.base import Base


class Problem(Base):
    """Problem aggregate root — owns statements, permission entries and attachments."""
    __tablename__ = "problems"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    display_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True,
    )
    owner_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    is_public: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    statements: Mapped[list["ProblemStatement"]] = relationship(
        "ProblemStatement", back_populates="problem",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    permissions: Mapped[list["ProblemPermission"]] = relationship(
        "ProblemPermission", back_populates="problem",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    files: Mapped[list["ProblemFile"]] = relationship(
        "ProblemFile", back_populates="problem",
        cascade="all, delete-orphan", passive_deletes=True,
    )
