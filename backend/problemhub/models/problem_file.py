"""ProblemFile ORM — one attachment descriptor; bytes live in blob storage.

Invariants:
    - Always belongs to a Problem (problem_id FK, ON DELETE CASCADE)
    - (problem_id, file_type, filename) is unique
    - content_ref points at a blob written before this row was inserted

Design Decisions:
    - Content referenced, not embedded: rows stay small, downloads stream
      straight from blob storage
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, BigInteger, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from problemhub.db.base import Base


class ProblemFile(Base):
    """Attachment entity — a named file in one of a problem's attachment sets."""
    __tablename__ = "problem_files"
    __table_args__ = (
        UniqueConstraint(
            "problem_id", "file_type", "filename",
            name="uq_problem_files_problem_type_filename",
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
    file_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="additional",
    )
    filename: Mapped[str] = mapped_column(String(256), nullable=False)
    size_bytes: Mapped[int] = mapped_column(BigInteger, nullable=False)
    content_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    problem: Mapped["Problem"] = relationship(
        "Problem", back_populates="files",
    )
