"""ProblemPermission ORM — one explicit access-control entry on a problem.

Invariants:
    - Always belongs to a Problem (problem_id FK, ON DELETE CASCADE)
    - (problem_id, principal_type, principal_id) is unique
    - level is one of VIEW, EDIT, MANAGE
    - The owner never has a row here (owner MANAGE is computed)
"""

import uuid

from sqlalchemy import String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from problemhub.db.base import Base


class ProblemPermission(Base):
    """Permission entry — grants a user or group a level on a problem."""
    __tablename__ = "problem_permissions"
    __table_args__ = (
        UniqueConstraint(
            "problem_id", "principal_type", "principal_id",
            name="uq_problem_permissions_problem_principal",
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
    principal_type: Mapped[str] = mapped_column(String(10), nullable=False)
    principal_id: Mapped[str] = mapped_column(String(64), nullable=False)
    level: Mapped[str] = mapped_column(String(10), nullable=False)

    # Relationships
    problem: Mapped["Problem"] = relationship(
        "Problem", back_populates="permissions",
    )
