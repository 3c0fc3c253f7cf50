"""Initial schema — problems, problem_statements, problem_permissions, problem_files.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _problem_fk() -> sa.Column:
    return sa.Column(
        "problem_id", UUID(as_uuid=True),
        sa.ForeignKey("problems.id", ondelete="CASCADE"), nullable=False,
    )


def upgrade() -> None:
    op.create_table(
        "problems",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("display_id", sa.String(64), nullable=True),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("is_public", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("display_id", name="uq_problems_display_id"),
    )
    op.create_index("ix_problems_owner_id", "problems", ["owner_id"])

    op.create_table(
        "problem_statements",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _problem_fk(),
        sa.Column("locale", sa.String(35), nullable=False),
        sa.Column("title", sa.String(256), nullable=False),
        sa.Column("content_sections", sa.JSON, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("problem_id", "locale", name="uq_problem_statements_problem_locale"),
    )

    op.create_table(
        "problem_permissions",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _problem_fk(),
        sa.Column("principal_type", sa.String(10), nullable=False),
        sa.Column("principal_id", sa.String(64), nullable=False),
        sa.Column("level", sa.String(10), nullable=False),
        sa.UniqueConstraint(
            "problem_id", "principal_type", "principal_id",
            name="uq_problem_permissions_problem_principal",
        ),
    )

    op.create_table(
        "problem_files",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        _problem_fk(),
        sa.Column("file_type", sa.String(20), nullable=False, server_default="additional"),
        sa.Column("filename", sa.String(256), nullable=False),
        sa.Column("size_bytes", sa.BigInteger, nullable=False),
        sa.Column("content_ref", sa.String(64), nullable=False),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint(
            "problem_id", "file_type", "filename",
            name="uq_problem_files_problem_type_filename",
        ),
    )


def downgrade() -> None:
    op.drop_table("problem_files")
    op.drop_table("problem_permissions")
    op.drop_table("problem_statements")
    op.drop_index("ix_problems_owner_id", table_name="problems")
    op.drop_table("problems")
