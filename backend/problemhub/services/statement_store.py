"""Locale Statement Store — per-problem mapping locale -> statement.

Invariants:
    - At most one statement per (problem_id, normalized locale)
    - get_all_locales on a problem without statements returns {} (never an error)
    - Never commits: the Problem Aggregate Service owns the transaction
    - Caller already holds EDIT for writes (enforced by the aggregate, not here)

Design Decisions:
    - Locale normalized on every entry point so case variants collide
    - Serialization lives next to the queries that load the rows
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from problemhub.core.locale_rules import normalize_locale
from problemhub.models.problem_statement import ProblemStatement

logger = logging.getLogger(__name__)


def serialize_statement(statement: ProblemStatement) -> dict:
    return {
        "locale": statement.locale,
        "title": statement.title,
        "content_sections": list(statement.content_sections or []),
        "updated_at": statement.updated_at.isoformat(),
    }


class StatementStore:
    """Reads and writes localized statements."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_statement(
        self, problem_id: UUID, locale: str,
    ) -> ProblemStatement | None:
        result = await self.db.execute(
            select(ProblemStatement)
            .where(ProblemStatement.problem_id == problem_id)
            .where(ProblemStatement.locale == normalize_locale(locale))
        )
        return result.scalar_one_or_none()

    async def get_all_locales(
        self, problem_id: UUID,
    ) -> dict[str, ProblemStatement]:
        result = await self.db.execute(
            select(ProblemStatement)
            .where(ProblemStatement.problem_id == problem_id)
            .order_by(ProblemStatement.locale)
        )
        return {s.locale: s for s in result.scalars().all()}

    async def upsert_statement(
        self,
        problem_id: UUID,
        locale: str,
        title: str,
        content_sections: list[dict],
    ) -> ProblemStatement:
        """Insert or replace the statement for one locale."""
        normalized = normalize_locale(locale)
        statement = await self.get_statement(problem_id, normalized)
        now = datetime.now(timezone.utc)
        if statement is None:
            statement = ProblemStatement(
                problem_id=problem_id,
                locale=normalized,
                title=title,
                content_sections=content_sections,
                updated_at=now,
            )
            self.db.add(statement)
        else:
            statement.title = title
            statement.content_sections = content_sections
            statement.updated_at = now
        logger.debug(
            "Statement staged",
            extra={"problem_id": problem_id, "locale": normalized},
        )
        return statement

    async def delete_statement(self, problem_id: UUID, locale: str) -> bool:
        result = await self.db.execute(
            delete(ProblemStatement)
            .where(ProblemStatement.problem_id == problem_id)
            .where(ProblemStatement.locale == normalize_locale(locale))
        )
        return result.rowcount > 0

    async def delete_all(self, problem_id: UUID) -> int:
        result = await self.db.execute(
            delete(ProblemStatement)
            .where(ProblemStatement.problem_id == problem_id)
        )
        return result.rowcount

    async def titles_for(
        self, problem_ids: list[UUID],
    ) -> dict[UUID, dict[str, str]]:
        """Map problem_id -> {locale: title} for a page of problems."""
        if not problem_ids:
            return {}
        result = await self.db.execute(
            select(
                ProblemStatement.problem_id,
                ProblemStatement.locale,
                ProblemStatement.title,
            ).where(ProblemStatement.problem_id.in_(problem_ids))
        )
        titles: dict[UUID, dict[str, str]] = {}
        for problem_id, locale, title in result.all():
            titles.setdefault(problem_id, {})[locale] = title
        return titles
