"""Problem Aggregate Service — one authorization gate per operation over the three stores.

Invariants:
    - Every operation takes an explicit Identity and returns a result dict:
      {"status": "ok", ...} or {"status": "error", "error_code": ..., "message": ...}
    - The Permission Registry is consulted BEFORE any other store is touched
    - Failing the gate yields FORBIDDEN, except get_problem_detail which yields
      NOT_FOUND (existence of private problems is never leaked there)
    - This service is the sole writer: it owns commit/rollback for every mutation
    - IntegrityError on commit is mapped to DISPLAY_ID_CONFLICT / DUPLICATE_NAME;
      no raw storage fault crosses this boundary
    - Blobs are deleted only after the commit that dropped their rows

Design Decisions:
    - Stores are plain classes sharing the request's AsyncSession: one transaction
      per operation without a unit-of-work abstraction
    - ORM attributes read before rollback: rollback expires instances and a lazy
      refresh would need IO outside the awaited call
    - Identifier resolution in _resolve(): UUID-shaped refs are problem ids only,
      anything else is a display id
"""

import logging
from collections.abc import Iterable
from typing import BinaryIO
from urllib.parse import quote
from uuid import UUID, uuid4

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from problemhub.core.display_id_rules import check_display_id, parse_problem_ref
from problemhub.core.domain_types import (
    MAX_PRINCIPAL_ID_LENGTH, FileType, Identity, PermissionGrant,
    PermissionLevel, PrincipalType,
)
from problemhub.core.errors import (
    BlobStorageError, ErrorCode, ErrorContext, error_result, is_error,
)
from problemhub.core.locale_rules import (
    check_locale, normalize_locale, resolve_result_locale,
)
from problemhub.core.permission_rules import has_level
from problemhub.core.repository_protocols import BlobStorage
from problemhub.core.statement_rules import validate_statement
from problemhub.models.problem import Problem
from problemhub.models.problem_permission import ProblemPermission
from problemhub.services.file_ledger import FileLedger, serialize_file
from problemhub.services.permission_registry import PermissionRegistry
from problemhub.services.statement_store import StatementStore, serialize_statement

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/problems"


def serialize_problem(problem: Problem) -> dict:
    return {
        "id": str(problem.id),
        "display_id": problem.display_id,
        "is_public": problem.is_public,
        "created_at": problem.created_at.isoformat(),
    }


def _not_found(ref) -> dict:
    return error_result(
        ErrorCode.NOT_FOUND, f"Problem '{ref}' not found", problem=str(ref),
    )


class ProblemService:
    """Orchestrates statements, permissions and attachments behind one gate."""

    def __init__(
        self,
        db: AsyncSession,
        blobs: BlobStorage,
        default_locale: str = "en",
        max_query_take: int = 100,
    ):
        self.db = db
        self.statements = StatementStore(db)
        self.permissions = PermissionRegistry(db)
        self.files = FileLedger(db, blobs)
        self.default_locale = default_locale
        self.max_query_take = max_query_take

    # ─── Resolution & gate ───────────────────────────────────────

    async def _resolve(self, ref: str | UUID) -> Problem | None:
        if isinstance(ref, UUID):
            problem_id, display_id = ref, None
        else:
            problem_id, display_id = parse_problem_ref(ref)
        if problem_id is not None:
            query = select(Problem).where(Problem.id == problem_id)
        else:
            query = select(Problem).where(Problem.display_id == display_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def _authorize(
        self,
        identity: Identity,
        ref: str | UUID,
        required: PermissionLevel,
        hide_existence: bool = False,
    ) -> tuple[Problem | None, PermissionLevel | None, dict | None]:
        """Resolve the problem and check the actor's level. Third item is the error."""
        problem = await self._resolve(ref)
        if problem is None:
            return None, None, _not_found(ref)
        level = await self.permissions.effective_level(problem, identity)
        if has_level(level, required):
            return problem, level, None

        logger.info(
            f"Access denied: {required.value} required, holds "
            f"{level.value if level else 'nothing'}",
            extra={"problem_id": problem.id, "user_id": identity.user_id},
        )
        if hide_existence:
            return None, None, _not_found(ref)
        return None, None, error_result(
            ErrorCode.FORBIDDEN,
            f"{required.value} permission required",
            problem=str(ref),
            required=required.value,
        )

    # ─── Problems ────────────────────────────────────────────────

    async def create_problem(
        self,
        identity: Identity,
        display_id: str | None = None,
        statements: Iterable[dict] = (),
    ) -> dict:
        """Create a private problem owned by the caller, with optional statements."""
        if identity.is_anonymous:
            return error_result(
                ErrorCode.FORBIDDEN, "Creating problems requires a logged-in user",
            )
        if len(identity.user_id) > MAX_PRINCIPAL_ID_LENGTH:
            return error_result(
                ErrorCode.VALIDATION,
                f"Owner id exceeds {MAX_PRINCIPAL_ID_LENGTH} characters",
                field="user_id",
            )
        error = check_display_id(display_id)
        if error:
            return error

        statements = list(statements)
        seen_locales: set[str] = set()
        for statement in statements:
            error = validate_statement(
                statement.get("locale"), statement.get("title"),
                statement.get("content_sections", []),
            )
            if error:
                return error
            locale = normalize_locale(statement["locale"])
            if locale in seen_locales:
                return error_result(
                    ErrorCode.VALIDATION,
                    f"Locale '{locale}' given more than once",
                    field="locale",
                )
            seen_locales.add(locale)

        if display_id is not None and await self._display_id_taken(display_id):
            return self._display_id_conflict(display_id)

        problem = Problem(
            id=uuid4(), owner_id=identity.user_id,
            display_id=display_id, is_public=False,
        )
        self.db.add(problem)
        try:
            await self.db.flush()
            for statement in statements:
                await self.statements.upsert_statement(
                    problem.id, statement["locale"], statement["title"],
                    statement.get("content_sections", []),
                )
            payload = serialize_problem(problem)
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return self._display_id_conflict(display_id)

        logger.info(
            "Problem created",
            extra={"problem_id": payload["id"], "user_id": identity.user_id},
        )
        return {"status": "ok", "problem": payload}

    async def query_problem_set(
        self,
        identity: Identity,
        locale: str | None = None,
        skip: int = 0,
        take: int = 20,
    ) -> dict:
        """Page through problems the caller can VIEW; public ones always included."""
        if skip < 0 or take < 1 or take > self.max_query_take:
            return error_result(
                ErrorCode.VALIDATION,
                f"skip must be >= 0 and take between 1 and {self.max_query_take}",
                field="take",
            )

        visible = self._visibility_clause(identity)
        count_query = select(func.count()).select_from(Problem)
        page_query = select(Problem).order_by(Problem.created_at, Problem.id)
        if visible is not None:
            count_query = count_query.where(visible)
            page_query = page_query.where(visible)

        total = (await self.db.execute(count_query)).scalar_one()
        result = await self.db.execute(page_query.offset(skip).limit(take))
        problems = list(result.scalars().all())
        titles = await self.statements.titles_for([p.id for p in problems])

        items = []
        for problem in problems:
            by_locale = titles.get(problem.id, {})
            result_locale = resolve_result_locale(
                list(by_locale), locale, self.default_locale,
            )
            items.append({
                **serialize_problem(problem),
                "title": by_locale.get(result_locale) if result_locale else None,
                "result_locale": result_locale,
                "locales": sorted(by_locale),
            })
        return {"status": "ok", "count": total, "problems": items}

    def _visibility_clause(self, identity: Identity):
        if identity.is_admin and not identity.is_anonymous:
            return None
        if identity.is_anonymous:
            return Problem.is_public.is_(True)
        principal_match = and_(
            ProblemPermission.principal_type == PrincipalType.USER.value,
            ProblemPermission.principal_id == identity.user_id,
        )
        if identity.group_ids:
            principal_match = or_(
                principal_match,
                and_(
                    ProblemPermission.principal_type == PrincipalType.GROUP.value,
                    ProblemPermission.principal_id.in_(sorted(identity.group_ids)),
                ),
            )
        shared = exists().where(
            ProblemPermission.problem_id == Problem.id,
        ).where(principal_match)
        return or_(
            Problem.is_public.is_(True),
            Problem.owner_id == identity.user_id,
            shared,
        )

    async def get_problem_detail(
        self,
        identity: Identity,
        ref: str | UUID,
        locale: str | None = None,
    ) -> dict:
        """Problem meta plus the statement in the best matching locale."""
        problem, level, error = await self._authorize(
            identity, ref, PermissionLevel.VIEW, hide_existence=True,
        )
        if error:
            return error

        statements = await self.statements.get_all_locales(problem.id)
        result_locale = resolve_result_locale(
            list(statements), locale, self.default_locale,
        )
        if result_locale is None:
            return error_result(
                ErrorCode.NOT_FOUND,
                f"Problem '{ref}' has no statement",
                problem=str(ref),
            )

        statement = statements[result_locale]
        detail = {
            "status": "ok",
            "problem": serialize_problem(problem),
            "permission_level": level.value,
            "result_locale": result_locale,
            "locales": sorted(statements),
            "title": statement.title,
            "content_sections": list(statement.content_sections or []),
            "updated_at": statement.updated_at.isoformat(),
        }
        if level == PermissionLevel.MANAGE:
            detail["owner_id"] = problem.owner_id
            detail["permissions"] = await self.permissions.get_permissions(problem)
        return detail

    async def delete_problem(self, identity: Identity, ref: str | UUID) -> dict:
        """Remove the problem with every statement, entry, attachment and blob."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.MANAGE,
        )
        if error:
            return error

        problem_id = problem.id
        content_refs = await self.files.delete_all(problem_id)
        await self.statements.delete_all(problem_id)
        await self.permissions.delete_all(problem_id)
        await self.db.delete(problem)
        await self.db.commit()
        await self.files.discard_blobs(content_refs)

        logger.info(
            f"Problem deleted with {len(content_refs)} attachment(s)",
            extra={"problem_id": problem_id, "user_id": identity.user_id},
        )
        return {
            "status": "ok",
            "problem_id": str(problem_id),
            "removed_files": len(content_refs),
        }

    # ─── Display id & visibility ─────────────────────────────────

    async def _display_id_taken(
        self, display_id: str, exclude: UUID | None = None,
    ) -> bool:
        query = select(Problem.id).where(Problem.display_id == display_id)
        if exclude is not None:
            query = query.where(Problem.id != exclude)
        result = await self.db.execute(query)
        return result.first() is not None

    @staticmethod
    def _display_id_conflict(display_id: str | None) -> dict:
        return error_result(
            ErrorCode.DISPLAY_ID_CONFLICT,
            f"Display id '{display_id}' is already used by another problem",
            display_id=display_id,
        )

    async def set_display_id(
        self, identity: Identity, ref: str | UUID, display_id: str | None,
    ) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.MANAGE,
        )
        if error:
            return error
        error = check_display_id(display_id)
        if error:
            return error

        if problem.display_id == display_id:
            return {"status": "ok", "problem": serialize_problem(problem)}
        if display_id is not None and await self._display_id_taken(
            display_id, exclude=problem.id,
        ):
            return self._display_id_conflict(display_id)

        problem.display_id = display_id
        payload = serialize_problem(problem)
        try:
            await self.db.commit()
        except IntegrityError:
            # Lost the race against a concurrent claim of the same value
            await self.db.rollback()
            return self._display_id_conflict(display_id)

        logger.info(
            f"Display id set to {display_id!r}",
            extra={"problem_id": payload["id"], "user_id": identity.user_id},
        )
        return {"status": "ok", "problem": payload}

    async def set_public(
        self, identity: Identity, ref: str | UUID, is_public: bool,
    ) -> dict:
        """Toggle visibility; explicit permission entries are left untouched."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.MANAGE,
        )
        if error:
            return error
        problem.is_public = is_public
        payload = serialize_problem(problem)
        await self.db.commit()
        logger.info(
            f"Problem visibility set to {'public' if is_public else 'private'}",
            extra={"problem_id": payload["id"], "user_id": identity.user_id},
        )
        return {"status": "ok", "problem": payload}

    # ─── Permissions ─────────────────────────────────────────────

    async def set_permissions(
        self,
        identity: Identity,
        ref: str | UUID,
        grants: Iterable[PermissionGrant],
    ) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.MANAGE,
        )
        if error:
            return error
        result = await self.permissions.set_permissions(problem, identity, grants)
        if is_error(result):
            await self.db.rollback()
            return result
        await self.db.commit()
        return {
            "status": "ok",
            "permissions": await self.permissions.get_permissions(problem),
        }

    async def get_permissions(self, identity: Identity, ref: str | UUID) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.MANAGE,
        )
        if error:
            return error
        return {
            "status": "ok",
            "permissions": await self.permissions.get_permissions(problem),
        }

    # ─── Statements ──────────────────────────────────────────────

    async def update_statement(
        self,
        identity: Identity,
        ref: str | UUID,
        locale: str,
        title: str,
        content_sections: list[dict],
    ) -> dict:
        """Upsert the statement of one locale."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.EDIT,
        )
        if error:
            return error
        error = validate_statement(locale, title, content_sections)
        if error:
            return error

        problem_id = problem.id
        statement = await self.statements.upsert_statement(
            problem_id, locale, title, content_sections,
        )
        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent insert created the locale first; apply ours as an update
            await self.db.rollback()
            statement = await self.statements.upsert_statement(
                problem_id, locale, title, content_sections,
            )
            await self.db.commit()

        logger.info(
            "Statement updated",
            extra={
                "problem_id": problem_id, "user_id": identity.user_id,
                "locale": statement.locale,
            },
        )
        return {"status": "ok", "statement": serialize_statement(statement)}

    async def delete_statement(
        self, identity: Identity, ref: str | UUID, locale: str,
    ) -> dict:
        """Remove one locale; the last remaining locale cannot be removed."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.EDIT,
        )
        if error:
            return error
        error = check_locale(locale)
        if error:
            return error

        normalized = normalize_locale(locale)
        statements = await self.statements.get_all_locales(problem.id)
        if normalized not in statements:
            return error_result(
                ErrorCode.NOT_FOUND,
                f"Locale '{normalized}' not found",
                locale=normalized,
            )
        if len(statements) == 1:
            return error_result(
                ErrorCode.VALIDATION,
                "A problem must keep at least one statement",
                locale=normalized,
            )
        await self.statements.delete_statement(problem.id, normalized)
        await self.db.commit()
        return {
            "status": "ok",
            "locales": sorted(set(statements) - {normalized}),
        }

    async def get_statements_all_locales(
        self, identity: Identity, ref: str | UUID,
    ) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.VIEW,
        )
        if error:
            return error
        statements = await self.statements.get_all_locales(problem.id)
        return {
            "status": "ok",
            "statements": {
                locale: serialize_statement(s) for locale, s in statements.items()
            },
        }

    # ─── Files ───────────────────────────────────────────────────

    async def add_problem_file(
        self,
        identity: Identity,
        ref: str | UUID,
        file_type: FileType,
        filename: str,
        source: BinaryIO,
    ) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.EDIT,
        )
        if error:
            return error

        problem_id = problem.id
        result = await self.files.add_file(problem_id, file_type, filename, source)
        if is_error(result):
            return result
        row = result["file"]
        descriptor = serialize_file(row)
        content_ref = row.content_ref
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            await self.files.discard_blobs([content_ref])
            return error_result(
                ErrorCode.DUPLICATE_NAME,
                f"File '{filename}' is already attached; remove it first",
                filename=filename,
            )

        logger.info(
            f"File attached ({descriptor['size_bytes']} bytes)",
            extra={
                "problem_id": problem_id, "user_id": identity.user_id,
                "file_name": filename, "file_type": file_type.value,
            },
        )
        return {"status": "ok", "file": descriptor}

    async def remove_problem_files(
        self,
        identity: Identity,
        ref: str | UUID,
        file_type: FileType,
        filenames: Iterable[str],
    ) -> dict:
        """Remove by name; absent names are reported in not_found, not failed."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.EDIT,
        )
        if error:
            return error

        problem_id = problem.id
        outcome = await self.files.remove_files(problem_id, file_type, filenames)
        await self.db.commit()
        await self.files.discard_blobs(outcome["content_refs"])

        if outcome["removed"]:
            logger.info(
                f"Removed {len(outcome['removed'])} file(s)",
                extra={
                    "problem_id": problem_id, "user_id": identity.user_id,
                    "file_type": file_type.value,
                },
            )
        return {
            "status": "ok",
            "removed": sorted(outcome["removed"]),
            "not_found": sorted(outcome["not_found"]),
        }

    async def list_problem_files(
        self,
        identity: Identity,
        ref: str | UUID,
        file_type: FileType | None = None,
    ) -> dict:
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.VIEW,
        )
        if error:
            return error
        rows = await self.files.list_files(problem.id, file_type)
        return {"status": "ok", "files": [serialize_file(r) for r in rows]}

    async def download_problem_files(
        self,
        identity: Identity,
        ref: str | UUID,
        file_type: FileType,
        filenames: Iterable[str],
    ) -> dict:
        """Download descriptors (with streaming paths) for the requested names."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.VIEW,
        )
        if error:
            return error

        requested = sorted(set(filenames))
        by_name = {
            r.filename: r for r in await self.files.list_files(problem.id, file_type)
        }
        downloads = [
            {
                **serialize_file(by_name[name]),
                "download_path": (
                    f"{API_PREFIX}/{problem.id}/files/{file_type.value}/"
                    f"{quote(name, safe='')}"
                ),
            }
            for name in requested if name in by_name
        ]
        return {
            "status": "ok",
            "files": downloads,
            "not_found": [name for name in requested if name not in by_name],
        }

    async def open_problem_file(
        self,
        identity: Identity,
        ref: str | UUID,
        file_type: FileType,
        filename: str,
    ) -> dict:
        """Descriptor plus a chunk stream; nothing is read until iteration starts."""
        problem, _, error = await self._authorize(
            identity, ref, PermissionLevel.VIEW,
        )
        if error:
            return error
        row = await self.files.get_file(problem.id, file_type, filename)
        if row is None:
            return error_result(
                ErrorCode.NOT_FOUND,
                f"File '{filename}' not found",
                filename=filename,
            )
        if not await self.files.has_content(row):
            raise BlobStorageError(
                f"content of '{filename}' is missing", "read",
                ErrorContext(problem_id=str(problem.id), user_id=identity.user_id),
            )
        return {
            "status": "ok",
            "file": serialize_file(row),
            "stream": self.files.open_stream(row),
        }
