"""File Attachment Ledger — per-problem attachment sets with add/remove/list/stream.

Invariants:
    - filename unique within (problem_id, file_type)
    - add_file never overwrites: a taken name yields DUPLICATE_NAME
    - remove_files reports per-name outcome {removed, not_found}; never raises for
      absent names (idempotent)
    - Blob deletion is deferred to discard_blobs(), called only after commit, so
      a rolled-back transaction never points at a deleted blob
    - Never commits: the Problem Aggregate Service owns the transaction

Design Decisions:
    - Blob written before the row is staged: a failed upload leaves no row behind
    - discard_blobs logs and continues on storage faults (an orphan blob is
      harmless, a half-finished cleanup loop is not)
"""

import logging
from collections.abc import AsyncIterator, Iterable
from datetime import datetime, timezone
from typing import BinaryIO
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from problemhub.core.domain_types import FileType
from problemhub.core.errors import (
    BlobStorageError, BlobTooLargeError, ErrorCode, error_result,
)
from problemhub.core.file_rules import check_filename, partition_removal
from problemhub.core.repository_protocols import BlobStorage
from problemhub.models.problem_file import ProblemFile

logger = logging.getLogger(__name__)


def serialize_file(row: ProblemFile) -> dict:
    return {
        "file_type": row.file_type,
        "filename": row.filename,
        "size_bytes": row.size_bytes,
        "uploaded_at": row.uploaded_at.isoformat(),
    }


class FileLedger:
    """Attachment bookkeeping over the ORM plus a BlobStorage collaborator."""

    def __init__(self, db: AsyncSession, blobs: BlobStorage):
        self.db = db
        self.blobs = blobs

    async def get_file(
        self, problem_id: UUID, file_type: FileType, filename: str,
    ) -> ProblemFile | None:
        result = await self.db.execute(
            select(ProblemFile)
            .where(ProblemFile.problem_id == problem_id)
            .where(ProblemFile.file_type == file_type.value)
            .where(ProblemFile.filename == filename)
        )
        return result.scalar_one_or_none()

    async def add_file(
        self,
        problem_id: UUID,
        file_type: FileType,
        filename: str,
        source: BinaryIO,
    ) -> dict:
        """Store bytes and stage the descriptor row. Returns result dict."""
        error = check_filename(filename)
        if error:
            return error
        if await self.get_file(problem_id, file_type, filename):
            return error_result(
                ErrorCode.DUPLICATE_NAME,
                f"File '{filename}' is already attached; remove it first",
                filename=filename,
            )

        try:
            content_ref, size = await self.blobs.put(source)
        except BlobTooLargeError as e:
            return error_result(
                ErrorCode.VALIDATION, e.message, filename=filename,
            )

        row = ProblemFile(
            problem_id=problem_id,
            file_type=file_type.value,
            filename=filename,
            size_bytes=size,
            content_ref=content_ref,
            uploaded_at=datetime.now(timezone.utc),
        )
        self.db.add(row)
        return {"status": "ok", "file": row}

    async def remove_files(
        self,
        problem_id: UUID,
        file_type: FileType,
        filenames: Iterable[str],
    ) -> dict:
        """Delete descriptor rows; content refs are returned for post-commit cleanup."""
        requested = set(filenames)
        if not requested:
            return {"removed": set(), "not_found": set(), "content_refs": []}

        result = await self.db.execute(
            select(ProblemFile.filename, ProblemFile.content_ref)
            .where(ProblemFile.problem_id == problem_id)
            .where(ProblemFile.file_type == file_type.value)
            .where(ProblemFile.filename.in_(requested))
        )
        existing = dict(result.all())
        removed, not_found = partition_removal(requested, set(existing))
        if removed:
            await self.db.execute(
                delete(ProblemFile)
                .where(ProblemFile.problem_id == problem_id)
                .where(ProblemFile.file_type == file_type.value)
                .where(ProblemFile.filename.in_(removed))
            )
        return {
            "removed": removed,
            "not_found": not_found,
            "content_refs": [existing[name] for name in sorted(removed)],
        }

    async def list_files(
        self, problem_id: UUID, file_type: FileType | None = None,
    ) -> list[ProblemFile]:
        query = (
            select(ProblemFile)
            .where(ProblemFile.problem_id == problem_id)
            .order_by(ProblemFile.file_type, ProblemFile.filename)
        )
        if file_type is not None:
            query = query.where(ProblemFile.file_type == file_type.value)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def has_content(self, row: ProblemFile) -> bool:
        return await self.blobs.exists(row.content_ref)

    def open_stream(self, row: ProblemFile) -> AsyncIterator[bytes]:
        """Chunked content; the blob handle lives only as long as the iteration."""
        return self.blobs.stream(row.content_ref)

    async def delete_all(self, problem_id: UUID) -> list[str]:
        """Drop every descriptor row of the problem; returns refs for cleanup."""
        result = await self.db.execute(
            select(ProblemFile.content_ref)
            .where(ProblemFile.problem_id == problem_id)
        )
        refs = list(result.scalars().all())
        await self.db.execute(
            delete(ProblemFile).where(ProblemFile.problem_id == problem_id)
        )
        return refs

    async def discard_blobs(self, content_refs: Iterable[str]) -> None:
        for ref in content_refs:
            try:
                await self.blobs.delete(ref)
            except BlobStorageError as e:
                logger.error(
                    f"Orphan blob left behind: {e.message}",
                    extra={"error_code": e.code},
                )
