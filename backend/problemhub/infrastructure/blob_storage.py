"""Local Blob Storage — attachment bytes on disk, addressed by content_ref.

Invariants:
    - content_ref is a random UUID hex; callers never choose blob paths
    - put() is atomic: bytes land in a temp file that is renamed into place,
      so a partially written blob is never visible under its content_ref
    - stream() holds its file handle only while iterating and always releases
      it (exhaustion, aclose(), or task cancellation)
    - delete() is idempotent
    - All OSError faults mapped to BlobStorageError (core/errors.py)

Design Decisions:
    - Two-level fan-out directory (ab/abcdef...): keeps directories small
    - Blocking file IO pushed to a worker thread with asyncio.to_thread
    - Singleton blob_storage initialized on startup, mirroring db_manager
"""

import asyncio
import logging
import os
import shutil
import tempfile
import uuid
from collections.abc import AsyncIterator
from pathlib import Path
from typing import BinaryIO

from problemhub.core.errors import BlobStorageError, BlobTooLargeError

logger = logging.getLogger(__name__)

_COPY_BUFFER_SIZE = 1024 * 1024


class LocalBlobStorage:
    """Filesystem-backed blob store for problem attachments."""

    def __init__(
        self,
        root: str | Path,
        chunk_size: int = 64 * 1024,
        max_size_bytes: int | None = None,
    ):
        self.root = Path(root).expanduser().resolve()
        self.chunk_size = chunk_size
        self.max_size_bytes = max_size_bytes
        self.open_handles = 0
        self.root.mkdir(parents=True, exist_ok=True)

    def _path_for(self, content_ref: str) -> Path:
        if not content_ref or not content_ref.isalnum():
            raise BlobStorageError(f"invalid content ref '{content_ref}'", "resolve")
        return self.root / content_ref[:2] / content_ref

    def _write(self, source: BinaryIO) -> tuple[str, int]:
        content_ref = uuid.uuid4().hex
        target = self._path_for(content_ref)
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
        size = 0
        try:
            with os.fdopen(fd, "wb") as out:
                while True:
                    chunk = source.read(_COPY_BUFFER_SIZE)
                    if not chunk:
                        break
                    size += len(chunk)
                    if self.max_size_bytes is not None and size > self.max_size_bytes:
                        raise BlobTooLargeError(self.max_size_bytes)
                    out.write(chunk)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return content_ref, size

    async def put(self, source: BinaryIO) -> tuple[str, int]:
        """Store the stream's bytes; returns (content_ref, size_bytes)."""
        try:
            content_ref, size = await asyncio.to_thread(self._write, source)
        except OSError as e:
            logger.error(f"Blob write failed: {e}")
            raise BlobStorageError(str(e), "write")
        logger.debug(f"Stored blob {content_ref} ({size} bytes)")
        return content_ref, size

    async def stream(self, content_ref: str) -> AsyncIterator[bytes]:
        """Yield the blob in chunk_size pieces; the handle is scoped to iteration."""
        path = self._path_for(content_ref)
        try:
            handle = await asyncio.to_thread(open, path, "rb")
        except OSError as e:
            logger.error(f"Blob open failed for {content_ref}: {e}")
            raise BlobStorageError(str(e), "read")
        self.open_handles += 1
        try:
            while True:
                chunk = await asyncio.to_thread(handle.read, self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            handle.close()
            self.open_handles -= 1

    async def delete(self, content_ref: str) -> None:
        path = self._path_for(content_ref)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            logger.error(f"Blob delete failed for {content_ref}: {e}")
            raise BlobStorageError(str(e), "delete")

    async def exists(self, content_ref: str) -> bool:
        return await asyncio.to_thread(self._path_for(content_ref).is_file)

    def disk_usage(self) -> int:
        """Free bytes on the blob volume (for readiness reporting)."""
        return shutil.disk_usage(self.root).free


# Singleton (initialized on startup)
blob_storage: LocalBlobStorage | None = None


def init_blob_storage(root: str | Path, **kwargs) -> LocalBlobStorage:
    global blob_storage
    blob_storage = LocalBlobStorage(root, **kwargs)
    return blob_storage


def get_blob_storage() -> LocalBlobStorage:
    """FastAPI dependency for the blob store."""
    if not blob_storage:
        raise RuntimeError("Blob storage not initialized")
    return blob_storage
