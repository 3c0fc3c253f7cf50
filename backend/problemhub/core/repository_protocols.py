"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Blob IO accessed through the BlobStorage protocol
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO; pure rules never await
"""

from collections.abc import AsyncIterator
from datetime import datetime
from typing import BinaryIO, Protocol
from uuid import UUID


class ProblemLike(Protocol):
    """Structural contract for Problem objects passed between services.

    Avoids coupling the stores to the ORM model while giving mypy
    real type information (unlike Any).
    """
    id: UUID
    display_id: str | None
    owner_id: str
    is_public: bool
    created_at: datetime


class BlobStorage(Protocol):
    """Contract for attachment byte storage — implemented by infrastructure."""
    async def put(self, source: BinaryIO) -> tuple[str, int]: ...
    def stream(self, content_ref: str) -> AsyncIterator[bytes]: ...
    async def delete(self, content_ref: str) -> None: ...
    async def exists(self, content_ref: str) -> bool: ...
