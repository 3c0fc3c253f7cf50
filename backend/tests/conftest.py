"""Root conftest — shared test configuration and fixtures.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - Every test gets its own blob directory under tmp_path

Design Decisions:
    - SQLite in-memory with StaticPool: every session sees the same database
      (ADR: PostgreSQL-specific locking is not exercised here)
"""

import os

# Ensure tests never reach a real database
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///test.db")

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from problemhub.db.base import Base  # noqa: E402
from problemhub.infrastructure.blob_storage import LocalBlobStorage  # noqa: E402
from problemhub.services.problem_service import ProblemService  # noqa: E402
import problemhub.models  # noqa: E402,F401


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def blob_store(tmp_path):
    return LocalBlobStorage(tmp_path / "blobs", chunk_size=4, max_size_bytes=1024)


@pytest.fixture
def service(test_db, blob_store):
    return ProblemService(test_db, blob_store, default_locale="en")
