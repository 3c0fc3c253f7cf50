"""API test fixtures — FastAPI app over the shared test database and blob store.

Invariants:
    - get_db overridden to hand out sessions from the test session factory
    - get_blob_storage overridden to the per-test blob store
    - Overrides cleared after each test

Design Decisions:
    - Lifespan is not run by ASGITransport: nothing touches the real database
      or the configured blob directory
"""

import pytest
from httpx import ASGITransport, AsyncClient

from problemhub.infrastructure.blob_storage import get_blob_storage
from problemhub.infrastructure.database import get_db
from problemhub.main import app


@pytest.fixture
async def client(test_session_factory, blob_store):
    """FastAPI test client with DB and blob dependencies overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_storage] = lambda: blob_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
