"""Health & Readiness Probes — liveness and readiness endpoints for container orchestration.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if database or blob storage is unavailable (readiness)

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from load balancer
    - Module attributes read at call time: db_manager/blob_storage are set in lifespan
"""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from problemhub.infrastructure import blob_storage as blob_module
from problemhub.infrastructure import database as db_module

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "problemhub-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe — database connectivity and blob storage presence."""
    db_ok = await db_module.db_manager.health_check() if db_module.db_manager else False
    storage = blob_module.blob_storage
    storage_ok = storage is not None and storage.root.is_dir()
    if not (db_ok and storage_ok):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "checks": {
                    "database": "healthy" if db_ok else "unavailable",
                    "blob_storage": "healthy" if storage_ok else "unavailable",
                },
            },
        )
    return {
        "status": "ready",
        "checks": {"database": "healthy", "blob_storage": "healthy"},
    }
