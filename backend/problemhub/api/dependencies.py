"""Service Providers — FastAPI dependencies wiring services to request resources."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from problemhub.config import get_settings
from problemhub.infrastructure.blob_storage import LocalBlobStorage, get_blob_storage
from problemhub.infrastructure.database import get_db
from problemhub.services.problem_service import ProblemService


async def get_problem_service(
    db: AsyncSession = Depends(get_db),
    blobs: LocalBlobStorage = Depends(get_blob_storage),
) -> ProblemService:
    settings = get_settings()
    return ProblemService(
        db, blobs,
        default_locale=settings.default_locale,
        max_query_take=settings.max_query_take,
    )
