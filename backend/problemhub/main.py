"""ProblemHub API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ProblemHubError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and blob storage initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py (keeps this module's import fan-out small)
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from problemhub.api.error_handlers import register_error_handlers
from problemhub.infrastructure import database as db_module
from problemhub.infrastructure.blob_storage import init_blob_storage
from problemhub.infrastructure.observability import setup_logging
from problemhub.config import get_settings
from problemhub.api.routes import auth, health, problems, problem_files

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db_module.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_blob_storage(
        settings.blob_storage_dir,
        chunk_size=settings.download_chunk_size,
        max_size_bytes=settings.max_file_size_bytes,
    )
    logger.info("ProblemHub API started")
    yield
    if db_module.db_manager:
        await db_module.db_manager.dispose()
    logger.info("ProblemHub API shutting down")


app = FastAPI(
    title="ProblemHub API", version="1.0.0", lifespan=lifespan,
)

# CORS: origins come from settings
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes: explicit registration
app.include_router(health.router)
app.include_router(auth.router)
app.include_router(problems.router)
app.include_router(problem_files.router)

register_error_handlers(app)
