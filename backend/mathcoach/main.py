"""MathCoach API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map MathCoachError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and background job queue initialized via the lifespan context manager;
      queued jobs are drained before the database pool is disposed

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py to keep this module's import fan-out small
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mathcoach.api.error_handlers import register_error_handlers
from mathcoach.api.routes import (
    behaviors, health, history, identity, problems, reports, sessions, users,
)
from mathcoach.config import get_settings
from mathcoach.infrastructure.background import init_job_queue, shutdown_job_queue
from mathcoach.infrastructure.database import init_db
from mathcoach.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    init_job_queue(
        workers=settings.background_workers,
        max_attempts=settings.background_max_attempts,
        retry_delay=settings.background_retry_delay_seconds,
        max_size=settings.background_queue_size,
    )
    logger.info("MathCoach API started")
    yield
    logger.info("MathCoach API shutting down")
    await shutdown_job_queue()
    await manager.dispose()


app = FastAPI(title="MathCoach API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(identity.router)
app.include_router(problems.router)
app.include_router(sessions.router)
app.include_router(history.router)
app.include_router(users.router)
app.include_router(reports.router)
app.include_router(behaviors.router)

register_error_handlers(app)
