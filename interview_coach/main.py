"""
Interview coach API application.
"""

import asyncio
import contextlib
from contextlib import asynccontextmanager

from fastapi import FastAPI

from interview_coach.config import settings
from interview_coach.db.pool import db_pool
from interview_coach.features.interview_feedback import (
    content_router,
    rating_orchestrator,
    session_manager,
    sessions_router,
    start_transcript_expiry_sweep_scheduler,
    transcripts_router,
)
from interview_coach.features.interview_feedback.services.in_flight import drain
from interview_coach.infrastructure.observability.logging import get_logger, setup_logging
from interview_coach.middleware.request_context import RequestContextMiddleware
from interview_coach.routes import health
from interview_coach.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""

    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    # Database pool is required
    await db_pool.initialize()
    startup_tasks.append("database_pool")

    # Redis only backs the rate limiter, which fails open
    if settings.RATE_LIMIT_ENABLED:
        try:
            await fast_redis.initialize()
            startup_tasks.append("redis")
        except RuntimeError as e:
            logger.warning("Redis unavailable, rate limiter degraded", error=str(e))

    sweep_task = None
    if settings.EXPIRY_SWEEP_ENABLED:
        sweep_task = asyncio.create_task(start_transcript_expiry_sweep_scheduler())
        startup_tasks.append("expiry_sweep")
    else:
        logger.info("Transcript expiry sweep left to the worker process")

    logger.info("All services initialized successfully", services=startup_tasks)

    yield

    logger.info("Application shutting down")

    shutdown_errors = []

    if sweep_task:
        sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweep_task

    # Let claimed analysis calls persist their outcome before the pool closes
    await drain(
        rating_orchestrator.in_flight | session_manager.in_flight,
        timeout=settings.ANALYSIS_TIMEOUT_SECONDS,
    )

    try:
        await fast_redis.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))
        shutdown_errors.append(f"Redis: {e}")

    try:
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Interview Coach",
    description="Mock interview transcripts, AI ratings and session feedback",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(RequestContextMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(transcripts_router)
app.include_router(content_router)
app.include_router(sessions_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
