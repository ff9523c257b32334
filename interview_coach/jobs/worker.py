"""
Generic background worker runner.

Reads the desired job name from CLI args or the WORKER_JOB environment
variable and delegates to the appropriate scheduler. Lets the expiry sweep
run as its own process when EXPIRY_SWEEP_ENABLED is off for the API.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from interview_coach.config import settings
from interview_coach.db.pool import db_pool
from interview_coach.features.interview_feedback.jobs.expiry_sweep_job import (
    expiry_sweep_job,
    start_transcript_expiry_sweep_scheduler,
)
from interview_coach.infrastructure.observability.logging import get_logger, setup_logging

logger = get_logger(__name__)

JobCoroutine = Callable[[], Awaitable[None]]


async def run_transcript_expiry_sweep_once() -> None:
    await expiry_sweep_job.run_sweep()


JOB_REGISTRY: dict[str, JobCoroutine] = {
    "transcript_expiry_sweep": start_transcript_expiry_sweep_scheduler,
    "transcript_expiry_sweep_once": run_transcript_expiry_sweep_once,
}


def _resolve_job_name() -> str:
    """Pick the target job from CLI args or WORKER_JOB env variable."""
    if len(sys.argv) > 1:
        return sys.argv[1].strip().lower()
    return os.getenv("WORKER_JOB", "transcript_expiry_sweep").strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    """Run the requested background job with its own database pool."""
    name = (job_name or _resolve_job_name()).strip().lower()
    if name not in JOB_REGISTRY:
        raise ValueError(
            f"Unknown worker job '{name}'. "
            f"Available jobs: {', '.join(sorted(JOB_REGISTRY.keys()))}"
        )

    logger.info("Starting background worker", job=name)
    await db_pool.initialize()
    try:
        await JOB_REGISTRY[name]()
    finally:
        await db_pool.close()


def main() -> None:
    """CLI entrypoint."""
    setup_logging(log_level=settings.LOG_LEVEL)
    job_name = _resolve_job_name()
    asyncio.run(run_worker(job_name))


if __name__ == "__main__":
    main()
