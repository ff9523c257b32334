"""
Transcript expiry sweep.

Deletes transcripts whose retention window has closed. Reads already treat
such records as gone, so the sweep only reclaims storage and can run late or
be skipped without changing behaviour.

Started from the main.py lifespan when EXPIRY_SWEEP_ENABLED is on:
    asyncio.create_task(start_transcript_expiry_sweep_scheduler())

or as its own process with `interview-coach-worker transcript_expiry_sweep`.
"""

import asyncio
import time

from interview_coach.config import settings
from interview_coach.features.interview_feedback.services.transcript_store import (
    TranscriptStore,
    transcript_store,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class ExpirySweepJob:
    def __init__(self, store: TranscriptStore = transcript_store):
        self.store = store

    async def run_sweep(self) -> dict:
        start = time.time()
        deleted = await self.store.purge_expired()
        duration_ms = round((time.time() - start) * 1000, 2)

        logger.info("Transcript expiry sweep completed", deleted=deleted, duration_ms=duration_ms)
        return {"deleted": deleted, "duration_ms": duration_ms}


async def start_transcript_expiry_sweep_scheduler(
    job: ExpirySweepJob | None = None,
    interval_seconds: int | None = None,
) -> None:
    """
    Run the sweep immediately, then every EXPIRY_SWEEP_INTERVAL_SECONDS.

    EXPIRY_SWEEP_ENABLED only controls whether the API lifespan starts this
    loop; the standalone worker runs it regardless.
    """
    job = job or expiry_sweep_job
    interval = interval_seconds or settings.EXPIRY_SWEEP_INTERVAL_SECONDS

    logger.info("Transcript expiry sweep STARTED", interval_seconds=interval)

    while True:
        try:
            await job.run_sweep()
            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            logger.info("Transcript expiry sweep cancelled")
            break
        except Exception as e:
            logger.error("Error in transcript expiry sweep, will retry", error=str(e))
            await asyncio.sleep(interval)


# Singleton instance for manual triggers
expiry_sweep_job = ExpirySweepJob()
