import asyncio

import pytest

from interview_coach.features.interview_feedback.domain import TranscriptMessage
from interview_coach.features.interview_feedback.jobs import expiry_sweep_job as sweep_module
from interview_coach.features.interview_feedback.jobs.expiry_sweep_job import (
    ExpirySweepJob,
    start_transcript_expiry_sweep_scheduler,
)


@pytest.mark.asyncio
async def test_run_sweep_deletes_expired(transcript_store, clock, interview_messages):
    messages = [TranscriptMessage.model_validate(m) for m in interview_messages]
    await transcript_store.create("user-123", messages)
    clock.advance(hours=23)
    kept = await transcript_store.create("user-123", messages)
    clock.advance(hours=1)

    result = await ExpirySweepJob(store=transcript_store).run_sweep()

    assert result["deleted"] == 1
    assert "duration_ms" in result
    assert await transcript_store.load_by_id(kept.id) is not None


@pytest.mark.asyncio
async def test_scheduler_runs_when_api_sweep_disabled(monkeypatch):
    monkeypatch.setattr(sweep_module.settings, "EXPIRY_SWEEP_ENABLED", False)
    runs = []

    class StoppingJob:
        async def run_sweep(self):
            runs.append(1)
            raise asyncio.CancelledError()

    await start_transcript_expiry_sweep_scheduler(job=StoppingJob(), interval_seconds=1)

    assert runs == [1]


@pytest.mark.asyncio
async def test_scheduler_survives_errors_and_stops_on_cancel():
    runs = []

    class FlakyJob:
        async def run_sweep(self):
            runs.append(1)
            if len(runs) == 1:
                raise RuntimeError("database went away")
            return {"deleted": 0, "duration_ms": 0.0}

    task = asyncio.create_task(
        start_transcript_expiry_sweep_scheduler(job=FlakyJob(), interval_seconds=0.01)
    )
    while len(runs) < 3:
        await asyncio.sleep(0.01)
    task.cancel()
    await task

    assert task.done()
    assert len(runs) >= 3
