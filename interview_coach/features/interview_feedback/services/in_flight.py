"""
Detached execution for Analysis Service calls.

Once a record has been claimed, the analysis call and the write of its outcome
run in their own task. Cancelling the request that started it (client
disconnect, middleware teardown) only stops the caller from waiting; the task
still persists `rated`/`error` (or `completed`/`failed` for sessions).

Usage:
    result = await run_to_completion(self._analyze_and_record(claimed), self.in_flight)

On shutdown, main.py waits for whatever is still in `in_flight`.
"""

import asyncio
from collections.abc import Coroutine, Iterable
from typing import Any, TypeVar

from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


async def run_to_completion(
    coro: Coroutine[Any, Any, T], in_flight: set[asyncio.Task]
) -> T:
    """Await `coro` in a shielded task tracked in `in_flight` until it finishes."""
    task = asyncio.create_task(coro)
    in_flight.add(task)

    def _finished(done: asyncio.Task) -> None:
        in_flight.discard(done)
        # Mark the outcome retrieved when the caller stopped waiting
        if not done.cancelled():
            done.exception()

    task.add_done_callback(_finished)
    return await asyncio.shield(task)


async def drain(tasks: Iterable[asyncio.Task], timeout: float) -> None:
    """Wait for detached analysis tasks, cancelling any still running after `timeout`."""
    pending = [t for t in tasks if not t.done()]
    if not pending:
        return

    logger.info("Waiting for in-flight analysis calls", count=len(pending))
    _, still_running = await asyncio.wait(pending, timeout=timeout)

    for task in still_running:
        task.cancel()
    if still_running:
        logger.warning("Cancelled in-flight analysis calls", count=len(still_running))
        await asyncio.wait(still_running)
