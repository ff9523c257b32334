"""
Transcript Store

Lifecycle and persistence rules for interview transcripts:

    pending -> rated | error      (via the Rating Orchestrator)
    * -> expired                  (time-driven; now >= expires_at)

Expiry is evaluated on read against the injected clock, so a record is
unavailable the moment its window closes even if the sweep has not run yet.
"""

import uuid
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from interview_coach.config import settings
from interview_coach.features.interview_feedback.domain import (
    BadRequestError,
    ErrorCategory,
    InterviewContext,
    Rating,
    Transcript,
    TranscriptMessage,
    TranscriptStatus,
)
from interview_coach.features.interview_feedback.repository.transcript_repository import (
    TranscriptRepository,
    transcript_repository,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class TranscriptStore:
    def __init__(
        self,
        repository: TranscriptRepository = transcript_repository,
        clock: Clock = utc_now,
        retention: timedelta | None = None,
    ):
        self.repository = repository
        self.clock = clock
        self.retention = retention or timedelta(hours=settings.TRANSCRIPT_RETENTION_HOURS)

    def now(self) -> datetime:
        return self.clock()

    async def create(
        self,
        owner_id: str,
        messages: list[TranscriptMessage],
        context: InterviewContext | None = None,
    ) -> Transcript:
        if not messages:
            raise BadRequestError("Transcript must contain at least one message")

        created_at = self.now()
        transcript = Transcript(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            messages=list(messages),
            context=context or InterviewContext(),
            status=TranscriptStatus.PENDING,
            created_at=created_at,
            expires_at=created_at + self.retention,
        )

        stored = await self.repository.insert(transcript)

        logger.info(
            "Transcript created",
            transcript_id=stored.id,
            owner_id=owner_id,
            message_count=len(stored.messages),
            expires_at=stored.expires_at.isoformat(),
        )
        return stored

    async def load_by_id(self, transcript_id: str) -> Transcript | None:
        return await self.repository.get(transcript_id)

    async def list_for_owner(self, owner_id: str, limit: int = 50) -> list[Transcript]:
        return await self.repository.list_for_owner(owner_id, self.now(), limit)

    def is_expired(self, transcript: Transcript) -> bool:
        return transcript.is_expired(self.now())

    @staticmethod
    def validate_ratable(transcript: Transcript) -> None:
        """Both sides of the conversation must be present."""
        speakers = {m.speaker for m in transcript.messages}
        if "ai" not in speakers or "user" not in speakers:
            raise BadRequestError(
                "Transcript needs at least one interviewer and one candidate message"
            )

    async def claim(self, transcript_id: str) -> Transcript | None:
        """Conditional pending+unclaimed+unexpired claim; None when it was lost."""
        return await self.repository.claim(transcript_id, self.now())

    async def mark_rated(
        self, transcript_id: str, rating: Rating, rated_at: datetime | None = None
    ) -> bool:
        return await self.repository.mark_rated(transcript_id, rating, rated_at or self.now())

    async def mark_error(self, transcript_id: str, category: ErrorCategory, message: str) -> bool:
        return await self.repository.mark_error(transcript_id, category, message)

    async def purge_expired(self) -> int:
        """Delete every record whose retention window has closed, whatever its status."""
        deleted = await self.repository.delete_expired(self.now())
        if deleted:
            logger.info("Purged expired transcripts", deleted=deleted)
        return deleted


transcript_store = TranscriptStore()
