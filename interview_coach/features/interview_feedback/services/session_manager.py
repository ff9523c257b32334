"""
Session Lifecycle Manager

Live interview sessions accumulate transcript entries and later request
feedback. Each processing flag only moves forward
(pending -> processing -> completed); `failed` is the one step back and lets
the user try feedback generation again.
"""

import asyncio
import dataclasses
import uuid
from datetime import datetime

from pydantic import ValidationError

from interview_coach.features.interview_feedback.domain import (
    AnalysisServiceError,
    BadRequestError,
    ConflictError,
    ErrorCategory,
    ForbiddenError,
    InterviewContext,
    NotFoundError,
    ProcessingFlags,
    ProcessingState,
    RateLimitedError,
    Session,
    SessionEntry,
    UpstreamError,
)
from interview_coach.features.interview_feedback.repository.session_repository import (
    SessionRepository,
    session_repository,
)
from interview_coach.features.interview_feedback.services.analysis_service import (
    AnalysisService,
    analysis_service,
)
from interview_coach.features.interview_feedback.services.in_flight import run_to_completion
from interview_coach.features.interview_feedback.services.transcript_store import (
    Clock,
    utc_now,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


def overall_score_from(overall_rating: float) -> int:
    """1-10 rating to a 0-100 score."""
    return max(0, min(100, round(overall_rating * 10)))


class SessionManager:
    def __init__(
        self,
        repository: SessionRepository = session_repository,
        analysis: AnalysisService = analysis_service,
        clock: Clock = utc_now,
    ):
        self.repository = repository
        self.analysis = analysis
        self.clock = clock
        self.in_flight: set[asyncio.Task] = set()

    async def _load_owned(self, session_id: str, requester_id: str) -> Session:
        session = await self.repository.get(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        if session.owner_id != requester_id:
            logger.warning("Session access denied", session_id=session_id, requester_id=requester_id)
            raise ForbiddenError("You do not have access to this session")
        return session

    async def create_session(self, owner_id: str, interview_id: str) -> Session:
        session = Session(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            interview_id=interview_id,
            status="active",
            processing=ProcessingFlags(),
            transcript_entries=[],
            created_at=self.clock(),
        )

        stored = await self.repository.insert(session)
        if stored is None:
            raise ConflictError("A session already exists for this interview")

        logger.info("Session created", session_id=stored.id, interview_id=interview_id)
        return stored

    async def append_entry(
        self,
        session_id: str,
        requester_id: str,
        speaker: str,
        text: str,
        timestamp: datetime | None = None,
    ) -> Session:
        await self._load_owned(session_id, requester_id)

        try:
            entry = SessionEntry(speaker=speaker, text=text, timestamp=timestamp or self.clock())
        except ValidationError as e:
            raise BadRequestError(f"Invalid transcript entry: {e.errors()[0]['msg']}") from e

        if not await self.repository.append_entry(session_id, entry, self.clock()):
            raise NotFoundError("Session not found")

        updated = await self.repository.get(session_id)
        if updated is None:
            raise NotFoundError("Session not found")

        logger.debug(
            "Session entry appended",
            session_id=session_id,
            speaker=speaker,
            entry_count=len(updated.transcript_entries),
        )
        return updated

    async def generate_feedback(self, session_id: str, requester_id: str) -> Session:
        """
        Generate feedback for a session's transcript entries.

        Raises:
            NotFoundError, ForbiddenError: missing or foreign session
            ConflictError: feedback already completed or in progress
            BadRequestError: no entries, or no candidate entry
            RateLimitedError, UpstreamError: Analysis Service failure (flag set to failed)
        """
        session = await self._load_owned(session_id, requester_id)

        if session.processing.feedback == ProcessingState.COMPLETED:
            raise ConflictError("Feedback already generated for this session")
        if session.processing.feedback == ProcessingState.PROCESSING:
            raise ConflictError("Feedback generation already in progress for this session")

        if not session.transcript_entries:
            raise BadRequestError("Session has no transcript entries")
        if not any(e.speaker == "user" for e in session.transcript_entries):
            raise BadRequestError("Session has no candidate responses to analyze")

        claimed = await self.repository.claim_feedback(session_id, self.clock())
        if claimed is None:
            raise ConflictError("Feedback generation already in progress for this session")

        logger.info(
            "Session feedback generation started",
            session_id=session_id,
            entry_count=len(claimed.transcript_entries),
        )

        return await run_to_completion(self._analyze_and_record(claimed), self.in_flight)

    async def _analyze_and_record(self, claimed: Session) -> Session:
        session_id = claimed.id
        try:
            rating = await self.analysis.analyze(claimed.transcript_entries, InterviewContext())
        except AnalysisServiceError as e:
            await self.repository.fail_feedback(session_id, self.clock())
            logger.warning(
                "Session feedback generation failed",
                session_id=session_id,
                error_category=e.category.value,
            )
            if e.category == ErrorCategory.RATE_LIMIT:
                raise RateLimitedError(
                    "Analysis service is rate limited; try again later",
                    retry_after=e.retry_after or 60,
                ) from e
            raise UpstreamError(e.message, e.category) from e
        except asyncio.CancelledError:
            await self.repository.fail_feedback(session_id, self.clock())
            logger.warning("Session feedback generation cancelled", session_id=session_id)
            raise
        except Exception as e:
            logger.exception("Unexpected session feedback failure", session_id=session_id)
            await self.repository.fail_feedback(session_id, self.clock())
            raise UpstreamError(
                "Analysis service failed unexpectedly", ErrorCategory.UPSTREAM_UNAVAILABLE
            ) from e

        generated_at = self.clock()
        score = overall_score_from(rating.overall_rating)
        if not await self.repository.complete_feedback(session_id, rating, score, generated_at):
            logger.warning("Session feedback no longer processing", session_id=session_id)

        logger.info("Session feedback generated", session_id=session_id, overall_score=score)

        return dataclasses.replace(
            claimed,
            processing=ProcessingFlags(
                transcription=claimed.processing.transcription,
                analysis=ProcessingState.COMPLETED,
                feedback=ProcessingState.COMPLETED,
            ),
            feedback=rating,
            overall_score=score,
            feedback_generated_at=generated_at,
        )

    async def get_feedback(self, session_id: str, requester_id: str) -> Session:
        session = await self._load_owned(session_id, requester_id)
        if session.processing.feedback != ProcessingState.COMPLETED or session.feedback is None:
            raise NotFoundError("Feedback not available for this session")
        return session


session_manager = SessionManager()
