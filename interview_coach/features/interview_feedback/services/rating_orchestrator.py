"""
Rating Orchestrator

Drives a transcript from `pending` to `rated` or `error`, invoking the
Analysis Service at most once per transcript.

Order of checks in generate_rating:
    1. exists and not expired          -> NotFoundError
    2. requester owns it               -> ForbiddenError
    3. still pending and unclaimed     -> ConflictError
    4. both speakers present           -> BadRequestError
    5. optional content aggregation
    6. conditional claim               -> ConflictError / NotFoundError when lost
    7. one Analysis Service call
    8. conditional write of the outcome

Nothing before step 6 mutates the record. Steps 7-8 run in a shielded task so
a cancelled request still leaves the record `rated` or `error`.
"""

import asyncio
import dataclasses

from interview_coach.features.interview_feedback.domain import (
    AnalysisServiceError,
    ConflictError,
    ErrorCategory,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    Transcript,
    TranscriptStatus,
    UpstreamError,
)
from interview_coach.features.interview_feedback.services.analysis_service import (
    AnalysisService,
    analysis_service,
)
from interview_coach.features.interview_feedback.services.content_aggregator import (
    ContentAggregator,
    content_aggregator,
)
from interview_coach.features.interview_feedback.services.in_flight import run_to_completion
from interview_coach.features.interview_feedback.services.transcript_store import (
    TranscriptStore,
    transcript_store,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RatingOrchestrator:
    def __init__(
        self,
        store: TranscriptStore = transcript_store,
        aggregator: ContentAggregator = content_aggregator,
        analysis: AnalysisService = analysis_service,
    ):
        self.store = store
        self.aggregator = aggregator
        self.analysis = analysis
        self.in_flight: set[asyncio.Task] = set()

    async def _load_owned(self, transcript_id: str, requester_id: str) -> Transcript:
        transcript = await self.store.load_by_id(transcript_id)
        if transcript is None or self.store.is_expired(transcript):
            raise NotFoundError("Transcript not found or expired")

        if transcript.owner_id != requester_id:
            logger.warning(
                "Transcript access denied",
                transcript_id=transcript_id,
                requester_id=requester_id,
            )
            raise ForbiddenError("You do not have access to this transcript")

        return transcript

    @staticmethod
    def _ensure_generation_open(transcript: Transcript) -> None:
        if transcript.status == TranscriptStatus.RATED:
            raise ConflictError("Rating already generated for this transcript")
        if transcript.status == TranscriptStatus.ERROR:
            raise ConflictError(
                "Rating generation failed for this transcript; submit a new transcript"
            )
        if transcript.generation_claimed_at is not None:
            raise ConflictError("Rating generation already in progress for this transcript")

    async def generate_rating(
        self,
        transcript_id: str,
        requester_id: str,
        include_uploaded_content: bool = False,
    ) -> Transcript:
        """
        Generate and persist the rating for a pending transcript.

        Returns the transcript in its `rated` state.

        Raises:
            NotFoundError, ForbiddenError, ConflictError, BadRequestError:
                validation failures, raised before any mutation
            RateLimitedError: Analysis Service rate limit (persisted as error)
            UpstreamError: any other Analysis Service failure (persisted as error)
        """
        transcript = await self._load_owned(transcript_id, requester_id)
        self._ensure_generation_open(transcript)
        self.store.validate_ratable(transcript)

        aggregated_text = None
        if include_uploaded_content:
            aggregated = await self.aggregator.aggregate(transcript.owner_id)
            aggregated_text = aggregated.text or None
            logger.info(
                "Supplementary content prepared",
                transcript_id=transcript_id,
                files_found=aggregated.metadata.files_found,
                files_used=aggregated.metadata.files_used,
                truncated=aggregated.metadata.truncated,
            )

        claimed = await self.store.claim(transcript_id)
        if claimed is None:
            current = await self.store.load_by_id(transcript_id)
            if current is None or self.store.is_expired(current):
                raise NotFoundError("Transcript not found or expired")
            logger.info("Lost generation claim", transcript_id=transcript_id)
            self._ensure_generation_open(current)
            raise ConflictError("Rating generation already in progress for this transcript")

        logger.info(
            "Rating generation started",
            transcript_id=transcript_id,
            owner_id=claimed.owner_id,
            message_count=len(claimed.messages),
        )

        return await run_to_completion(
            self._analyze_and_record(claimed, aggregated_text), self.in_flight
        )

    async def _analyze_and_record(
        self, claimed: Transcript, aggregated_text: str | None
    ) -> Transcript:
        """Single Analysis Service call for a claimed transcript; always persists an outcome."""
        transcript_id = claimed.id
        try:
            rating = await self.analysis.analyze(
                claimed.messages, claimed.context, aggregated_text
            )
        except AnalysisServiceError as e:
            await self._record_failure(transcript_id, e.category, e.message)
            if e.category == ErrorCategory.RATE_LIMIT:
                raise RateLimitedError(
                    "Analysis service is rate limited; try again later",
                    retry_after=e.retry_after or 60,
                ) from e
            raise UpstreamError(e.message, e.category) from e
        except asyncio.CancelledError:
            await self._record_failure(
                transcript_id, ErrorCategory.UPSTREAM_UNAVAILABLE, "Analysis call cancelled"
            )
            raise
        except Exception as e:
            logger.exception("Unexpected analysis failure", transcript_id=transcript_id)
            await self._record_failure(
                transcript_id, ErrorCategory.UPSTREAM_UNAVAILABLE, f"Unexpected error: {e}"
            )
            raise UpstreamError(
                "Analysis service failed unexpectedly", ErrorCategory.UPSTREAM_UNAVAILABLE
            ) from e

        rated_at = self.store.now()
        if not await self.store.mark_rated(transcript_id, rating, rated_at):
            # Record was purged during the call; the caller still gets the result.
            logger.warning("Rated transcript no longer pending", transcript_id=transcript_id)

        logger.info(
            "Rating generated",
            transcript_id=transcript_id,
            overall_rating=rating.overall_rating,
        )

        return dataclasses.replace(
            claimed, status=TranscriptStatus.RATED, rating=rating, rated_at=rated_at
        )

    async def _record_failure(
        self, transcript_id: str, category: ErrorCategory, message: str
    ) -> None:
        persisted = await self.store.mark_error(transcript_id, category, message)
        logger.warning(
            "Rating generation failed",
            transcript_id=transcript_id,
            error_category=category.value,
            persisted=persisted,
        )

    async def get_rating(self, transcript_id: str, requester_id: str) -> Transcript:
        """
        Return a rated transcript owned by the requester.

        Pending and errored transcripts have no rating to return and read as
        NotFoundError, same as absent or expired ones.
        """
        transcript = await self._load_owned(transcript_id, requester_id)
        if transcript.status != TranscriptStatus.RATED or transcript.rating is None:
            raise NotFoundError("Rating not available for this transcript")
        return transcript


rating_orchestrator = RatingOrchestrator()
