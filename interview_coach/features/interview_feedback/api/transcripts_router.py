"""
transcripts_router.py
---------------------
Purpose:
    HTTP endpoints for interview transcripts and their AI ratings.

Usage:
    1. POST /transcripts                 - Submit a finished mock interview
    2. GET  /transcripts                 - List the caller's live transcripts
    3. POST /transcripts/{id}/rating     - Generate the rating (once per transcript)
    4. GET  /transcripts/{id}/rating     - Fetch a generated rating
    5. GET  /content/summary             - Stats on uploaded documents usable as context
"""

from fastapi import APIRouter, Depends, Query, status

from interview_coach.auth.verify import current_user_id
from interview_coach.db.helpers import DatabaseError
from interview_coach.features.interview_feedback.api.dependencies import (
    get_content_aggregator,
    get_rating_orchestrator,
    get_transcript_store,
)
from interview_coach.features.interview_feedback.api.errors import to_http_exception
from interview_coach.features.interview_feedback.api.schemas import (
    ContentSummaryResponse,
    CreateTranscriptRequest,
    GenerateRatingRequest,
    RatingResponse,
    TranscriptCreatedResponse,
    TranscriptListResponse,
    TranscriptSummary,
)
from interview_coach.features.interview_feedback.domain import FeedbackPipelineError
from interview_coach.features.interview_feedback.services import (
    ContentAggregator,
    RatingOrchestrator,
    TranscriptStore,
)
from interview_coach.middleware.rate_limit_dependencies import rate_limit_generation

router = APIRouter(prefix="/transcripts", tags=["transcripts"])
content_router = APIRouter(prefix="/content", tags=["content"])


@router.post("", response_model=TranscriptCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_transcript(
    request: CreateTranscriptRequest,
    user_id: str = Depends(current_user_id),
    store: TranscriptStore = Depends(get_transcript_store),
):
    """
    Store a completed interview transcript in `pending` state.

    Raises:
        422: No messages, a message over 5000 characters, or an unknown speaker
    """
    try:
        transcript = await store.create(user_id, request.messages, request.context)
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return TranscriptCreatedResponse.from_domain(transcript)


@router.get("", response_model=TranscriptListResponse)
async def list_transcripts(
    limit: int = Query(default=20, ge=1, le=100),
    user_id: str = Depends(current_user_id),
    store: TranscriptStore = Depends(get_transcript_store),
):
    """List the caller's unexpired transcripts, newest first."""
    try:
        transcripts = await store.list_for_owner(user_id, limit=limit)
    except DatabaseError as e:
        raise to_http_exception(e) from e

    summaries = [TranscriptSummary.from_domain(t) for t in transcripts]
    return TranscriptListResponse(transcripts=summaries, count=len(summaries))


@router.post("/{transcript_id}/rating", response_model=RatingResponse)
async def generate_rating(
    transcript_id: str,
    body: GenerateRatingRequest | None = None,
    user_id: str = Depends(current_user_id),
    orchestrator: RatingOrchestrator = Depends(get_rating_orchestrator),
    _rate: None = Depends(rate_limit_generation),
):
    """
    Generate the AI rating for a pending transcript.

    Raises:
        400: Transcript lacks interviewer or candidate messages
        403: Transcript belongs to another user
        404: Transcript absent or expired
        409: Already rated, failed earlier, or generation in progress
        429: Generation rate limit, or Analysis Service rate limit (Retry-After set)
        502: Analysis Service returned unusable output
        503: Analysis Service unavailable or misconfigured
    """
    include_uploaded_content = body.include_uploaded_content if body else False

    try:
        transcript = await orchestrator.generate_rating(
            transcript_id, user_id, include_uploaded_content=include_uploaded_content
        )
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return RatingResponse.from_domain(transcript)


@router.get("/{transcript_id}/rating", response_model=RatingResponse)
async def get_rating(
    transcript_id: str,
    user_id: str = Depends(current_user_id),
    orchestrator: RatingOrchestrator = Depends(get_rating_orchestrator),
):
    """
    Fetch a previously generated rating.

    Raises:
        403: Transcript belongs to another user
        404: Transcript absent, expired, or not rated
    """
    try:
        transcript = await orchestrator.get_rating(transcript_id, user_id)
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return RatingResponse.from_domain(transcript)


@content_router.get("/summary", response_model=ContentSummaryResponse)
async def content_summary(
    user_id: str = Depends(current_user_id),
    aggregator: ContentAggregator = Depends(get_content_aggregator),
):
    """Document statistics plus what an aggregation at the default budget would use."""
    try:
        stats = await aggregator.content_stats(user_id)
        aggregated = await aggregator.aggregate(user_id)
    except DatabaseError as e:
        raise to_http_exception(e) from e

    return ContentSummaryResponse.from_domain(
        stats, aggregated, token_budget=aggregator.default_token_budget
    )

