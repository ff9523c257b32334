"""
Request and response models for the interview feedback API.

All bodies use camelCase keys on the wire; snake_case is accepted on input.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field

from interview_coach.features.interview_feedback.domain import (
    AggregatedContent,
    ContentStats,
    InterviewContext,
    Rating,
    Session,
    Transcript,
    TranscriptMessage,
)
from interview_coach.features.interview_feedback.domain.models import (
    MAX_MESSAGE_CHARS,
    CamelModel,
)

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CreateTranscriptRequest(CamelModel):
    messages: list[TranscriptMessage] = Field(min_length=1)
    context: InterviewContext | None = None


class GenerateRatingRequest(CamelModel):
    include_uploaded_content: bool = False


class CreateSessionRequest(CamelModel):
    interview_id: str = Field(min_length=1, max_length=200)


class AppendEntryRequest(CamelModel):
    speaker: Literal["ai", "user", "system"]
    text: str = Field(min_length=1, max_length=MAX_MESSAGE_CHARS)
    timestamp: datetime | None = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class TranscriptCreatedResponse(CamelModel):
    transcript_id: str
    status: str
    message_count: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_domain(cls, transcript: Transcript) -> "TranscriptCreatedResponse":
        return cls(
            transcript_id=transcript.id,
            status=transcript.status.value,
            message_count=len(transcript.messages),
            created_at=transcript.created_at,
            expires_at=transcript.expires_at,
        )


class TranscriptSummary(CamelModel):
    transcript_id: str
    status: str
    message_count: int
    interview_type: str | None
    difficulty: str | None
    overall_rating: float | None
    created_at: datetime
    rated_at: datetime | None
    expires_at: datetime

    @classmethod
    def from_domain(cls, transcript: Transcript) -> "TranscriptSummary":
        return cls(
            transcript_id=transcript.id,
            status=transcript.status.value,
            message_count=len(transcript.messages),
            interview_type=transcript.context.interview_type,
            difficulty=transcript.context.difficulty,
            overall_rating=transcript.rating.overall_rating if transcript.rating else None,
            created_at=transcript.created_at,
            rated_at=transcript.rated_at,
            expires_at=transcript.expires_at,
        )


class TranscriptListResponse(CamelModel):
    transcripts: list[TranscriptSummary]
    count: int


class RatingMetadata(CamelModel):
    message_count: int
    user_message_count: int
    ai_message_count: int
    interview_type: str | None
    difficulty: str | None
    context: dict[str, Any]
    created_at: datetime
    expires_at: datetime


class RatingResponse(CamelModel):
    transcript_id: str
    status: Literal["rated"] = "rated"
    rating: Rating
    rated_at: datetime
    metadata: RatingMetadata

    @classmethod
    def from_domain(cls, transcript: Transcript) -> "RatingResponse":
        return cls(
            transcript_id=transcript.id,
            rating=transcript.rating,
            rated_at=transcript.rated_at,
            metadata=RatingMetadata(
                message_count=len(transcript.messages),
                user_message_count=transcript.count_by_speaker("user"),
                ai_message_count=transcript.count_by_speaker("ai"),
                interview_type=transcript.context.interview_type,
                difficulty=transcript.context.difficulty,
                context=transcript.context.model_dump(by_alias=True, mode="json", exclude_none=True),
                created_at=transcript.created_at,
                expires_at=transcript.expires_at,
            ),
        )


class AggregationSummary(CamelModel):
    files_found: int
    files_used: int
    total_available_chars: int
    truncated: bool


class ContentSummaryResponse(CamelModel):
    file_count: int
    total_words: int
    total_characters: int
    estimated_tokens: int
    token_budget: int
    aggregation: AggregationSummary

    @classmethod
    def from_domain(
        cls, stats: ContentStats, aggregated: AggregatedContent, token_budget: int
    ) -> "ContentSummaryResponse":
        meta = aggregated.metadata
        return cls(
            file_count=stats.file_count,
            total_words=stats.total_words,
            total_characters=stats.total_characters,
            estimated_tokens=stats.estimated_tokens,
            token_budget=token_budget,
            aggregation=AggregationSummary(
                files_found=meta.files_found,
                files_used=meta.files_used,
                total_available_chars=meta.total_available_chars,
                truncated=meta.truncated,
            ),
        )


class ProcessingStatusResponse(CamelModel):
    transcription: str
    analysis: str
    feedback: str


class SessionResponse(CamelModel):
    session_id: str
    interview_id: str
    status: str
    processing_status: ProcessingStatusResponse
    entry_count: int
    overall_score: int | None
    created_at: datetime

    @classmethod
    def from_domain(cls, session: Session) -> "SessionResponse":
        return cls(
            session_id=session.id,
            interview_id=session.interview_id,
            status=session.status,
            processing_status=_processing(session),
            entry_count=len(session.transcript_entries),
            overall_score=session.overall_score,
            created_at=session.created_at,
        )


class FeedbackResponse(CamelModel):
    session_id: str
    feedback: Rating
    overall_score: int
    feedback_generated_at: datetime
    processing_status: ProcessingStatusResponse

    @classmethod
    def from_domain(cls, session: Session) -> "FeedbackResponse":
        return cls(
            session_id=session.id,
            feedback=session.feedback,
            overall_score=session.overall_score,
            feedback_generated_at=session.feedback_generated_at,
            processing_status=_processing(session),
        )


def _processing(session: Session) -> ProcessingStatusResponse:
    return ProcessingStatusResponse(
        transcription=session.processing.transcription.value,
        analysis=session.processing.analysis.value,
        feedback=session.processing.feedback.value,
    )
