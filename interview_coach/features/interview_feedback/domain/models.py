"""
Domain models for the interview feedback feature.

Value objects that cross the HTTP or Analysis Service boundary (messages,
context, ratings) are pydantic models so they validate on the way in and
serialize with camelCase keys on the way out. Persisted records are plain
dataclasses built by the repositories.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

MAX_MESSAGE_CHARS = 5000


class TranscriptStatus(str, Enum):
    PENDING = "pending"
    RATED = "rated"
    ERROR = "error"
    EXPIRED = "expired"


class ErrorCategory(str, Enum):
    """Why an Analysis Service call failed; persisted on the transcript."""

    AUTH = "auth"
    RATE_LIMIT = "rate-limit"
    UPSTREAM_UNAVAILABLE = "upstream-unavailable"
    MALFORMED_OUTPUT = "malformed-output"


class ProcessingState(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Wire value objects
# ---------------------------------------------------------------------------


class TranscriptMessage(CamelModel):
    speaker: Literal["ai", "user"]
    text: str = Field(min_length=1, max_length=MAX_MESSAGE_CHARS)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SessionEntry(CamelModel):
    speaker: Literal["ai", "user", "system"]
    text: str = Field(min_length=1, max_length=MAX_MESSAGE_CHARS)
    timestamp: datetime


class UserProfileSnapshot(CamelModel):
    name: str | None = None
    grade: int | None = Field(default=None, ge=1, le=12)
    target_major: str | None = None
    target_colleges: list[str] = Field(default_factory=list)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class InterviewContext(CamelModel):
    """Opaque to the pipeline; passed through to the Analysis Service."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    difficulty: str | None = None
    interview_type: str | None = None
    duration_minutes: int | None = Field(default=None, ge=0)
    user_profile: UserProfileSnapshot | None = None


class Recommendation(CamelModel):
    area: str
    suggestion: str
    priority: Literal["low", "medium", "high"]
    examples: list[str] | None = None


class DetailedScores(CamelModel):
    content_relevance: float = Field(ge=0, le=100)
    communication: float = Field(ge=0, le=100)
    confidence: float = Field(ge=0, le=100)
    structure: float = Field(ge=0, le=100)
    engagement: float = Field(ge=0, le=100)


class Rating(CamelModel):
    """Structured feedback returned by the Analysis Service."""

    overall_rating: float = Field(ge=1, le=10)
    strengths: list[str]
    weaknesses: list[str]
    recommendations: list[Recommendation]
    detailed_scores: DetailedScores
    summary: str

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class Transcript:
    """Represents an interview_transcripts row."""

    id: str
    owner_id: str
    messages: list[TranscriptMessage]
    context: InterviewContext
    status: TranscriptStatus
    created_at: datetime
    expires_at: datetime
    rating: Rating | None = None
    rated_at: datetime | None = None
    error_category: ErrorCategory | None = None
    error_message: str | None = None
    generation_claimed_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.status == TranscriptStatus.EXPIRED or now >= self.expires_at

    def count_by_speaker(self, speaker: str) -> int:
        return sum(1 for m in self.messages if m.speaker == speaker)


@dataclass(slots=True)
class UploadedDocument:
    """Represents an uploaded_files row (written elsewhere, read-only here)."""

    id: str
    owner_id: str
    name: str
    extracted_text: str | None
    processing_status: str
    uploaded_at: datetime


@dataclass(slots=True)
class AggregationMetadata:
    files_found: int = 0
    files_used: int = 0
    total_available_chars: int = 0
    truncated: bool = False


@dataclass(slots=True)
class AggregatedContent:
    text: str = ""
    metadata: AggregationMetadata = field(default_factory=AggregationMetadata)


@dataclass(slots=True)
class ContentStats:
    file_count: int
    total_words: int
    total_characters: int
    estimated_tokens: int


@dataclass(slots=True)
class ProcessingFlags:
    transcription: ProcessingState = ProcessingState.PENDING
    analysis: ProcessingState = ProcessingState.PENDING
    feedback: ProcessingState = ProcessingState.PENDING


@dataclass(slots=True)
class Session:
    """Represents an interview_sessions row."""

    id: str
    owner_id: str
    interview_id: str
    status: Literal["active", "inactive"]
    processing: ProcessingFlags
    transcript_entries: list[SessionEntry]
    created_at: datetime
    feedback: Rating | None = None
    overall_score: int | None = None
    feedback_generated_at: datetime | None = None
