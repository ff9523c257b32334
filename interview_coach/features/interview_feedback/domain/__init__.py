"""
Domain subpackage for the interview feedback feature.
"""

from .errors import (
    AnalysisServiceError,
    BadRequestError,
    ConflictError,
    FeedbackPipelineError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
)
from .models import (
    AggregatedContent,
    AggregationMetadata,
    ContentStats,
    DetailedScores,
    ErrorCategory,
    InterviewContext,
    ProcessingFlags,
    ProcessingState,
    Rating,
    Recommendation,
    Session,
    SessionEntry,
    Transcript,
    TranscriptMessage,
    TranscriptStatus,
    UploadedDocument,
    UserProfileSnapshot,
)

__all__ = [
    "AggregatedContent",
    "AggregationMetadata",
    "AnalysisServiceError",
    "BadRequestError",
    "ConflictError",
    "ContentStats",
    "DetailedScores",
    "ErrorCategory",
    "FeedbackPipelineError",
    "ForbiddenError",
    "InterviewContext",
    "NotFoundError",
    "ProcessingFlags",
    "ProcessingState",
    "RateLimitedError",
    "Rating",
    "Recommendation",
    "Session",
    "SessionEntry",
    "Transcript",
    "TranscriptMessage",
    "TranscriptStatus",
    "UpstreamError",
    "UploadedDocument",
    "UserProfileSnapshot",
]
