"""
FastAPI providers for the feedback services, overridable in tests via
app.dependency_overrides.
"""

from interview_coach.features.interview_feedback.services.content_aggregator import (
    ContentAggregator,
    content_aggregator,
)
from interview_coach.features.interview_feedback.services.rating_orchestrator import (
    RatingOrchestrator,
    rating_orchestrator,
)
from interview_coach.features.interview_feedback.services.session_manager import (
    SessionManager,
    session_manager,
)
from interview_coach.features.interview_feedback.services.transcript_store import (
    TranscriptStore,
    transcript_store,
)


def get_transcript_store() -> TranscriptStore:
    return transcript_store


def get_rating_orchestrator() -> RatingOrchestrator:
    return rating_orchestrator


def get_content_aggregator() -> ContentAggregator:
    return content_aggregator


def get_session_manager() -> SessionManager:
    return session_manager
