"""
Service layer for the interview feedback feature.

Only the classes are exported here; module-level singletons are imported from
their own modules (e.g. `services.rating_orchestrator.rating_orchestrator`).
"""

from .analysis_service import AnalysisService
from .content_aggregator import ContentAggregator
from .rating_orchestrator import RatingOrchestrator
from .session_manager import SessionManager
from .transcript_store import TranscriptStore

__all__ = [
    "AnalysisService",
    "ContentAggregator",
    "RatingOrchestrator",
    "SessionManager",
    "TranscriptStore",
]
