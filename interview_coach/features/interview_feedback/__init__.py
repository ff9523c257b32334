"""
Interview feedback feature package.

This vertical slice keeps every layer of the transcript rating and session
feedback flow co-located (domain models, repositories, services, jobs and
API routers).
"""

# Re-export the primary building blocks for easy access.
from .api.sessions_router import router as sessions_router  # noqa: F401
from .api.transcripts_router import content_router  # noqa: F401
from .api.transcripts_router import router as transcripts_router  # noqa: F401
from .jobs.expiry_sweep_job import start_transcript_expiry_sweep_scheduler  # noqa: F401
from .services.rating_orchestrator import RatingOrchestrator, rating_orchestrator  # noqa: F401
from .services.session_manager import SessionManager, session_manager  # noqa: F401
