"""
sessions_router.py
------------------
Purpose:
    HTTP endpoints for live interview sessions.

Usage:
    1. POST /sessions                       - Open a session for an interview
    2. POST /sessions/{id}/transcript       - Append a transcript entry
    3. POST /sessions/{id}/feedback         - Generate feedback for the session
    4. GET  /sessions/{id}/feedback         - Fetch generated feedback
"""

from fastapi import APIRouter, Depends, status

from interview_coach.auth.verify import current_user_id
from interview_coach.db.helpers import DatabaseError
from interview_coach.features.interview_feedback.api.dependencies import get_session_manager
from interview_coach.features.interview_feedback.api.errors import to_http_exception
from interview_coach.features.interview_feedback.api.schemas import (
    AppendEntryRequest,
    CreateSessionRequest,
    FeedbackResponse,
    SessionResponse,
)
from interview_coach.features.interview_feedback.domain import FeedbackPipelineError
from interview_coach.features.interview_feedback.services import SessionManager
from interview_coach.middleware.rate_limit_dependencies import rate_limit_generation

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_session(
    request: CreateSessionRequest,
    user_id: str = Depends(current_user_id),
    manager: SessionManager = Depends(get_session_manager),
):
    """
    Raises:
        409: A session already exists for this interview
    """
    try:
        session = await manager.create_session(user_id, request.interview_id)
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return SessionResponse.from_domain(session)


@router.post("/{session_id}/transcript", response_model=SessionResponse)
async def append_transcript_entry(
    session_id: str,
    request: AppendEntryRequest,
    user_id: str = Depends(current_user_id),
    manager: SessionManager = Depends(get_session_manager),
):
    try:
        session = await manager.append_entry(
            session_id, user_id, request.speaker, request.text, request.timestamp
        )
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return SessionResponse.from_domain(session)


@router.post("/{session_id}/feedback", response_model=FeedbackResponse)
async def generate_session_feedback(
    session_id: str,
    user_id: str = Depends(current_user_id),
    manager: SessionManager = Depends(get_session_manager),
    _rate: None = Depends(rate_limit_generation),
):
    """
    Generate feedback for the session's transcript.

    Raises:
        400: No entries, or no candidate entries
        403: Session belongs to another user
        404: Session not found
        409: Feedback already generated or in progress
        429 / 502 / 503: Analysis Service failure (session can be retried)
    """
    try:
        session = await manager.generate_feedback(session_id, user_id)
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return FeedbackResponse.from_domain(session)


@router.get("/{session_id}/feedback", response_model=FeedbackResponse)
async def get_session_feedback(
    session_id: str,
    user_id: str = Depends(current_user_id),
    manager: SessionManager = Depends(get_session_manager),
):
    try:
        session = await manager.get_feedback(session_id, user_id)
    except (FeedbackPipelineError, DatabaseError) as e:
        raise to_http_exception(e) from e

    return FeedbackResponse.from_domain(session)
