"""
Translate feedback pipeline exceptions into HTTP errors.
"""

from fastapi import HTTPException, status

from interview_coach.db.helpers import DatabaseError
from interview_coach.features.interview_feedback.domain import (
    BadRequestError,
    ConflictError,
    ErrorCategory,
    FeedbackPipelineError,
    ForbiddenError,
    NotFoundError,
    RateLimitedError,
    UpstreamError,
)
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[FeedbackPipelineError], tuple[int, str]] = {
    NotFoundError: (status.HTTP_404_NOT_FOUND, "not_found"),
    ForbiddenError: (status.HTTP_403_FORBIDDEN, "forbidden"),
    BadRequestError: (status.HTTP_400_BAD_REQUEST, "bad_request"),
    ConflictError: (status.HTTP_409_CONFLICT, "conflict"),
}


def to_http_exception(exc: Exception) -> HTTPException:
    if isinstance(exc, RateLimitedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "analysis_rate_limited",
                "message": exc.message,
                "retry_after": exc.retry_after,
            },
            headers={"Retry-After": str(exc.retry_after)},
        )

    if isinstance(exc, UpstreamError):
        code = (
            status.HTTP_502_BAD_GATEWAY
            if exc.category == ErrorCategory.MALFORMED_OUTPUT
            else status.HTTP_503_SERVICE_UNAVAILABLE
        )
        return HTTPException(
            status_code=code,
            detail={
                "error": "analysis_failed",
                "category": exc.category.value,
                "message": exc.message,
            },
        )

    for error_type, (code, label) in _STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return HTTPException(status_code=code, detail={"error": label, "message": exc.message})

    if isinstance(exc, DatabaseError):
        logger.error("Database error while handling request", operation=exc.operation, error=str(exc))
    else:
        logger.exception("Unhandled feedback pipeline error")

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "internal_error", "message": "Internal server error"},
    )
