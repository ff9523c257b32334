"""
Exceptions raised by the interview feedback services.

Routers translate these into HTTP responses; see api/errors.py.
"""

from .models import ErrorCategory


class FeedbackPipelineError(Exception):
    """Base class for feedback pipeline failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(FeedbackPipelineError):
    """Record is absent, expired, or has nothing to return yet."""


class ForbiddenError(FeedbackPipelineError):
    """Requester does not own the record."""


class BadRequestError(FeedbackPipelineError):
    """Record is not in a shape that can be analyzed."""


class ConflictError(FeedbackPipelineError):
    """Generation already happened, failed, or is in flight."""


class UpstreamError(FeedbackPipelineError):
    """Analysis Service call failed for a reason other than rate limiting."""

    def __init__(self, message: str, category: ErrorCategory):
        super().__init__(message)
        self.category = category


class RateLimitedError(FeedbackPipelineError):
    """Analysis Service rejected the call with a rate limit."""

    def __init__(self, message: str, retry_after: int = 60):
        super().__init__(message)
        self.category = ErrorCategory.RATE_LIMIT
        self.retry_after = retry_after


class AnalysisServiceError(Exception):
    """Raised by the Analysis Service client with a classified category."""

    def __init__(self, message: str, category: ErrorCategory, retry_after: int | None = None):
        super().__init__(message)
        self.message = message
        self.category = category
        self.retry_after = retry_after
