"""
Rate Limit Dependencies - per-user throttling for AI generation endpoints.

Usage:
    from interview_coach.middleware.rate_limit_dependencies import rate_limit_generation

    @router.post("/{transcript_id}/rating")
    async def generate(
        ...,
        _rate: None = Depends(rate_limit_generation),
    ):
        ...
"""

from fastapi import Depends, HTTPException, Request, status

from interview_coach.auth.verify import auth_dependency
from interview_coach.config import settings
from interview_coach.infrastructure.observability.logging import get_logger
from interview_coach.middleware.rate_limiter import rate_limiter

logger = get_logger(__name__)


async def rate_limit_generation(
    request: Request,
    claims: dict = Depends(auth_dependency),
) -> None:
    """
    Reject the request with 429 once the user exceeds the generation budget.

    Raises:
        HTTPException: 429 with Retry-After if rate limit exceeded
    """
    if not settings.RATE_LIMIT_ENABLED:
        return

    user_id = claims.get("sub")
    if not user_id:
        logger.warning("Rate limit check skipped - no user_id in claims")
        return

    allowed, info = await rate_limiter.check_generation_limit(user_id)

    request.state.rate_limit_info = info

    if not allowed:
        logger.warning(
            "Generation rate limit exceeded",
            user_id=user_id,
            limit=info["limit"],
            retry_after=info["retry_after"],
            path=request.url.path,
        )

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "rate_limit_exceeded",
                "message": f"Too many requests. Try again in {info['retry_after']} seconds.",
                "limit": info["limit"],
                "retry_after": info["retry_after"],
            },
            headers={"Retry-After": str(info["retry_after"])},
        )
