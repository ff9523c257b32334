"""
Rate Limiter - Redis-based request rate limiting.

Guards the two endpoints that call the Analysis Service (transcript rating
and session feedback) with a per-user sliding window.

Design:
- Sliding window algorithm backed by Redis sorted sets
- Atomic Lua script, so concurrent requests cannot both take the last slot
- Fail-open behavior (if Redis is down, allow requests)

Usage:
    from interview_coach.middleware.rate_limiter import rate_limiter

    allowed, info = await rate_limiter.check_rate_limit(
        key="generation:user-123",
        limit=5,
        window_seconds=60,
    )
"""

import time

from interview_coach.config import settings
from interview_coach.infrastructure.observability.logging import get_logger
from interview_coach.services.redis_client import fast_redis

logger = get_logger(__name__)


class RateLimiter:
    """
    Redis-based rate limiter using sliding window algorithm.

    Example:
        If limit is 5 req/min and a user made 5 generation requests at 10:00:00,
        the next one is accepted from 10:01:00 onwards.
    """

    # Returns: {allowed (0 or 1), current_count, oldest_timestamp or 0}
    RATE_LIMIT_LUA_SCRIPT = """
    local key = KEYS[1]
    local limit = tonumber(ARGV[1])
    local window_seconds = tonumber(ARGV[2])
    local current_time = tonumber(ARGV[3])
    local unique_id = ARGV[4]

    local window_start = current_time - window_seconds
    redis.call('ZREMRANGEBYSCORE', key, 0, window_start)

    local current_count = redis.call('ZCARD', key)

    if current_count >= limit then
        local oldest_entries = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
        local oldest_timestamp = 0
        if #oldest_entries > 0 then
            oldest_timestamp = tonumber(oldest_entries[2])
        end
        return {0, current_count, oldest_timestamp}
    end

    redis.call('ZADD', key, current_time, unique_id)
    redis.call('EXPIRE', key, window_seconds * 2)

    return {1, current_count + 1, 0}
    """

    def __init__(
        self,
        redis_client=fast_redis,
        default_limit: int = 5,
        window_seconds: int = 60,
        fail_open: bool = True,
    ):
        """
        Initialize rate limiter.

        Args:
            redis_client: Object exposing an initialized `client` (redis.asyncio.Redis)
            default_limit: Default requests per window
            window_seconds: Time window in seconds
            fail_open: If True, allow requests when Redis fails
        """
        self.redis = redis_client
        self.default_limit = default_limit
        self.window_seconds = window_seconds
        self.fail_open = fail_open

    async def check_rate_limit(
        self,
        key: str,
        limit: int | None = None,
        window_seconds: int | None = None,
    ) -> tuple[bool, dict]:
        """
        Check if rate limit is exceeded for given key.

        Returns:
            Tuple of (allowed, info) where info carries limit, remaining and
            retry_after (seconds, only when rejected).
        """
        limit = limit or self.default_limit
        window_seconds = window_seconds or self.window_seconds

        redis_key = f"ratelimit:{key}"
        current_time = int(time.time())

        try:
            if not self.redis.client:
                logger.warning("Redis not initialized", fail_open=self.fail_open)
                return self._on_failure(limit, "redis_not_initialized")

            unique_id = f"{current_time}:{time.time_ns()}"

            result = await self.redis.client.eval(
                self.RATE_LIMIT_LUA_SCRIPT,
                1,
                redis_key,
                limit,
                window_seconds,
                current_time,
                unique_id,
            )

            allowed = bool(result[0])
            current_count = int(result[1])
            oldest_timestamp = int(result[2]) if result[2] else 0

            if not allowed:
                if oldest_timestamp > 0:
                    retry_after = max(1, (oldest_timestamp + window_seconds) - current_time)
                else:
                    retry_after = window_seconds

                return False, self._create_info_dict(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    retry_after=retry_after,
                    window_seconds=window_seconds,
                )

            return True, self._create_info_dict(
                allowed=True,
                limit=limit,
                remaining=max(0, limit - current_count),
                window_seconds=window_seconds,
            )

        except Exception as e:
            logger.error(
                "Rate limiter Redis error",
                error=str(e),
                error_type=type(e).__name__,
                key=key,
                limit=limit,
            )
            return self._on_failure(limit, "rate_limiter_error")

    async def check_generation_limit(self, user_id: str) -> tuple[bool, dict]:
        """Per-user limit shared by rating and feedback generation."""
        return await self.check_rate_limit(
            key=f"generation:{user_id}",
            limit=settings.RATE_LIMIT_GENERATION_PER_MINUTE,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )

    def _on_failure(self, limit: int, error: str) -> tuple[bool, dict]:
        if self.fail_open:
            return True, self._create_info_dict(
                allowed=True, limit=limit, remaining=limit, error=error
            )
        return False, self._create_info_dict(
            allowed=False,
            limit=limit,
            remaining=0,
            retry_after=self.window_seconds,
            error=error,
        )

    def _create_info_dict(
        self,
        allowed: bool,
        limit: int,
        remaining: int,
        retry_after: int | None = None,
        window_seconds: int | None = None,
        error: str | None = None,
    ) -> dict:
        info = {
            "allowed": allowed,
            "limit": limit,
            "remaining": remaining,
            "retry_after": retry_after,
        }

        if window_seconds is not None:
            info["window_seconds"] = window_seconds

        if error:
            info["error"] = error

        return info


# Global singleton
rate_limiter = RateLimiter(
    default_limit=settings.RATE_LIMIT_GENERATION_PER_MINUTE,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    fail_open=settings.RATE_LIMIT_FAIL_OPEN,
)
