# interview_coach/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from interview_coach.config import settings
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class FastRedisClient:
    """Pooled async Redis client backing the generation rate limiter"""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.url.split("@")[-1][:30])

            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=20,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info("Fast Redis client initialized successfully", max_connections=20)

        except Exception as e:
            logger.error("Failed to initialize fast Redis client", error=str(e))
            self._initialized = False
            self.client = None
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self.client = None
            self._initialized = False
            logger.info("Fast Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def ping(self) -> bool:
        """Test Redis connection"""
        if not self._initialized:
            return False
        try:
            result = await self.client.ping()
            return bool(result)
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False


# Global instance
fast_redis = FastRedisClient()
