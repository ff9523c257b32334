# interview_coach/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter

from interview_coach.config import settings
from interview_coach.db.pool import db_health_check
from interview_coach.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "interview-coach"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check: database pool, Redis, and required configuration.

    Redis only gates readiness when the rate limiter is configured to fail closed.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        if "pool_stats" in db_health:
            pool_stats = db_health["pool_stats"]
            checks["database"].update(
                {
                    "pool_size": pool_stats.get("pool_size", 0),
                    "pool_available": pool_stats.get("pool_available", 0),
                    "pool_utilization_percent": pool_stats.get("pool_utilization_percent", 0),
                }
            )

        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]

        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Redis (rate limiter backend)
    if settings.RATE_LIMIT_ENABLED:
        t0 = time.time()
        redis_ok = await fast_redis.ping()
        required = not settings.RATE_LIMIT_FAIL_OPEN
        checks["redis"] = {
            "ok": redis_ok,
            "required": required,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if required:
            overall_ok = overall_ok and redis_ok

    # 3) Configuration
    config_issues = []

    if not settings.OPENAI_API_KEY:
        config_issues.append("OPENAI_API_KEY not set")

    if not settings.JWT_SECRET and not settings.JWT_JWKS_URL:
        config_issues.append("JWT_SECRET or JWT_JWKS_URL must be set")

    config_ok = not config_issues
    checks["configuration"] = {
        "ok": config_ok,
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and config_ok

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
