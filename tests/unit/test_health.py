"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from interview_coach.main import app

client = TestClient(app)

HEALTHY_DB = {
    "healthy": True,
    "pool_stats": {"pool_size": 5, "pool_available": 4, "pool_utilization_percent": 20.0},
}


def _patches(db=HEALTHY_DB, redis_ok=True, openai_key="sk-test", jwt_secret="test-secret"):
    return (
        patch("interview_coach.routes.health.db_health_check", AsyncMock(return_value=db)),
        patch("interview_coach.routes.health.fast_redis.ping", AsyncMock(return_value=redis_ok)),
        patch("interview_coach.routes.health.settings.OPENAI_API_KEY", openai_key),
        patch("interview_coach.routes.health.settings.JWT_SECRET", jwt_secret),
        patch("interview_coach.routes.health.settings.RATE_LIMIT_ENABLED", True),
    )


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ok"


def test_readyz_endpoint_all_services_healthy():
    db, redis, key, secret, enabled = _patches()
    with db, redis, key, secret, enabled:
        response = client.get("/readyz")

    assert response.status_code == 200
    data = response.json()
    assert data["overall_ok"] is True
    checks = data["checks"]
    assert checks["database"]["ok"] is True
    assert checks["database"]["pool_size"] == 5
    assert checks["redis"]["ok"] is True
    assert checks["configuration"]["ok"] is True


def test_readyz_database_unhealthy():
    db, redis, key, secret, enabled = _patches(db={"healthy": False, "error": "Connection failed"})
    with db, redis, key, secret, enabled:
        response = client.get("/readyz")

    data = response.json()
    assert response.status_code == 200
    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Connection failed"


def test_readyz_redis_down_with_fail_open_still_ready():
    db, redis, key, secret, enabled = _patches(redis_ok=False)
    with (
        db,
        redis,
        key,
        secret,
        enabled,
        patch("interview_coach.routes.health.settings.RATE_LIMIT_FAIL_OPEN", True),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is True
    assert data["checks"]["redis"] == {
        "ok": False,
        "required": False,
        "latency_ms": data["checks"]["redis"]["latency_ms"],
    }


def test_readyz_redis_down_with_fail_closed_not_ready():
    db, redis, key, secret, enabled = _patches(redis_ok=False)
    with (
        db,
        redis,
        key,
        secret,
        enabled,
        patch("interview_coach.routes.health.settings.RATE_LIMIT_FAIL_OPEN", False),
    ):
        response = client.get("/readyz")

    assert response.json()["overall_ok"] is False


def test_readyz_missing_configuration():
    db, redis, key, secret, enabled = _patches(openai_key=None, jwt_secret=None)
    with (
        db,
        redis,
        key,
        secret,
        enabled,
        patch("interview_coach.routes.health.settings.JWT_JWKS_URL", None),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert data["overall_ok"] is False
    issues = data["checks"]["configuration"]["issues"]
    assert "OPENAI_API_KEY not set" in issues
    assert "JWT_SECRET or JWT_JWKS_URL must be set" in issues
