from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from interview_coach.auth.verify import auth_dependency
from interview_coach.middleware.rate_limit_dependencies import rate_limit_generation


def _limited_app(monkeypatch, allowed: bool, retry_after: int | None = None):
    app = FastAPI()
    app.dependency_overrides[auth_dependency] = lambda: {"sub": "user-123"}
    seen = {}

    async def fake_check_generation_limit(user_id: str):
        seen["user_id"] = user_id
        return allowed, {
            "allowed": allowed,
            "limit": 5,
            "remaining": 0 if not allowed else 4,
            "retry_after": retry_after,
        }

    monkeypatch.setattr(
        "interview_coach.middleware.rate_limit_dependencies.rate_limiter.check_generation_limit",
        fake_check_generation_limit,
    )
    monkeypatch.setattr(
        "interview_coach.middleware.rate_limit_dependencies.settings.RATE_LIMIT_ENABLED",
        True,
    )

    @app.post("/generate")
    async def generate(request: Request, _rate: None = Depends(rate_limit_generation)):
        return {"remaining": request.state.rate_limit_info["remaining"]}

    return TestClient(app), seen


def test_rate_limit_dependency_allows(monkeypatch):
    client, seen = _limited_app(monkeypatch, allowed=True)

    response = client.post("/generate")

    assert response.status_code == 200
    assert response.json() == {"remaining": 4}
    assert seen["user_id"] == "user-123"


def test_rate_limit_dependency_blocks(monkeypatch):
    client, _ = _limited_app(monkeypatch, allowed=False, retry_after=7)

    response = client.post("/generate")

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "7"
    detail = response.json()["detail"]
    assert detail["error"] == "rate_limit_exceeded"
    assert detail["limit"] == 5


def test_rate_limit_disabled_skips_check(monkeypatch):
    client, seen = _limited_app(monkeypatch, allowed=False, retry_after=7)
    monkeypatch.setattr(
        "interview_coach.middleware.rate_limit_dependencies.settings.RATE_LIMIT_ENABLED",
        False,
    )

    app = client.app

    @app.post("/plain")
    async def plain(_rate: None = Depends(rate_limit_generation)):
        return {"ok": True}

    response = client.post("/plain")

    assert response.status_code == 200
    assert seen == {}
