"""
verify.py
---------
Purpose:
    Bearer JWT verification for every interview coach route.

Notes:
    - HS256 with JWT_SECRET by default.
    - When JWT_JWKS_URL is set, keys are fetched from the JWKS endpoint and cached.
    - Provides `auth_dependency` for protected routes; `sub` is the user id.
"""

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt import PyJWKClient

from interview_coach.config import settings

_security = HTTPBearer()
_jwk_client: PyJWKClient | None = None


def _get_jwk_client() -> PyJWKClient:
    global _jwk_client
    if _jwk_client is None:
        _jwk_client = PyJWKClient(settings.JWT_JWKS_URL)
    return _jwk_client


def _signing_key(token: str):
    if settings.uses_jwks():
        return _get_jwk_client().get_signing_key_from_jwt(token).key
    if not settings.JWT_SECRET:
        raise RuntimeError("JWT_SECRET is not configured")
    return settings.JWT_SECRET


def verify_jwt(token: str) -> dict:
    try:
        decoded = jwt.decode(
            token,
            _signing_key(token),
            algorithms=settings.JWT_ALGORITHMS,
            audience=settings.JWT_AUDIENCE,
            options={"verify_exp": True, "verify_aud": settings.JWT_AUDIENCE is not None},
        )
        return decoded
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid authentication token: {e}",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e


def auth_dependency(credentials: HTTPAuthorizationCredentials = Depends(_security)) -> dict:
    token = credentials.credentials
    return verify_jwt(token)


def current_user_id(claims: dict = Depends(auth_dependency)) -> str:
    """Resolve the authenticated user id, rejecting tokens without a subject."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user claims")
    return user_id
