"""
RequestContext Middleware - Adds request tracking to all requests.

Adds to request.state:
- request_id: Unique ID for request tracing (also bound into structlog context)
- ip_address: Client IP address
- user_agent: Client user agent string
"""

import time
import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from interview_coach.config import settings
from interview_coach.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Add request context to all incoming requests.

    A client-supplied X-Request-ID is reused; otherwise a UUID is generated.
    The id is echoed back in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        ip_address = self._extract_client_ip(request)
        request.state.ip_address = ip_address
        request.state.user_agent = request.headers.get("user-agent")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        start = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - start) * 1000, 2)

        logger.info(
            "Request completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms,
            ip_address=ip_address,
        )

        response.headers["X-Request-ID"] = request_id
        return response

    def _extract_client_ip(self, request: Request) -> str | None:
        """
        Extract client IP address with proxy spoofing protection.

        X-Forwarded-For is honoured only when TRUST_X_FORWARDED_FOR is enabled
        and the direct peer is one of TRUSTED_PROXY_IPS.
        """
        if not settings.TRUST_X_FORWARDED_FOR:
            return request.client.host if request.client else None

        if request.client and request.client.host in settings.TRUSTED_PROXY_IPS:
            forwarded_for = request.headers.get("x-forwarded-for")
            if forwarded_for:
                # "client, proxy1, proxy2"
                return forwarded_for.split(",")[0].strip()

        return request.client.host if request.client else None
