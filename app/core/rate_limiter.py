"""
Rate Limiting for the iTECHS Learning Platform API
==================================================
Implements rate limiting using slowapi.

- Every route: RATE_LIMIT_DEFAULT per client IP (100 per 15 minutes)
- /api/auth/*: AUTH_RATE_LIMIT per client IP, shared across the auth routes
  (50 per 15 minutes)

Storage defaults to in-process memory; point RATE_LIMIT_STORAGE_URI at
redis:// to share counters between workers.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.exceptions import error_response
from app.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """Rate limit key: client IP address"""
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[settings.RATE_LIMIT_DEFAULT],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def _retry_after_seconds(exc: RateLimitExceeded) -> int:
    limit = getattr(exc, "limit", None)
    item = getattr(limit, "limit", None)
    if item is not None and hasattr(item, "get_expiry"):
        return int(item.get_expiry())
    return 60


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """
    Handler for RateLimitExceeded.

    Returns the standard error envelope with a Retry-After header.
    """
    retry_after = _retry_after_seconds(exc)

    logger.log_security_event(
        "rate_limit_exceeded",
        client=get_client_identifier(request),
        http_path=request.url.path,
        limit=str(exc.detail),
    )

    return JSONResponse(
        status_code=429,
        content=error_response("Too many requests from this IP, please try again later."),
        headers={"Retry-After": str(retry_after)},
    )


def auth_rate_limit():
    """Shared limit applied to every /auth endpoint"""
    return limiter.shared_limit(settings.AUTH_RATE_LIMIT, scope="auth")
