"""
Rate Limiting Service

Implements rate limiting using slowapi to slow down password guessing and
scripted sign-ups.

Key Features:
=============
1. IP-based rate limiting, honouring proxy headers
2. In-memory storage (one process, one SQLite file)
3. A stricter limit on login and registration submissions
4. Plain-text 429 responses

Rate Limit Tiers:
=================
- Default (every route): settings.rate_limit_default
- POST /login, POST /register: settings.rate_limit_auth
"""

import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import PlainTextResponse

from bookreview.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()


def get_client_ip(request: Request) -> str:
    """
    Get client IP address for rate limiting.

    Handles common proxy headers to get the real client IP.
    Falls back to direct connection IP if no proxy headers.
    """
    # X-Forwarded-For can contain multiple IPs; first is the client
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    # nginx
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """
    Create and configure the rate limiter.

    Counters live in process memory. Disabled entirely when
    RATE_LIMIT_ENABLED is false, as in the test suite.
    """
    limiter = Limiter(
        key_func=get_client_ip,
        default_limits=[settings.rate_limit_default],
        storage_uri="memory://",
        strategy="fixed-window",
        enabled=settings.rate_limit_enabled,
    )

    logger.info(
        f"Rate limiter initialized - enabled: {settings.rate_limit_enabled}, "
        f"default: {settings.rate_limit_default}, auth: {settings.rate_limit_auth}"
    )

    return limiter


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> PlainTextResponse:
    """
    Answer 429 Too Many Requests with a Retry-After header.

    Plain text, like every other error page of the site.
    """
    limit_detail = str(exc.detail)

    response = PlainTextResponse(
        "Too many requests. Please slow down.",
        status_code=429,
    )
    response.headers["Retry-After"] = str(60)
    response.headers["X-RateLimit-Limit"] = limit_detail

    logger.warning(
        f"Rate limit exceeded for {get_client_ip(request)}: {limit_detail}"
    )

    return response
