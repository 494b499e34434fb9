"""Per-IP request limits (slowapi) and the 429 error envelope."""

from __future__ import annotations

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from app.config import settings
from app.core.errors import error_response

RATE_LIMIT_MESSAGE = "Too many requests, please try again later"

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit_default])


def auth_rate_limit() -> str:
    """Limit for credential endpoints; read per request so it follows settings."""
    return settings.rate_limit_auth


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    response = error_response(429, RATE_LIMIT_MESSAGE, [{"limit": str(exc.detail)}])
    view_limit = getattr(request.state, "view_rate_limit", None)
    if view_limit is not None:
        response = request.app.state.limiter._inject_headers(response, view_limit)
    return response
