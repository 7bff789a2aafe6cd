"""Rate limiting configuration.

This module provides rate limiting for the public write endpoints using
slowapi, with per-instance memory storage.

Note: This is a separate module to avoid circular imports. The `limiter`
instance is imported by both main.py and the route modules.
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import Limiter
from slowapi.util import get_remote_address

from funfull_server.config import Settings

DEFAULT_PUBLIC_LIMIT = "30/minute"

# Rate limiter with per-instance memory storage
limiter = Limiter(key_func=get_remote_address)

_public_limit = DEFAULT_PUBLIC_LIMIT


def configure_rate_limits(settings: Settings) -> None:
    """Apply rate limit settings to the shared limiter."""
    global _public_limit
    limiter.enabled = settings.rate_limit_enabled
    _public_limit = settings.public_rate_limit


def public_write_limit() -> str:
    """Limit applied to unauthenticated endpoints that write to the sheet."""
    return _public_limit


def rate_limit_exceeded_handler(request: Request, _exc: Exception) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    logger.warning(
        "Rate limit exceeded",
        extra={"path": request.url.path, "client": get_remote_address(request)},
    )
    return JSONResponse(
        status_code=429,
        content={"detail": "Rate limit exceeded. Please try again later."},
    )
