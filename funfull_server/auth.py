"""Bearer token gate for protected endpoints.

Protected routes declare `Depends(require_access_token)`. The token is a
single shared secret (SECRET_ACCESS_TOKEN); when it is not configured every
protected request is rejected.
"""

import secrets

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from loguru import logger

from funfull_server.config import Settings, get_settings


class AccessDenied(Exception):
    """Raised when a request lacks a valid bearer token."""

    def __init__(self, body: dict[str, str]) -> None:
        super().__init__(next(iter(body.values())))
        self.body = body


def require_access_token(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """FastAPI dependency that rejects requests without the shared token."""
    auth_header = request.headers.get("authorization")
    if not auth_header:
        raise AccessDenied({"message": "No access token provided"})

    parts = auth_header.split(" ")
    token = parts[1] if len(parts) > 1 else ""
    expected = settings.secret_access_token
    if not token or not expected or not secrets.compare_digest(token, expected):
        raise AccessDenied({"error": "Invalid access token"})


def access_denied_handler(request: Request, exc: Exception) -> JSONResponse:
    """Render AccessDenied as a 401 response."""
    body = exc.body if isinstance(exc, AccessDenied) else {"error": "Invalid access token"}
    logger.warning("Access denied", extra={"path": request.url.path, "reason": str(exc)})
    return JSONResponse(status_code=401, content=body)
