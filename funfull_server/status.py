"""Status, health and connectivity endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from fastapi.responses import HTMLResponse

from funfull_server.auth import require_access_token
from funfull_server.config import Settings, get_settings
from funfull_server.rendering import status_page

router = APIRouter(tags=["connectivity"])


@router.get("/", response_class=HTMLResponse)
async def api_status() -> HTMLResponse:
    """Landing page confirming the server responds."""
    return HTMLResponse(content=status_page())


@router.get("/testAuth", dependencies=[Depends(require_access_token)])
async def test_auth(request: Request) -> dict:
    """Check API availability with the access token."""
    return {"result": f"Received GET request for path {request.url.path}"}


@router.post("/testPost")
async def test_post(request: Request, body: dict[str, Any] | None = Body(default=None)) -> dict:
    """Echo the JSON request body."""
    return {
        "result": f"Received POST request for path {request.url.path}. Return the same body.",
        "originalBody": body or {},
    }


@router.get("/health")
async def health_check() -> dict:
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "funfull-server"}


@router.get("/health/ready")
async def readiness_check(settings: Settings = Depends(get_settings)) -> dict:
    """Readiness check for container platforms."""
    return {
        "status": "ready",
        "service": "funfull-server",
        "environment": settings.environment,
    }
