"""FunFull booking API server.

HTTP API exposing schedule slots, services and orders stored in a Google
spreadsheet. Entry point: uvicorn funfull_server.main:app
"""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.middleware.base import BaseHTTPMiddleware

from funfull_server import orders, services, slots, status
from funfull_server.auth import AccessDenied, access_denied_handler
from funfull_server.config import Settings, get_settings
from funfull_server.database import Database
from funfull_server.logging import configure_logging, logger, request_id_ctx
from funfull_server.rate_limit import configure_rate_limits, limiter, rate_limit_exceeded_handler
from funfull_server.transport import GoogleSheetsTransport, SheetsTransport

REQUEST_ID_HEADER = "X-Request-ID"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to tag each request with an ID and log it."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        token = request_id_ctx.set(request_id)
        start = time.perf_counter()

        logger.info(
            f"{request.method} {request.url.path}",
            extra={"method": request.method, "path": request.url.path},
        )

        try:
            response = await call_next(request)
            duration_ms = round((time.perf_counter() - start) * 1000)
            logger.info(
                f"{request.method} {request.url.path} -> {response.status_code} in {duration_ms}ms",
                extra={"status_code": response.status_code, "duration_ms": duration_ms},
            )
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            request_id_ctx.reset(token)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled exceptions."""
    logger.opt(exception=exc).error(
        "Unhandled exception",
        extra={"path": request.url.path, "error": str(exc)},
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


async def route_not_found_handler(request: Request, _exc: Exception) -> JSONResponse:
    """Answer unknown paths with a JSON 404."""
    return JSONResponse(status_code=404, content={"error": "Route not found"})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    logger.info(f"Starting FunFull server on port {settings.port}")

    # Initialize database and store in app.state for dependency injection
    transport: SheetsTransport = app.state.transport or GoogleSheetsTransport.from_settings(
        settings
    )
    database = Database(transport, settings)
    app.state.database = database

    yield

    await database.close()
    logger.info("Shutting down FunFull server")


def create_app(
    settings: Settings | None = None,
    transport: SheetsTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment
        transport: Store adapter to use instead of the Google Sheets API
    """
    if settings is not None:
        overrides = {get_settings: lambda: settings}
    else:
        settings = get_settings()
        overrides = {}

    configure_logging(
        json_logs=settings.is_production,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )

    app = FastAPI(
        title="FunFull",
        description="Booking API backed by a Google spreadsheet",
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/api-docs" if not settings.is_production else None,
        redoc_url=None,
        openapi_url="/api-docs/openapi.json" if not settings.is_production else None,
    )
    app.state.settings = settings
    app.dependency_overrides.update(overrides)
    app.state.transport = transport

    # Exception handlers
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.add_exception_handler(404, route_not_found_handler)
    app.add_exception_handler(AccessDenied, access_denied_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Rate limiting for public write endpoints
    configure_rate_limits(settings)
    app.state.limiter = limiter

    # Request ID and access logging
    app.add_middleware(RequestContextMiddleware)

    app.include_router(slots.router)
    app.include_router(orders.router, prefix="/orders")
    app.include_router(orders.router, prefix="/order", include_in_schema=False)
    app.include_router(services.router)
    app.include_router(status.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "funfull_server.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=not settings.is_production,
    )
