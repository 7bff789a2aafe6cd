"""Logging configuration using loguru with request context support.

Development output is human-readable and tagged with the request ID;
production output is one JSON object per line. Standard library logging
(uvicorn, httpx) is routed through loguru.
"""

import logging
import sys
from contextvars import ContextVar

from loguru import logger

# Context variable for request-scoped data
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


def _add_request_context(record: dict) -> None:
    """Patcher that copies the current request ID into the record extras."""
    request_id = request_id_ctx.get()
    if request_id:
        record["extra"].setdefault("request_id", request_id)


def format_record(_record: dict) -> str:
    """Format log record with request context."""
    request_id = request_id_ctx.get()
    context_str = f"[req={request_id[:8]}] " if request_id else ""

    return (
        "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        f"{context_str}"
        "<level>{message}</level>\n"
        "{exception}"
    )


def configure_logging(*, json_logs: bool = False, log_level: str = "INFO") -> None:
    """Configure loguru for the application.

    Args:
        json_logs: If True, output logs as JSON (production)
        log_level: Minimum log level to output
    """
    # Remove default handler
    logger.remove()
    logger.configure(patcher=_add_request_context)

    if json_logs:
        logger.add(
            sys.stdout,
            format="{message}",
            level=log_level,
            serialize=True,
            backtrace=False,
            diagnose=False,  # Don't include variable values in production
        )
    else:
        logger.add(
            sys.stdout,
            format=format_record,
            level=log_level,
            colorize=True,
        )

    _intercept_standard_logging(log_level)


def _intercept_standard_logging(log_level: str) -> None:
    """Intercept standard library logging and route to loguru."""

    class InterceptHandler(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            # Get corresponding loguru level
            try:
                level: str | int = logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

            # Find caller from where the logged message originated
            frame, depth = logging.currentframe(), 2
            while frame and frame.f_code.co_filename == logging.__file__:
                frame = frame.f_back
                depth += 1

            logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())

    logging.basicConfig(handlers=[InterceptHandler()], level=log_level, force=True)

    for name in ["uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "httpcore"]:
        logging.getLogger(name).setLevel(log_level)
        logging.getLogger(name).handlers = [InterceptHandler()]


__all__ = [
    "configure_logging",
    "logger",
    "request_id_ctx",
]
