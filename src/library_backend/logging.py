"""
Centralized logging configuration using structlog
"""

import base64
import logging
import secrets
import sys
import time
from contextvars import ContextVar
from typing import Any

import jwt
import structlog
from fastapi import Request

# Context variables for request tracking
request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_ctx: ContextVar[str | None] = ContextVar("user_id", default=None)


class RequestContextFilter:
    """Add request context to log records."""

    def __call__(self, logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        """Add request context to the event dict."""
        # structlog passes these positionally; only the event dict is used
        _ = logger, method_name

        request_id = request_id_ctx.get()
        user_id = user_id_ctx.get()

        if request_id:
            event_dict["request_id"] = request_id

        if user_id:
            event_dict["user_id"] = user_id

        return event_dict


def _resolve_level(debug: bool, log_level: str | None) -> int:
    if log_level:
        level = logging.getLevelName(log_level.upper())
        if isinstance(level, int):
            return level
    return logging.DEBUG if debug else logging.INFO


def configure_logging(debug: bool = False, log_level: str | None = None) -> None:
    """Configure structlog with appropriate processors and formatters.

    Args:
        debug: If True, use human-readable console output. If False, use JSON.
        log_level: Level name such as ``"warning"`` (``LIBRARY_LOG_LEVEL``).
            Unknown or missing names fall back to DEBUG in debug mode and
            INFO otherwise.
    """
    level = _resolve_level(debug, log_level)

    # stdlib handler; structlog renders the message itself
    logging.basicConfig(
        level=level,
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )
    # aiosqlite logs every statement at DEBUG
    logging.getLogger("aiosqlite").setLevel(max(level, logging.INFO))

    processors = [
        # Drop events below the configured level before doing any work
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        # request_id / user_id from the current request's context vars
        RequestContextFilter(),
        structlog.processors.TimeStamper(fmt="ISO", utc=True),
        # Support logger.info("%s added", title)
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        # Development: colored key=value lines
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        # Production: one JSON object per line
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


def generate_request_id() -> str:
    """Generate a compact request ID from a microsecond timestamp and 2 random bytes.

    Format: 14-character url-safe base64 string without padding
    """
    timestamp_us = int(time.time() * 1_000_000)
    random_bytes = secrets.token_bytes(2)
    combined_bytes = timestamp_us.to_bytes(8, byteorder="big") + random_bytes
    return base64.urlsafe_b64encode(combined_bytes).decode("ascii").rstrip("=")


def set_request_context(request_id: str | None = None, user_id: str | None = None) -> None:
    """Set request context variables.

    Args:
        request_id: Request ID to set (generates one if None)
        user_id: User ID to set
    """
    if request_id is None:
        request_id = generate_request_id()

    request_id_ctx.set(request_id)
    if user_id is not None:
        user_id_ctx.set(user_id)


def clear_request_context() -> None:
    """Clear request context variables."""
    request_id_ctx.set(None)
    user_id_ctx.set(None)


def get_request_id() -> str | None:
    """Get the current request ID."""
    return request_id_ctx.get()


def get_user_id() -> str | None:
    """Get the current user ID."""
    return user_id_ctx.get()


def extract_user_id_from_request(request: Request) -> str | None:
    """Read the user id claim from a bearer token for log correlation only.

    The signature is NOT checked here. Authentication happens in
    ``library_backend.auth.middleware``; this value only labels log lines.
    """
    auth_header = request.headers.get("authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None

    try:
        claims = jwt.decode(auth_header[7:], options={"verify_signature": False})
    except jwt.InvalidTokenError:
        return None

    user_id = claims.get("id") or claims.get("sub")
    return str(user_id) if user_id else None
