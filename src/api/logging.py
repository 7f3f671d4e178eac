"""Structured logging and request middleware for the timeline service.

Every log line is a flat run of key=value pairs. Lines written while a
request is being served carry its request ID, so the correction warnings
emitted by the normalizer can be traced back to the request (and device)
that triggered them.

Example:
    >>> from src.api.logging import setup_logging
    >>> setup_logging("INFO")
    >>> logging.getLogger("demo").info("normalized", extra={"device_id": "device-1"})
    timestamp=... level=INFO logger=demo request_id=- device_id=device-1 message="normalized"
"""

import logging
import re
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Optional record attributes (passed with extra=...) rendered after the
# fixed fields, in this order.
CONTEXT_FIELDS = ("device_id", "date", "status", "corrections")

NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

# Paths polled by load balancers; their timing lines go to DEBUG.
QUIET_PATHS = frozenset({"/health"})

_REQUEST_ID_UNSAFE = re.compile(r"[^A-Za-z0-9._\-]")
_REQUEST_ID_MAX_LEN = 64


# =============================================================================
# Formatter
# =============================================================================


def _quote(value: object) -> str:
    text = str(value).replace("\n", " | ").replace('"', '\\"')
    return f'"{text}"'


class StructuredFormatter(logging.Formatter):
    """Render log records as key=value pairs on one line.

    Layout:
        timestamp=ISO8601 level=LEVEL logger=NAME request_id=ID
        [device_id=.. date=.. status=.. corrections=..] message="MSG"
        [exception="TRACEBACK"]
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"timestamp={self.formatTime(record, self.datefmt)}",
            f"level={record.levelname}",
            f"logger={record.name}",
            f"request_id={request_id_var.get() or '-'}",
        ]

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                parts.append(f"{name}={value}")

        parts.append(f"message={_quote(record.getMessage())}")

        if record.exc_info:
            parts.append(f"exception={_quote(self.formatException(record.exc_info))}")

        return " ".join(parts)


def setup_logging(log_level: str = "INFO") -> None:
    """Install the structured formatter on the root logger.

    Existing root handlers are replaced, so calling this twice is safe.

    Args:
        log_level: Log level (DEBUG, INFO, WARNING, ERROR).
    """
    level = log_level.upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter(datefmt="%Y-%m-%dT%H:%M:%S%z"))
    handler.setLevel(level)

    root_logger = logging.getLogger()
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# Middleware
# =============================================================================


def _clean_request_id(raw: str | None) -> str:
    """Return a log-safe request ID, generating one if none was supplied."""
    if not raw:
        return str(uuid.uuid4())
    cleaned = _REQUEST_ID_UNSAFE.sub("", raw)[:_REQUEST_ID_MAX_LEN]
    return cleaned or str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an ID.

    The caller's X-Request-ID header is reused when present (stripped of
    characters that would break the key=value log format), otherwise a
    UUID4 is generated. The ID is stored on request.state, bound to
    request_id_var for the duration of the request and echoed in the
    X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = _clean_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id
        token = request_id_var.set(request_id)

        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


class TimingMiddleware(BaseHTTPMiddleware):
    """Log request duration and add an X-Response-Time header."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        level = logging.DEBUG if request.url.path in QUIET_PATHS else logging.INFO
        logging.getLogger("timeline_api.timing").log(
            level,
            "method=%s path=%s status=%d duration_ms=%.2f",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


def add_middleware(app: FastAPI) -> None:
    """Add request ID and timing middleware to the application.

    Args:
        app: The FastAPI application instance.
    """
    # RequestID is added last so it runs first and timing lines carry the ID
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
