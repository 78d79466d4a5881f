"""
Access logging for the Reading List API.

One line per request with method, path, status and duration, tagged with a
correlation id taken from ``X-Request-ID`` (or generated) and echoed back on
the response. Session cookies, credentials and password fields never reach
the log; only whether the caller presented a session cookie is recorded.
"""

import json
import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Set

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

REDACTED = "[REDACTED]"

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger("readinglist.api")


@dataclass
class LoggingConfig:
    """Access log settings."""

    enabled: bool = True

    # Include JSON request bodies, with credential fields redacted
    log_request_body: bool = False
    max_body_log_size: int = 4096

    excluded_paths: Set[str] = field(default_factory=lambda: {"/api/health", "/favicon.ico"})

    sensitive_headers: Set[str] = field(default_factory=lambda: {
        "authorization",
        "cookie",
        "set-cookie",
    })

    # Compared lower-cased, so camelCase and snake_case spellings both match
    sensitive_fields: Set[str] = field(default_factory=lambda: {
        "password",
        "passwordconfirmation",
        "password_confirmation",
        "confirmpassword",
        "token",
    })

    session_cookie_name: str = "reading_list_session"
    slow_request_seconds: float = 1.0
    request_id_header: str = "X-Request-ID"


class StructuredLogFormatter(logging.Formatter):
    """One JSON object per record, carrying the request id when there is one."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": request_id_var.get() or None,
        }
        access = getattr(record, "access", None)
        if access:
            entry.update(access)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def redact_sensitive_data(data: Any, sensitive_fields: Set[str]) -> Any:
    """
    Replace the value of every sensitive key, at any depth.

    Args:
        data: Decoded JSON value
        sensitive_fields: Lower-cased key names

    Returns:
        A redacted copy; the input is not modified
    """
    if isinstance(data, dict):
        return {
            key: REDACTED if str(key).lower() in sensitive_fields
            else redact_sensitive_data(value, sensitive_fields)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_sensitive_data(item, sensitive_fields) for item in data]
    return data


def get_request_id() -> str:
    """Correlation id of the request being handled, or an empty string."""
    return request_id_var.get()


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Writes the access log line and stamps ``X-Request-ID`` on responses."""

    def __init__(self, app: FastAPI, config: Optional[LoggingConfig] = None):
        super().__init__(app)
        self.config = config or LoggingConfig()

    async def _body_for_log(self, request: Request) -> Optional[Any]:
        raw = await request.body()
        if not raw:
            return None
        if len(raw) > self.config.max_body_log_size:
            return f"<{len(raw)} bytes>"
        try:
            decoded = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return "<non-JSON body>"
        return redact_sensitive_data(decoded, self.config.sensitive_fields)

    def _level_for(self, status_code: int, elapsed: float) -> int:
        if status_code >= 500:
            return logging.ERROR
        if status_code >= 400 or elapsed > self.config.slow_request_seconds:
            return logging.WARNING
        return logging.INFO

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        header = self.config.request_id_header
        request_id = request.headers.get(header) or uuid.uuid4().hex[:8]
        request_id_var.set(request_id)

        path = request.url.path
        if not self.config.enabled or path in self.config.excluded_paths:
            response = await call_next(request)
            response.headers[header] = request_id
            return response

        access = {
            "method": request.method,
            "path": path,
            "client_ip": request.client.host if request.client else None,
            "has_session": self.config.session_cookie_name in request.cookies,
        }
        if self.config.log_request_body:
            body = await self._body_for_log(request)
            if body is not None:
                access["body"] = body

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        response.headers[header] = request_id
        access["status_code"] = response.status_code
        access["duration_ms"] = round(elapsed * 1000, 2)

        slow = " [slow]" if elapsed > self.config.slow_request_seconds else ""
        logger.log(
            self._level_for(response.status_code, elapsed),
            f"{request.method} {path} {response.status_code} {access['duration_ms']}ms{slow}",
            extra={"access": access},
        )
        return response


def setup_logging(
    app: FastAPI,
    config: Optional[LoggingConfig] = None,
    structured: bool = True,
) -> None:
    """
    Install the access log middleware.

    Args:
        app: FastAPI application instance
        config: Access log settings
        structured: Emit JSON lines on the ``readinglist`` logger (production)
    """
    config = config or LoggingConfig()

    if structured:
        app_logger = logging.getLogger("readinglist")
        if not any(isinstance(h.formatter, StructuredLogFormatter) for h in app_logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredLogFormatter())
            app_logger.addHandler(handler)
            app_logger.propagate = False
        app_logger.setLevel(logging.INFO)

    app.add_middleware(RequestLoggingMiddleware, config=config)
