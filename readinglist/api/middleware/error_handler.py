"""
Error Handling for the Reading List API

Centralized error handling:
- Structured error responses
- Logging of errors
- Exception translation
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.exceptions import HTTPException as StarletteHTTPException

from readinglist.api.middleware.logging import get_request_id
from readinglist.exceptions import ReadingListException, StorageError


def create_error_response(
    error: str,
    code: str,
    status_code: int,
    detail: Any = None,
    debug: Optional[dict] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    """Create standardized error response."""
    content = {
        "error": error,
        "code": code,
        "detail": detail,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if debug is not None:
        content["debug"] = debug

    return JSONResponse(status_code=status_code, content=content, headers=headers)


def format_validation_errors(exc: RequestValidationError) -> list[str]:
    """Flatten FastAPI's error list into readable messages."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "Invalid value")
        messages.append(f"{location}: {message}" if location else message)
    return messages


def setup_exception_handlers(app: FastAPI, expose_details: bool = False) -> None:
    """
    Register exception handlers with FastAPI app.

    Args:
        app: FastAPI application
        expose_details: Add exception type and internal detail under ``debug``.
            Development only.
    """

    @app.exception_handler(ReadingListException)
    async def reading_list_exception_handler(request: Request, exc: ReadingListException):
        debug = None
        if exc.status_code >= 500:
            logger.error(
                f"{exc.code} on {request.method} {request.url.path}: {exc.message} "
                f"[request {get_request_id() or '-'}]"
            )
            if expose_details:
                debug = {
                    "type": type(exc).__name__,
                    "internal_detail": getattr(exc, "internal_detail", None),
                }
        else:
            logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")

        return create_error_response(
            error=exc.message,
            code=exc.code,
            status_code=exc.status_code,
            detail=exc.detail,
            debug=debug,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        messages = format_validation_errors(exc)
        logger.warning(f"Request validation failed on {request.url.path}: {len(messages)} error(s)")
        return create_error_response(
            error="Validation failed",
            code="VALIDATION_ERROR",
            status_code=400,
            detail=messages,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return create_error_response(
                error="Route not found",
                code="NOT_FOUND",
                status_code=404,
                detail=f"{request.method} {request.url.path} does not exist",
            )
        return create_error_response(
            error=str(exc.detail),
            code="HTTP_ERROR",
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception: {type(exc).__name__} on {request.method} {request.url.path} "
            f"[request {get_request_id() or '-'}]"
        )

        debug = None
        if expose_details:
            debug = {
                "type": type(exc).__name__,
                "traceback": traceback.format_exception(type(exc), exc, exc.__traceback__),
            }

        # Unclassified failures surface as storage errors
        return create_error_response(
            error=StorageError().message,
            code="STORAGE_ERROR",
            status_code=500,
            detail="An unexpected error occurred",
            debug=debug,
        )
