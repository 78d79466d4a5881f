"""
Error kinds for the Reading List Manager.

Every failure surfaced to a caller is one of these exceptions. Each carries a
stable machine-readable ``code``, the HTTP-equivalent ``status_code`` and a
human-readable message, so the API layer can translate them without knowing
where they came from.
"""

from typing import Any, Optional


class ReadingListException(Exception):
    """Base exception for reading list errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        detail: Any = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.detail = detail
        super().__init__(message)


class ValidationError(ReadingListException):
    """Input failed format, length or required-field rules.

    Carries every violated rule, not just the first one.
    """

    def __init__(self, errors: list[str], message: str = "Validation failed"):
        self.errors = list(errors)
        super().__init__(
            message=message,
            code="VALIDATION_ERROR",
            status_code=400,
            detail=self.errors,
        )


class ConflictError(ReadingListException):
    """Uniqueness violation (duplicate username)."""

    def __init__(self, message: str, detail: Any = None):
        super().__init__(
            message=message,
            code="CONFLICT",
            status_code=409,
            detail=detail,
        )


class AuthenticationError(ReadingListException):
    """Missing or invalid session, or failed login."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            code="AUTHENTICATION_ERROR",
            status_code=401,
        )


class AuthorizationError(ReadingListException):
    """Authenticated, but not the owner of the resource."""

    def __init__(self, message: str = "Access denied: this book belongs to another user"):
        super().__init__(
            message=message,
            code="AUTHORIZATION_ERROR",
            status_code=403,
        )


class NotFoundError(ReadingListException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            message=f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            detail=f"No {resource.lower()} with identifier '{identifier}' exists",
        )


class StorageError(ReadingListException):
    """Persistence failure not otherwise classified.

    ``internal_detail`` holds the raw driver message. It is never part of the
    public ``detail`` and is only rendered when error details are exposed
    explicitly (development mode).
    """

    def __init__(
        self,
        message: str = "A storage error occurred",
        internal_detail: Optional[str] = None,
    ):
        self.internal_detail = internal_detail
        super().__init__(
            message=message,
            code="STORAGE_ERROR",
            status_code=500,
        )


class ConstraintViolationError(StorageError):
    """A database constraint (unique, foreign key, check) rejected a write."""

    def __init__(self, message: str = "Constraint violation", internal_detail: Optional[str] = None):
        super().__init__(message=message, internal_detail=internal_detail)


class RateLimitError(ReadingListException):
    """Rate limit exceeded."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            message="Rate limit exceeded",
            code="RATE_LIMIT_EXCEEDED",
            status_code=429,
            detail=f"Maximum {limit} requests per {window_seconds} seconds",
        )
