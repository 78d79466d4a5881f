"""
Input validation rules for accounts and book records.

Each validator collects every violated rule instead of stopping at the first,
so callers can report the complete list in one ``ValidationError``.
"""

import re
from typing import Any, Optional

from readinglist.exceptions import ValidationError
from readinglist.security import (
    MAX_PASSWORD_LENGTH,
    MIN_PASSWORD_LENGTH,
    check_password_strength,
)

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

RESERVED_USERNAMES = frozenset({
    "admin",
    "administrator",
    "root",
    "api",
    "www",
    "mail",
})

COMMON_PASSWORDS = frozenset({
    "password",
    "123456",
    "password123",
    "admin",
    "qwerty",
    "letmein",
    "welcome",
    "monkey",
    "1234567890",
})

TITLE_MAX_LENGTH = 255
AUTHOR_MAX_LENGTH = 255
GENRE_MAX_LENGTH = 100
NOTES_MAX_LENGTH = 1000

BOOK_STATUSES = ("to-read", "reading", "read")
DEFAULT_STATUS = "to-read"

SEARCH_MIN_LENGTH = 2


class _Missing:
    """Marks a book field absent from a full-replacement body."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


# =============================================================================
# Accounts
# =============================================================================

def validate_username(username: Any) -> list[str]:
    """Return every rule the username breaks (empty list when valid)."""
    if not isinstance(username, str) or not username:
        return ["Username is required"]

    errors = []
    if len(username) < USERNAME_MIN_LENGTH:
        errors.append(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
    if len(username) > USERNAME_MAX_LENGTH:
        errors.append(f"Username must not exceed {USERNAME_MAX_LENGTH} characters")
    if not USERNAME_PATTERN.match(username):
        errors.append("Username can only contain letters, numbers, underscores, and hyphens")
    if username.lower() in RESERVED_USERNAMES:
        errors.append("This username is reserved and cannot be used")
    return errors


def validate_password(password: Any) -> list[str]:
    """Return every strength rule the password breaks."""
    if not isinstance(password, str) or not password:
        return ["Password is required"]

    strength = check_password_strength(password)
    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(password) > MAX_PASSWORD_LENGTH:
        errors.append(f"Password must not exceed {MAX_PASSWORD_LENGTH} characters")
    if not strength.has_lowercase:
        errors.append("Password must contain at least one lowercase letter")
    if not strength.has_uppercase:
        errors.append("Password must contain at least one uppercase letter")
    if not strength.has_number:
        errors.append("Password must contain at least one number")
    if not strength.has_symbol:
        errors.append("Password must contain at least one symbol")
    if password.lower() in COMMON_PASSWORDS:
        errors.append("Password is too common and easily guessable")
    return errors


def validate_registration(username: Any, password: Any, password_confirmation: Any) -> None:
    """
    Validate a registration request.

    Raises:
        ValidationError: listing every violated rule
    """
    errors = validate_username(username)
    errors.extend(validate_password(password))
    if password_confirmation != password:
        errors.append("Password confirmation does not match password")
    if errors:
        raise ValidationError(errors)


def validate_login(username: Any, password: Any) -> None:
    """Login only checks presence; format rules would leak information."""
    errors = []
    if not isinstance(username, str) or not username:
        errors.append("Username is required")
    if not isinstance(password, str) or not password:
        errors.append("Password is required")
    if errors:
        raise ValidationError(errors)


# =============================================================================
# Book records
# =============================================================================

def _clean_optional(value: Any, label: str, max_length: int, errors: list[str]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(f"{label} must be a string")
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > max_length:
        errors.append(f"{label} must not exceed {max_length} characters")
    return value


def validate_book_data(
    title: Any,
    author: Any = None,
    genre: Any = None,
    status: Any = None,
    notes: Any = None,
) -> dict:
    """
    Validate and normalise the editable fields of a book record.

    Strings are trimmed, empty optional strings become ``None`` and a missing
    status falls back to ``to-read``. A field passed as ``MISSING`` (absent
    from a full-replacement body) is reported as required.

    Returns:
        Dict with exactly the keys title, author, genre, status, notes

    Raises:
        ValidationError: listing every violated rule
    """
    errors: list[str] = []

    fields = {"title": title, "author": author, "genre": genre, "status": status, "notes": notes}
    missing = [name for name, value in fields.items() if value is MISSING]
    errors.extend(f"{name.capitalize()} is required" for name in missing)
    title, author, genre, status, notes = (
        None if value is MISSING else value for value in fields.values()
    )

    clean_title = ""
    if title is None:
        if "title" not in missing:
            errors.append("Title is required")
    elif not isinstance(title, str):
        errors.append("Title must be a string")
    else:
        clean_title = title.strip()
        if not clean_title:
            errors.append("Title cannot be empty")
        elif len(clean_title) > TITLE_MAX_LENGTH:
            errors.append(f"Title must not exceed {TITLE_MAX_LENGTH} characters")

    clean_author = _clean_optional(author, "Author name", AUTHOR_MAX_LENGTH, errors)
    clean_genre = _clean_optional(genre, "Genre", GENRE_MAX_LENGTH, errors)
    clean_notes = _clean_optional(notes, "Notes", NOTES_MAX_LENGTH, errors)

    clean_status = DEFAULT_STATUS
    if status is not None and status != "":
        if status in BOOK_STATUSES:
            clean_status = status
        else:
            errors.append(f"Status must be one of: {', '.join(BOOK_STATUSES)}")

    if errors:
        raise ValidationError(errors)

    return {
        "title": clean_title,
        "author": clean_author,
        "genre": clean_genre,
        "status": clean_status,
        "notes": clean_notes,
    }


def validate_status_filter(status: Optional[str]) -> None:
    if status is not None and status not in BOOK_STATUSES:
        raise ValidationError([f"Status must be one of: {', '.join(BOOK_STATUSES)}"])


def validate_search_query(query: Any) -> str:
    """Return the trimmed query, or raise when it is too short."""
    cleaned = query.strip() if isinstance(query, str) else ""
    if len(cleaned) < SEARCH_MIN_LENGTH:
        raise ValidationError(
            [f"Search query must be at least {SEARCH_MIN_LENGTH} characters long"],
            message="Invalid search query",
        )
    return cleaned
