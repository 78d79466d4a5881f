"""
API Schemas for the Reading List Manager

Pydantic models for request parsing and response serialization:
- Auth models
- Book models
- Public aggregation models

Design Decisions:
1. Permissive requests: business rules live in readinglist.validation so
   every violated rule is reported together; schemas only shape the input
2. Allowlisted fields: unknown keys (ownerId, user_id, ...) are ignored
3. camelCase out: responses are serialized with camelCase keys
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from readinglist.services.aggregation_service import CommunityStats, SearchResults
from readinglist.services.book_service import BookFields
from readinglist.storage.account_repository import StoredAccount
from readinglist.storage.book_repository import StoredBook
from readinglist.validation import MISSING


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class RequestModel(BaseModel):
    """Base for request bodies: accepts both camelCase and snake_case."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ResponseModel(BaseModel):
    """Base for responses: serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Auth Schemas
# =============================================================================

class RegisterRequest(RequestModel):
    """Registration request."""

    username: Any = None
    password: Any = None
    password_confirmation: Any = Field(
        None,
        validation_alias=AliasChoices(
            "passwordConfirmation",
            "password_confirmation",
            "confirmPassword",
        ),
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "username": "alice",
                "password": "S3cret!pass",
                "passwordConfirmation": "S3cret!pass",
            }
        }
    )


class LoginRequest(RequestModel):
    """Login request."""

    username: Any = None
    password: Any = None


class AccountResponse(ResponseModel):
    """Authenticated account identity."""

    id: int
    username: str


class MeResponse(BaseModel):
    """Profile of the calling account."""

    id: int
    username: str
    created_at: datetime

    @classmethod
    def from_stored(cls, account: StoredAccount) -> "MeResponse":
        return cls(
            id=account.id,
            username=account.username,
            created_at=_as_utc(account.created_at),
        )


class SessionStatusResponse(ResponseModel):
    """Whether the caller holds a valid session."""

    authenticated: bool
    id: Optional[int] = None
    username: Optional[str] = None


class MessageResponse(ResponseModel):
    message: str


# =============================================================================
# Book Schemas
# =============================================================================

class BookCreateRequest(RequestModel):
    """Book creation request. Only these fields are read from the body."""

    title: Any = None
    author: Any = None
    genre: Any = None
    status: Any = None
    notes: Any = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Dune",
                "author": "Frank Herbert",
                "genre": "Science Fiction",
                "status": "to-read",
            }
        }
    )

    def to_fields(self) -> BookFields:
        return BookFields(
            title=self.title,
            author=self.author,
            genre=self.genre,
            status=self.status,
            notes=self.notes,
        )


class BookUpdateRequest(RequestModel):
    """
    Book replacement request.

    Every field must be present; send ``null`` to clear an optional one.
    Absent fields are passed on as ``MISSING`` and rejected by the service,
    after the ownership check.
    """

    title: Any = None
    author: Any = None
    genre: Any = None
    status: Any = None
    notes: Any = None

    def to_fields(self) -> BookFields:
        sent = self.model_fields_set
        return BookFields(**{
            name: getattr(self, name) if name in sent else MISSING
            for name in ("title", "author", "genre", "status", "notes")
        })


class BookResponse(ResponseModel):
    """Book record as returned to its owner."""

    id: int
    title: str
    author: Optional[str] = None
    genre: Optional[str] = None
    status: str
    notes: Optional[str] = None
    owner_id: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_stored(cls, book: StoredBook) -> "BookResponse":
        return cls(
            id=book.id,
            title=book.title,
            author=book.author,
            genre=book.genre,
            status=book.status,
            notes=book.notes,
            owner_id=book.owner_id,
            created_at=_as_utc(book.created_at),
            updated_at=_as_utc(book.updated_at),
        )


class DeleteResponse(ResponseModel):
    deleted_id: int


# =============================================================================
# Public Aggregation Schemas
# =============================================================================

class PopularBook(ResponseModel):
    title: str
    author: Optional[str] = None
    count: int


class GenreCount(ResponseModel):
    genre: str
    count: int


class AuthorCount(ResponseModel):
    author: str
    count: int


class StatusCount(ResponseModel):
    status: str
    count: int


class CommunityStatsResponse(ResponseModel):
    """Anonymised statistics across every reading list."""

    popular_books: list[PopularBook]
    popular_genres: list[GenreCount]
    popular_authors: list[AuthorCount]
    status_distribution: list[StatusCount]
    total_books: int
    total_accounts: int

    @classmethod
    def from_stats(cls, stats: CommunityStats) -> "CommunityStatsResponse":
        return cls(
            popular_books=[
                PopularBook(title=b.title, author=b.author, count=b.count)
                for b in stats.popular_books
            ],
            popular_genres=[
                GenreCount(genre=g.label, count=g.count) for g in stats.popular_genres
            ],
            popular_authors=[
                AuthorCount(author=a.label, count=a.count) for a in stats.popular_authors
            ],
            status_distribution=[
                StatusCount(status=s.label, count=s.count) for s in stats.status_distribution
            ],
            total_books=stats.total_books,
            total_accounts=stats.total_accounts,
        )


class SearchResultItem(ResponseModel):
    title: str
    author: Optional[str] = None
    genre: Optional[str] = None
    popularity: int


class SearchFilters(ResponseModel):
    genre: Optional[str] = None


class PublicSearchResponse(ResponseModel):
    """Grouped public search results."""

    query: str
    filters: SearchFilters
    results: list[SearchResultItem]
    count: int

    @classmethod
    def from_results(cls, found: SearchResults) -> "PublicSearchResponse":
        return cls(
            query=found.query,
            filters=SearchFilters(genre=found.filters.get("genre")),
            results=[
                SearchResultItem(
                    title=g.title,
                    author=g.author,
                    genre=g.genre,
                    popularity=g.popularity,
                )
                for g in found.results
            ],
            count=found.count,
        )


# =============================================================================
# System Schemas
# =============================================================================

class HealthResponse(ResponseModel):
    """Health check response."""

    status: str
    version: str
    database: str
    environment: str


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Any = None
    timestamp: str
