"""
Public Aggregation Service

Anonymised community statistics and search over every account's books.
No authentication is required, so nothing returned here may identify an
owner: results are built only from grouped title, author, genre and status
values plus counts.
"""

from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger

from readinglist.services.boundary import service_boundary
from readinglist.storage.account_repository import AccountRepository
from readinglist.storage.book_repository import (
    BookPopularity,
    BookRepository,
    LabelCount,
    SearchGroup,
)
from readinglist.validation import validate_search_query

DEFAULT_POPULAR_LIMIT = 10
DEFAULT_SEARCH_LIMIT = 20


@dataclass
class CommunityStats:
    """Aggregate view of the whole dataset."""

    popular_books: list[BookPopularity] = field(default_factory=list)
    popular_genres: list[LabelCount] = field(default_factory=list)
    popular_authors: list[LabelCount] = field(default_factory=list)
    status_distribution: list[LabelCount] = field(default_factory=list)
    total_books: int = 0
    total_accounts: int = 0


@dataclass
class SearchResults:
    """Grouped public search hits."""

    query: str
    filters: dict[str, Any]
    results: list[SearchGroup]

    @property
    def count(self) -> int:
        return len(self.results)


class PublicAggregationService:
    """
    Read-only statistics over all owners.

    Usage:
        stats = PublicAggregationService(books, accounts).community_stats()
        stats.popular_books[0].title
    """

    def __init__(
        self,
        repository: BookRepository,
        accounts: AccountRepository,
        popular_limit: int = DEFAULT_POPULAR_LIMIT,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
    ):
        """
        Initialize service.

        Args:
            repository: Book storage
            accounts: Account storage, only counted
            popular_limit: Top-N for each popularity ranking
            search_limit: Max groups returned by search
        """
        self.repository = repository
        self.accounts = accounts
        self.popular_limit = popular_limit
        self.search_limit = search_limit

    def community_stats(self) -> CommunityStats:
        """Compute every ranking fresh from the current data."""
        with service_boundary("public.stats"):
            stats = CommunityStats(
                popular_books=self.repository.popular_books(self.popular_limit),
                popular_genres=self.repository.popular_genres(self.popular_limit),
                popular_authors=self.repository.popular_authors(self.popular_limit),
                status_distribution=self.repository.status_distribution(),
                total_books=self.repository.count(),
                total_accounts=self.accounts.count(),
            )

        logger.debug(f"Community stats computed over {stats.total_books} books")
        return stats

    def search(self, query: Any, genre: Optional[str] = None) -> SearchResults:
        """
        Search titles and authors across every list.

        Args:
            query: Free text, at least 2 characters once trimmed
            genre: Optional exact genre filter

        Returns:
            Groups of (title, author, genre) with a popularity count

        Raises:
            ValidationError: query too short
        """
        cleaned = validate_search_query(query)
        genre = genre.strip() if genre else None

        with service_boundary("public.search"):
            groups = self.repository.search_grouped(
                cleaned,
                genre=genre or None,
                limit=self.search_limit,
            )

        logger.debug(f"Public search returned {len(groups)} groups")
        return SearchResults(
            query=cleaned,
            filters={"genre": genre or None},
            results=groups,
        )
