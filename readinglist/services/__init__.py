"""
Services for the Reading List Manager

- AuthService: registration, login and session lifecycle
- BookCollectionService: owner-scoped CRUD
- PublicAggregationService: anonymised statistics and search
- guard: authentication and ownership gates
"""

from readinglist.services.guard import (
    require_session,
    ensure_owner,
    load_owned_book,
)
from readinglist.services.auth_service import (
    AuthService,
    AuthResult,
    SessionStatus,
)
from readinglist.services.book_service import (
    BookCollectionService,
    BookFields,
    BookFilters,
)
from readinglist.services.aggregation_service import (
    PublicAggregationService,
    CommunityStats,
    SearchResults,
)

__all__ = [
    # Guard
    "require_session",
    "ensure_owner",
    "load_owned_book",
    # Authentication
    "AuthService",
    "AuthResult",
    "SessionStatus",
    # Books
    "BookCollectionService",
    "BookFields",
    "BookFilters",
    # Public aggregation
    "PublicAggregationService",
    "CommunityStats",
    "SearchResults",
]
