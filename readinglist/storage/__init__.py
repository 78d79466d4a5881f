"""
Storage Module for the Reading List Manager

Relational persistence for accounts and book records:
- SQLAlchemy engine and transactional session scope
- Owner-scoped book CRUD
- Anonymised aggregate queries over all owners
"""

from readinglist.storage.database import (
    Database,
    DEFAULT_DATABASE_URL,
)
from readinglist.storage.models import (
    Base,
    AccountModel,
    BookModel,
)
from readinglist.storage.account_repository import (
    AccountRepository,
    StoredAccount,
    StoredCredential,
)
from readinglist.storage.book_repository import (
    BookRepository,
    StoredBook,
    BookPopularity,
    LabelCount,
    SearchGroup,
)

__all__ = [
    # Database
    "Database",
    "DEFAULT_DATABASE_URL",
    # Models
    "Base",
    "AccountModel",
    "BookModel",
    # Account Repository
    "AccountRepository",
    "StoredAccount",
    "StoredCredential",
    # Book Repository
    "BookRepository",
    "StoredBook",
    "BookPopularity",
    "LabelCount",
    "SearchGroup",
]
