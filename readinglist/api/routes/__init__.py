"""
API Routes for the Reading List Manager

Route modules:
- auth: registration, login, logout, session status
- public: anonymised statistics and search (registered before books)
- books: owner-scoped book CRUD
"""

from readinglist.api.routes.auth import router as auth_router
from readinglist.api.routes.public import router as public_router
from readinglist.api.routes.books import router as books_router

__all__ = [
    "auth_router",
    "public_router",
    "books_router",
]
