"""
Authorization Guard

Gates for protected operations. Checks run in a fixed order:
existence, then ownership, then the mutation itself.
"""

from typing import Optional

from loguru import logger

from readinglist.exceptions import AuthenticationError, AuthorizationError, NotFoundError
from readinglist.sessions import SessionData
from readinglist.storage.book_repository import BookRepository, StoredBook


def require_session(session: Optional[SessionData]) -> SessionData:
    """
    Reject callers without a live session.

    Raises:
        AuthenticationError: if no session is present
    """
    if session is None:
        raise AuthenticationError()
    return session


def ensure_owner(book: StoredBook, session: SessionData) -> None:
    if book.owner_id != session.account_id:
        logger.warning(
            f"Ownership check failed: book={book.id} caller={session.account_id}"
        )
        raise AuthorizationError()


def load_owned_book(
    repository: BookRepository,
    book_id: int,
    session: Optional[SessionData],
) -> StoredBook:
    """
    Load a book the caller owns.

    Args:
        repository: Book storage
        book_id: Requested book
        session: Caller's session, if any

    Returns:
        The stored book

    Raises:
        AuthenticationError: no session
        NotFoundError: the id does not exist
        AuthorizationError: the book belongs to another account
    """
    session = require_session(session)

    book = repository.get(book_id)
    if book is None:
        raise NotFoundError("Book", book_id)

    ensure_owner(book, session)
    return book
