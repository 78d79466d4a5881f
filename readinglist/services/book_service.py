"""
Book Collection Service

CRUD over the caller's own reading list. Every operation takes the caller's
session; ownership is enforced by scoping queries to the session's account
and by the guard for single-record operations.
"""

from dataclasses import dataclass
from typing import Any, Optional

from loguru import logger

from readinglist.exceptions import NotFoundError
from readinglist.services.boundary import service_boundary
from readinglist.services.guard import load_owned_book, require_session
from readinglist.sessions import SessionData
from readinglist.storage.book_repository import BookRepository, StoredBook
from readinglist.validation import validate_book_data, validate_status_filter


@dataclass
class BookFields:
    """
    Editable fields of a book, exactly as the client sent them.

    The only fields that can reach storage. ``owner_id`` is not one of them;
    it always comes from the session. On replacement, a field the client
    left out is ``validation.MISSING``.
    """

    title: Any = None
    author: Any = None
    genre: Any = None
    status: Any = None
    notes: Any = None


@dataclass
class BookFilters:
    """Conjunctive filters for listing; ``None`` means unconstrained."""

    status: Optional[str] = None
    genre: Optional[str] = None
    search: Optional[str] = None

    def normalized(self) -> "BookFilters":
        search = self.search.strip() if self.search else None
        return BookFilters(
            status=self.status or None,
            genre=self.genre or None,
            search=search or None,
        )


class BookCollectionService:
    """
    Owner-scoped book operations.

    Usage:
        books = BookCollectionService(repository)
        book = books.create(session, BookFields(title="Dune"))
        books.list(session, BookFilters(status="to-read"))
    """

    def __init__(self, repository: BookRepository):
        self.repository = repository

    def list(
        self,
        session: Optional[SessionData],
        filters: Optional[BookFilters] = None,
    ) -> list[StoredBook]:
        """
        The caller's books matching every given filter, newest first.

        Raises:
            AuthenticationError: no session
            ValidationError: unknown status value
        """
        session = require_session(session)
        filters = (filters or BookFilters()).normalized()
        validate_status_filter(filters.status)

        with service_boundary("books.list"):
            return self.repository.list_for_owner(
                session.account_id,
                status=filters.status,
                genre=filters.genre,
                search=filters.search,
            )

    def create(self, session: Optional[SessionData], fields: BookFields) -> StoredBook:
        """
        Add a book to the caller's list.

        Args:
            session: Caller's session
            fields: Client-supplied fields

        Returns:
            The stored record, id and timestamps included

        Raises:
            AuthenticationError: no session
            ValidationError: every violated field rule
        """
        session = require_session(session)
        data = validate_book_data(
            fields.title,
            author=fields.author,
            genre=fields.genre,
            status=fields.status,
            notes=fields.notes,
        )

        with service_boundary("books.create"):
            return self.repository.create(owner_id=session.account_id, **data)

    def get(self, session: Optional[SessionData], book_id: int) -> StoredBook:
        with service_boundary("books.get"):
            return load_owned_book(self.repository, book_id, session)

    def update(
        self,
        session: Optional[SessionData],
        book_id: int,
        fields: BookFields,
    ) -> StoredBook:
        """
        Replace every editable field of one of the caller's books.

        Optional fields set to None are cleared and a None status resets to
        ``to-read``. Fields left as ``MISSING`` are rejected, after the
        ownership check.

        Raises:
            AuthenticationError: no session
            NotFoundError: no such book
            AuthorizationError: the book belongs to another account
            ValidationError: every violated field rule
        """
        with service_boundary("books.update"):
            load_owned_book(self.repository, book_id, session)
            data = validate_book_data(
                fields.title,
                author=fields.author,
                genre=fields.genre,
                status=fields.status,
                notes=fields.notes,
            )

            updated = self.repository.update(book_id, **data)

        if updated is None:
            # Deleted between the ownership check and the write
            raise NotFoundError("Book", book_id)
        return updated

    def delete(self, session: Optional[SessionData], book_id: int) -> int:
        """
        Remove one of the caller's books.

        Returns:
            The deleted id
        """
        with service_boundary("books.delete"):
            book = load_owned_book(self.repository, book_id, session)
            deleted = self.repository.delete(book.id)

        if not deleted:
            # Deleted between the ownership check and the write
            raise NotFoundError("Book", book_id)

        logger.info(f"Book removed from list: id={book_id}")
        return book_id
