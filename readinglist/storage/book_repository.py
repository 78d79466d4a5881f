"""
Book Repository

Structured storage for reading-list records using SQLAlchemy:
- Owner-scoped CRUD (one row per mutation)
- Filtered listing for a single owner
- Read-only aggregate queries over every owner's records

Design Decisions:
1. Explicit columns: create/update take named fields, never arbitrary kwargs
2. Read-after-write: create re-reads the inserted row before committing
3. Anonymised aggregates: grouped queries never select owner_id
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from loguru import logger
from sqlalchemy import String, and_, func, or_, select
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

from readinglist.storage.database import Database
from readinglist.storage.models import BookModel, utcnow


@dataclass
class StoredBook:
    """Data class for book data transfer."""

    id: int
    title: str
    owner_id: int
    status: str
    created_at: datetime
    updated_at: datetime

    author: Optional[str] = None
    genre: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_model(cls, model: BookModel) -> "StoredBook":
        """Create from SQLAlchemy model."""
        return cls(
            id=model.id,
            title=model.title,
            author=model.author,
            genre=model.genre,
            status=model.status,
            notes=model.notes,
            owner_id=model.owner_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass
class BookPopularity:
    """A (title, author) pair and how many records carry it."""

    title: str
    author: Optional[str]
    count: int


@dataclass
class LabelCount:
    """A genre, author or status and its occurrence count."""

    label: str
    count: int


@dataclass
class SearchGroup:
    """A (title, author, genre) group matched by a public search."""

    title: str
    author: Optional[str]
    genre: Optional[str]
    popularity: int


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class casefold(FunctionElement):
    """Unicode-aware lower-casing for case-insensitive matching."""

    type = String()
    inherit_cache = True


@compiles(casefold)
def _casefold_default(element, compiler, **kw):
    return f"lower({compiler.process(element.clauses, **kw)})"


@compiles(casefold, "sqlite")
def _casefold_sqlite(element, compiler, **kw):
    # Registered per connection by storage.database
    return f"casefold({compiler.process(element.clauses, **kw)})"


def _contains(column, text: str):
    pattern = f"%{_escape_like(text.casefold())}%"
    return casefold(column).like(pattern, escape="\\")


class BookRepository:
    """
    Repository for book records.

    Usage:
        repo = BookRepository(database)

        book = repo.create(owner_id=1, title="Dune", author="Frank Herbert")
        repo.list_for_owner(1, status="to-read")
        repo.popular_books(limit=10)
    """

    def __init__(self, database: Database):
        self.database = database

    # =========================================================================
    # Single-record operations
    # =========================================================================

    def create(
        self,
        owner_id: int,
        title: str,
        author: Optional[str] = None,
        genre: Optional[str] = None,
        status: str = "to-read",
        notes: Optional[str] = None,
    ) -> StoredBook:
        """
        Insert a book and return the stored row.

        Args:
            owner_id: Owning account
            title: Book title
            author: Author, optional
            genre: Genre, optional
            status: Reading status
            notes: Free-text notes, optional

        Returns:
            The row as read back from the database
        """
        now = utcnow()
        with self.database.session_scope() as session:
            book = BookModel(
                owner_id=owner_id,
                title=title,
                author=author,
                genre=genre,
                status=status,
                notes=notes,
                created_at=now,
                updated_at=now,
            )
            session.add(book)
            session.flush()

            stored = session.execute(
                select(BookModel).where(BookModel.id == book.id)
            ).scalar_one()
            result = StoredBook.from_model(stored)

        logger.info(f"Book created: id={result.id} owner={owner_id}")
        return result

    def get(self, book_id: int) -> Optional[StoredBook]:
        """
        Get book by ID, regardless of owner.

        Ownership is checked by the caller.
        """
        with self.database.session_scope() as session:
            book = session.get(BookModel, book_id)
            return StoredBook.from_model(book) if book else None

    def update(
        self,
        book_id: int,
        title: str,
        author: Optional[str],
        genre: Optional[str],
        status: str,
        notes: Optional[str],
    ) -> Optional[StoredBook]:
        """
        Replace the editable fields of a book.

        ``updated_at`` always moves strictly forward, even when the clock has
        not ticked since the previous write.

        Returns:
            Updated StoredBook or None when the id does not exist
        """
        with self.database.session_scope() as session:
            book = session.get(BookModel, book_id)
            if book is None:
                return None

            book.title = title
            book.author = author
            book.genre = genre
            book.status = status
            book.notes = notes

            now = utcnow()
            if book.updated_at is not None and now <= book.updated_at:
                now = book.updated_at + timedelta(microseconds=1)
            book.updated_at = now

            session.flush()
            result = StoredBook.from_model(book)

        logger.info(f"Book updated: id={book_id}")
        return result

    def delete(self, book_id: int) -> bool:
        """
        Delete a book.

        Returns:
            True if a row was removed
        """
        with self.database.session_scope() as session:
            book = session.get(BookModel, book_id)
            if book is None:
                return False
            session.delete(book)

        logger.info(f"Book deleted: id={book_id}")
        return True

    # =========================================================================
    # Owner-scoped listing
    # =========================================================================

    def list_for_owner(
        self,
        owner_id: int,
        status: Optional[str] = None,
        genre: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[StoredBook]:
        """
        List one owner's books, newest first.

        Args:
            owner_id: Owning account
            status: Exact status match
            genre: Exact, case-sensitive genre match
            search: Case-insensitive substring of title or author

        Returns:
            Matching books (possibly empty)
        """
        conditions = [BookModel.owner_id == owner_id]
        if status:
            conditions.append(BookModel.status == status)
        if genre:
            conditions.append(BookModel.genre == genre)
        if search:
            conditions.append(or_(
                _contains(BookModel.title, search),
                _contains(BookModel.author, search),
            ))

        query = (
            select(BookModel)
            .where(and_(*conditions))
            .order_by(BookModel.created_at.desc(), BookModel.id.desc())
        )

        with self.database.session_scope() as session:
            books = session.execute(query).scalars().all()
            return [StoredBook.from_model(b) for b in books]

    # =========================================================================
    # Anonymised aggregates (no owner columns selected)
    # =========================================================================

    def count(self) -> int:
        with self.database.session_scope() as session:
            return session.execute(select(func.count(BookModel.id))).scalar_one()

    def popular_books(self, limit: int = 10) -> list[BookPopularity]:
        """Most common exact (title, author) pairs."""
        occurrences = func.count(BookModel.id).label("occurrences")
        query = (
            select(BookModel.title, BookModel.author, occurrences)
            .group_by(BookModel.title, BookModel.author)
            .order_by(occurrences.desc(), BookModel.title.asc(), BookModel.author.asc())
            .limit(limit)
        )

        with self.database.session_scope() as session:
            rows = session.execute(query).all()
            return [BookPopularity(title=title, author=author, count=n) for title, author, n in rows]

    def _popular_labels(self, column, limit: Optional[int]) -> list[LabelCount]:
        occurrences = func.count(BookModel.id).label("occurrences")
        query = (
            select(column, occurrences)
            .where(column.isnot(None), column != "")
            .group_by(column)
            .order_by(occurrences.desc(), column.asc())
        )
        if limit is not None:
            query = query.limit(limit)

        with self.database.session_scope() as session:
            rows = session.execute(query).all()
            return [LabelCount(label=label, count=n) for label, n in rows]

    def popular_genres(self, limit: int = 10) -> list[LabelCount]:
        return self._popular_labels(BookModel.genre, limit)

    def popular_authors(self, limit: int = 10) -> list[LabelCount]:
        return self._popular_labels(BookModel.author, limit)

    def status_distribution(self) -> list[LabelCount]:
        """Every status present, with counts, most common first."""
        return self._popular_labels(BookModel.status, None)

    def search_grouped(
        self,
        query: str,
        genre: Optional[str] = None,
        limit: int = 20,
    ) -> list[SearchGroup]:
        """
        Search every owner's books by title/author.

        Args:
            query: Case-insensitive substring of title or author
            genre: Exact genre filter
            limit: Max groups

        Returns:
            (title, author, genre) groups with a popularity count
        """
        popularity = func.count(BookModel.id).label("popularity")
        conditions = [or_(
            _contains(BookModel.title, query),
            _contains(BookModel.author, query),
        )]
        if genre:
            conditions.append(BookModel.genre == genre)

        statement = (
            select(BookModel.title, BookModel.author, BookModel.genre, popularity)
            .where(and_(*conditions))
            .group_by(BookModel.title, BookModel.author, BookModel.genre)
            .order_by(popularity.desc(), BookModel.title.asc())
            .limit(limit)
        )

        with self.database.session_scope() as session:
            rows = session.execute(statement).all()
            return [
                SearchGroup(title=title, author=author, genre=genre_, popularity=n)
                for title, author, genre_, n in rows
            ]
