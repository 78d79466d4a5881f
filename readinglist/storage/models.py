"""
Database models for the Reading List Manager.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite stores no timezone)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AccountModel(Base):
    """Registered user identity."""
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(30), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    books = relationship(
        "BookModel",
        back_populates="owner",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint(
            "length(username) >= 3 AND length(username) <= 30",
            name="accounts_username_length",
        ),
        # GLOB is SQLite-only; other backends rely on validation.validate_username
        CheckConstraint(
            "username NOT GLOB '*[^A-Za-z0-9_-]*'",
            name="accounts_username_format",
        ).ddl_if(dialect="sqlite"),
    )


class BookModel(Base):
    """One entry in an account's reading list."""
    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)

    title = Column(String(255), nullable=False)
    author = Column(String(255))
    genre = Column(String(100))
    status = Column(String(20), nullable=False, default="to-read")
    notes = Column(Text)

    owner_id = Column(
        Integer,
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    owner = relationship("AccountModel", back_populates="books")

    __table_args__ = (
        CheckConstraint(
            "status IN ('to-read', 'reading', 'read')",
            name="books_status_values",
        ),
        CheckConstraint(
            "length(title) >= 1 AND length(title) <= 255",
            name="books_title_length",
        ),
        CheckConstraint(
            "author IS NULL OR length(author) <= 255",
            name="books_author_length",
        ),
        CheckConstraint(
            "genre IS NULL OR length(genre) <= 100",
            name="books_genre_length",
        ),
        CheckConstraint(
            "notes IS NULL OR length(notes) <= 1000",
            name="books_notes_length",
        ),
        Index("idx_books_owner_id", "owner_id"),
        Index("idx_books_status", "status"),
        Index("idx_books_genre", "genre"),
        Index("idx_books_author", "author"),
        Index("idx_books_owner_status", "owner_id", "status"),
        Index("idx_books_created_at", "created_at"),
    )
