"""
Database engine and session management.

One ``Database`` owns the SQLAlchemy engine (and its connection pool) for the
whole process; repositories borrow short-lived ORM sessions from it.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from readinglist.exceptions import ConstraintViolationError, StorageError
from readinglist.storage.models import Base

DEFAULT_DATABASE_URL = "sqlite:///./reading_list.db"


def _casefold(value):
    return value.casefold() if isinstance(value, str) else value


def _configure_sqlite_connection(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
    # Built-in lower() only folds ASCII
    dbapi_connection.create_function("casefold", 1, _casefold, deterministic=True)


class Database:
    """
    Engine plus session factory.

    Usage:
        db = Database("sqlite:///./reading_list.db")
        db.create_tables()

        with db.session_scope() as session:
            session.add(...)
    """

    def __init__(self, database_url: Optional[str] = None, echo: bool = False):
        """
        Initialize database.

        Args:
            database_url: SQLAlchemy database URL
            echo: Log every SQL statement
        """
        # Strip async drivers, repositories are synchronous
        url = (database_url or DEFAULT_DATABASE_URL).replace("+aiosqlite", "").replace("+asyncpg", "")
        self.database_url = url

        connect_args = {}
        if url.startswith("sqlite"):
            # Route handlers run in a thread pool
            connect_args["check_same_thread"] = False

        self.engine: Engine = create_engine(
            url,
            echo=echo,
            pool_pre_ping=True,
            connect_args=connect_args,
        )

        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _configure_sqlite_connection)

        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

        logger.info(f"Database initialized: {url[:50]}")

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        Base.metadata.drop_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope.

        Commits on success and rolls back on any failure. SQLAlchemy errors are
        translated: constraint failures become ``ConstraintViolationError``,
        anything else ``StorageError``. Raw driver text is kept as internal
        detail only.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError as e:
            session.rollback()
            logger.warning(f"Constraint violation: {type(e.orig).__name__}")
            raise ConstraintViolationError(internal_detail=str(e.orig)) from e
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"Database error: {type(e).__name__}")
            raise StorageError(internal_detail=str(e)) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def ping(self) -> bool:
        """Return True when the database answers a trivial query."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {type(e).__name__}")
            return False
