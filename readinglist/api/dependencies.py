"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Service instances (auth, books, public aggregation)
- The caller's session, resolved from the session cookie
"""

import os
import threading
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request

from readinglist.services.guard import require_session
from readinglist.sessions import InMemorySessionStore, SessionData, SessionStore


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./reading_list.db"
    database_echo: bool = False

    # Sessions
    session_ttl_hours: int = 24
    session_cookie_name: str = "reading_list_session"

    # Passwords
    bcrypt_rounds: int = 12

    # Public aggregation
    popular_limit: int = 10
    search_limit: int = 20

    # Rate limiting (requests per window, per client)
    rate_limit_enabled: bool = True
    rate_limit_requests: int = 100
    auth_rate_limit: int = 5
    rate_limit_window_seconds: int = 900

    # CORS
    frontend_url: str = "http://localhost:5173"
    cors_allowed_origins: str = ""

    # API
    api_prefix: str = "/api"

    # Environment
    environment: str = "development"
    debug: bool = True
    expose_error_details: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            session_ttl_hours=int(os.getenv("SESSION_TTL_HOURS", cls.session_ttl_hours)),
            session_cookie_name=os.getenv("SESSION_COOKIE_NAME", cls.session_cookie_name),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", cls.bcrypt_rounds)),
            popular_limit=int(os.getenv("POPULAR_LIMIT", cls.popular_limit)),
            search_limit=int(os.getenv("SEARCH_LIMIT", cls.search_limit)),
            rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
            rate_limit_requests=int(os.getenv("RATE_LIMIT_RPM", cls.rate_limit_requests)),
            auth_rate_limit=int(os.getenv("AUTH_RATE_LIMIT", cls.auth_rate_limit)),
            rate_limit_window_seconds=int(
                os.getenv("RATE_LIMIT_WINDOW_SECONDS", cls.rate_limit_window_seconds)
            ),
            frontend_url=os.getenv("FRONTEND_URL", cls.frontend_url),
            cors_allowed_origins=os.getenv("CORS_ALLOWED_ORIGINS", cls.cors_allowed_origins),
            api_prefix=os.getenv("API_PREFIX", cls.api_prefix),
            environment=os.getenv("READINGLIST_ENV", cls.environment),
            debug=os.getenv("DEBUG", "true").lower() == "true",
            expose_error_details=os.getenv("EXPOSE_ERROR_DETAILS", "false").lower() == "true",
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(hours=self.session_ttl_hours)

    @property
    def extra_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allowed_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    One container per application; it owns the database engine and the
    session store, so two apps built in the same process never share state.
    """

    def __init__(self, settings: Settings, session_store: Optional[SessionStore] = None):
        self.settings = settings
        self._session_store = session_store
        self._database = None
        self._account_repository = None
        self._book_repository = None
        self._auth_service = None
        self._book_service = None
        self._aggregation_service = None
        self._lock = threading.Lock()

    @property
    def database(self):
        """Get database instance, creating tables on first use."""
        with self._lock:
            if self._database is None:
                from readinglist.storage.database import Database
                database = Database(
                    self.settings.database_url,
                    echo=self.settings.database_echo,
                )
                database.create_tables()
                self._database = database
        return self._database

    @property
    def session_store(self) -> SessionStore:
        """Get session store instance."""
        if self._session_store is None:
            self._session_store = InMemorySessionStore(ttl=self.settings.session_ttl)
        return self._session_store

    @property
    def account_repository(self):
        """Get account repository instance."""
        if self._account_repository is None:
            from readinglist.storage.account_repository import AccountRepository
            self._account_repository = AccountRepository(self.database)
        return self._account_repository

    @property
    def book_repository(self):
        """Get book repository instance."""
        if self._book_repository is None:
            from readinglist.storage.book_repository import BookRepository
            self._book_repository = BookRepository(self.database)
        return self._book_repository

    @property
    def auth_service(self):
        """Get authentication service instance."""
        if self._auth_service is None:
            from readinglist.services.auth_service import AuthService
            self._auth_service = AuthService(
                accounts=self.account_repository,
                sessions=self.session_store,
                bcrypt_rounds=self.settings.bcrypt_rounds,
            )
        return self._auth_service

    @property
    def book_service(self):
        """Get book collection service instance."""
        if self._book_service is None:
            from readinglist.services.book_service import BookCollectionService
            self._book_service = BookCollectionService(self.book_repository)
        return self._book_service

    @property
    def aggregation_service(self):
        """Get public aggregation service instance."""
        if self._aggregation_service is None:
            from readinglist.services.aggregation_service import PublicAggregationService
            self._aggregation_service = PublicAggregationService(
                self.book_repository,
                self.account_repository,
                popular_limit=self.settings.popular_limit,
                search_limit=self.settings.search_limit,
            )
        return self._aggregation_service

    def close(self) -> None:
        """Release the connection pool."""
        if self._database is not None:
            self._database.dispose()


def get_service_container(request: Request) -> ServiceContainer:
    """Get the service container of the application serving this request."""
    return request.app.state.services


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_auth_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for authentication service."""
    return container.auth_service


def get_book_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for book collection service."""
    return container.book_service


def get_aggregation_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for public aggregation service."""
    return container.aggregation_service


# =============================================================================
# Session Dependencies
# =============================================================================

def get_session_token(
    request: Request,
    container: ServiceContainer = Depends(get_service_container),
) -> Optional[str]:
    """Raw session token from the cookie, if the client sent one."""
    return request.cookies.get(container.settings.session_cookie_name)


def get_current_session(
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
) -> Optional[SessionData]:
    """
    Resolve the caller's session.

    Returns None for anonymous or expired sessions; the services decide
    whether that is acceptable.
    """
    return container.auth_service.resolve(token)



def get_required_session(
    session: Optional[SessionData] = Depends(get_current_session),
) -> SessionData:
    """
    Resolve the caller's session or fail with 401.

    Route dependencies run before the request body is validated, so an
    anonymous caller is rejected whatever body it sent.
    """
    return require_session(session)
