"""
Pytest configuration and fixtures for Reading List Manager tests.
"""

import sys
from pathlib import Path
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from readinglist.api.dependencies import ServiceContainer, Settings
from readinglist.api.main import create_app
from readinglist.services.aggregation_service import PublicAggregationService
from readinglist.services.auth_service import AuthService
from readinglist.services.book_service import BookCollectionService
from readinglist.sessions import InMemorySessionStore
from readinglist.storage.account_repository import AccountRepository
from readinglist.storage.book_repository import BookRepository
from readinglist.storage.database import Database

STRONG_PASSWORD = "Str0ng!pass"
COOKIE_NAME = "reading_list_session"


# =============================================================================
# Test Settings
# =============================================================================

@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Settings bound to a throwaway SQLite file."""
    return Settings(
        database_url=f"sqlite:///{tmp_path / 'reading_list_test.db'}",
        database_echo=False,
        session_cookie_name=COOKIE_NAME,
        bcrypt_rounds=4,
        rate_limit_enabled=False,
        environment="test",
        debug=False,
        expose_error_details=False,
    )


# =============================================================================
# Storage Fixtures
# =============================================================================

@pytest.fixture
def database(test_settings):
    db = Database(test_settings.database_url)
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def account_repository(database) -> AccountRepository:
    return AccountRepository(database)


@pytest.fixture
def book_repository(database) -> BookRepository:
    return BookRepository(database)


# =============================================================================
# Service Fixtures
# =============================================================================

@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def auth_service(account_repository, session_store) -> AuthService:
    return AuthService(account_repository, session_store, bcrypt_rounds=4)


@pytest.fixture
def book_service(book_repository) -> BookCollectionService:
    return BookCollectionService(book_repository)


@pytest.fixture
def aggregation_service(book_repository, account_repository) -> PublicAggregationService:
    return PublicAggregationService(book_repository, account_repository)


@pytest.fixture
def make_session(auth_service):
    """Register an account and return its session."""

    def _make(username: str, password: str = STRONG_PASSWORD):
        return auth_service.register(username, password, password).session

    return _make


# =============================================================================
# Application Fixtures
# =============================================================================

@pytest.fixture
def container(test_settings):
    services = ServiceContainer(test_settings)
    yield services
    services.close()


@pytest.fixture
def app(container):
    """Create FastAPI application for testing."""
    return create_app(services=container)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client for API tests."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac


def session_cookie(response) -> dict:
    """Build a Cookie header from the session cookie a response set."""
    for header in response.headers.get_list("set-cookie"):
        name, _, rest = header.partition("=")
        if name == COOKIE_NAME:
            return {"Cookie": f"{COOKIE_NAME}={rest.split(';', 1)[0]}"}
    raise AssertionError("response did not set a session cookie")


@pytest.fixture
def signup(client):
    """
    Register an account over HTTP and return its Cookie header.

    The client's own cookie jar is cleared so each test states explicitly
    which account a request is made as.
    """

    async def _signup(username: str, password: str = STRONG_PASSWORD) -> dict:
        response = await client.post(
            "/api/auth/register",
            json={
                "username": username,
                "password": password,
                "passwordConfirmation": password,
            },
        )
        assert response.status_code == 201, response.text
        client.cookies.clear()
        return session_cookie(response)

    return _signup


# =============================================================================
# Data Fixtures
# =============================================================================

@pytest.fixture
def sample_book_data() -> dict:
    return {
        "title": "The Left Hand of Darkness",
        "author": "Ursula K. Le Guin",
        "genre": "Science Fiction",
        "status": "reading",
        "notes": "Borrowed from the library",
    }


@pytest.fixture
def cookie_from():
    """Return the helper that turns a Set-Cookie response into request headers."""
    return session_cookie
