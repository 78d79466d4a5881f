"""
Integration tests for API endpoints.
"""

from dataclasses import replace
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from readinglist.api.dependencies import ServiceContainer
from readinglist.api.main import create_app

pytestmark = pytest.mark.asyncio

PASSWORD = "Str0ng!pass"


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def add_book(client, cookie, **fields):
    response = await client.post("/api/books", json=fields, headers=cookie)
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoint:
    async def test_health_check(self, client):
        response = await client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "connected"

    async def test_unknown_route(self, client):
        response = await client.get("/api/nowhere")

        assert response.status_code == 404
        data = response.json()
        assert data["code"] == "NOT_FOUND"
        assert data["error"] == "Route not found"
        assert "timestamp" in data

    async def test_request_id_echoed(self, client):
        supplied = await client.get("/api/books/public", headers={"X-Request-ID": "trace-42"})
        generated = await client.get("/api/books/public")

        assert supplied.headers["x-request-id"] == "trace-42"
        assert generated.headers["x-request-id"]


class TestAuthEndpoints:
    """Tests for registration, login, logout and session status."""

    async def test_register_sets_session_cookie(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"username": "alice", "password": PASSWORD, "passwordConfirmation": PASSWORD},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["username"] == "alice"
        assert isinstance(data["id"], int)

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith("reading_list_session=")
        assert "HttpOnly" in set_cookie
        assert "samesite=lax" in set_cookie.lower()
        assert "password" not in response.text.lower()

    async def test_register_accepts_confirm_password_alias(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"username": "alice", "password": PASSWORD, "confirmPassword": PASSWORD},
        )

        assert response.status_code == 201

    async def test_register_duplicate(self, client, signup):
        await signup("alice")

        response = await client.post(
            "/api/auth/register",
            json={"username": "alice", "password": PASSWORD, "passwordConfirmation": PASSWORD},
        )

        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_register_validation_lists_every_rule(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"username": "a!", "password": "weak", "passwordConfirmation": "other"},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "VALIDATION_ERROR"
        assert isinstance(data["detail"], list)
        assert len(data["detail"]) >= 3
        assert "set-cookie" not in response.headers

    async def test_login(self, client, signup, cookie_from):
        await signup("alice")

        response = await client.post("/api/auth/login", json={"username": "alice", "password": PASSWORD})
        client.cookies.clear()

        assert response.status_code == 200
        assert response.json()["username"] == "alice"

        me = await client.get("/api/auth/me", headers=cookie_from(response))
        assert me.json()["username"] == "alice"

    async def test_login_failures_are_indistinguishable(self, client, signup):
        await signup("alice")

        wrong_password = await client.post(
            "/api/auth/login", json={"username": "alice", "password": "Wrong!pass1"}
        )
        unknown_user = await client.post(
            "/api/auth/login", json={"username": "nobody", "password": PASSWORD}
        )

        assert wrong_password.status_code == unknown_user.status_code == 401
        first, second = wrong_password.json(), unknown_user.json()
        assert (first["error"], first["code"], first["detail"]) == (
            second["error"],
            second["code"],
            second["detail"],
        )

    async def test_login_missing_fields(self, client):
        response = await client.post("/api/auth/login", json={})

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_login_replaces_previous_session(self, client, signup, cookie_from):
        old_cookie = await signup("alice")

        response = await client.post(
            "/api/auth/login",
            json={"username": "alice", "password": PASSWORD},
            headers=old_cookie,
        )
        client.cookies.clear()

        assert response.status_code == 200
        assert (await client.get("/api/auth/me", headers=old_cookie)).status_code == 401
        assert (await client.get("/api/auth/me", headers=cookie_from(response))).status_code == 200

    async def test_logout(self, client, signup):
        cookie = await signup("alice")

        response = await client.post("/api/auth/logout", headers=cookie)
        client.cookies.clear()

        assert response.status_code == 200
        assert response.json() == {"message": "Logged out successfully"}
        assert "max-age=0" in response.headers["set-cookie"].lower()

        after = await client.get("/api/books", headers=cookie)
        assert after.status_code == 401

    async def test_logout_without_session(self, client):
        response = await client.post("/api/auth/logout")

        assert response.status_code == 200

    async def test_session_status(self, client, signup):
        anonymous = await client.get("/api/auth/session")
        assert anonymous.json() == {"authenticated": False}

        cookie = await signup("alice")
        signed_in = await client.get("/api/auth/session", headers=cookie)

        data = signed_in.json()
        assert data["authenticated"] is True
        assert data["username"] == "alice"
        assert isinstance(data["id"], int)

    async def test_me(self, client, signup):
        cookie = await signup("alice")

        response = await client.get("/api/auth/me", headers=cookie)

        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "alice"
        assert "created_at" in data
        assert "password" not in data and "passwordHash" not in data

    async def test_me_requires_session(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_ERROR"


class TestBooksEndpoints:
    """Tests for book CRUD endpoints."""

    async def test_create_book(self, client, signup, sample_book_data):
        cookie = await signup("alice")
        session = (await client.get("/api/auth/session", headers=cookie)).json()

        data = await add_book(client, cookie, **sample_book_data)

        assert data["title"] == sample_book_data["title"]
        assert data["status"] == "reading"
        assert data["ownerId"] == session["id"]
        assert {"createdAt", "updatedAt"} <= set(data)

    async def test_create_ignores_client_owner(self, client, signup):
        alice = await signup("alice")
        await signup("bob")
        alice_id = (await client.get("/api/auth/session", headers=alice)).json()["id"]

        data = await add_book(client, alice, title="Dune", ownerId=alice_id + 1, user_id=alice_id + 1)

        assert data["ownerId"] == alice_id

    async def test_create_defaults_and_trims(self, client, signup):
        cookie = await signup("alice")

        data = await add_book(client, cookie, title="  Dune  ", author="")

        assert data["title"] == "Dune"
        assert data["author"] is None
        assert data["status"] == "to-read"

    async def test_create_invalid(self, client, signup):
        cookie = await signup("alice")

        response = await client.post(
            "/api/books",
            json={"title": "", "status": "finished"},
            headers=cookie,
        )

        assert response.status_code == 400
        assert len(response.json()["detail"]) == 2

    async def test_books_require_session(self, client):
        assert (await client.get("/api/books")).status_code == 401
        assert (await client.post("/api/books", json={"title": "Dune"})).status_code == 401
        assert (await client.get("/api/books/1")).status_code == 401

    async def test_session_checked_before_body(self, client, signup):
        alice = await signup("alice")
        book = await add_book(client, alice, title="Dune")

        created = await client.post("/api/books", json={"title": 5})
        assert created.status_code == 401
        assert created.json()["code"] == "AUTHENTICATION_ERROR"

        partial = await client.put(f"/api/books/{book['id']}", json={"title": "x"})
        assert partial.status_code == 401
        assert partial.json()["code"] == "AUTHENTICATION_ERROR"

        assert (await client.delete(f"/api/books/{book['id']}")).status_code == 401
        unchanged = await client.get(f"/api/books/{book['id']}", headers=alice)
        assert unchanged.json() == book

    async def test_create_non_string_title(self, client, signup):
        cookie = await signup("alice")

        response = await client.post("/api/books", json={"title": 5}, headers=cookie)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert "Title must be a string" in response.json()["detail"]

    async def test_list_books(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await add_book(client, alice, title="Dune", genre="Sci-Fi", status="read")
        await add_book(client, alice, title="Emma", author="Jane Austen", genre="Classic")
        await add_book(client, bob, title="Bob's Book")

        everything = (await client.get("/api/books", headers=alice)).json()
        assert [b["title"] for b in everything] == ["Emma", "Dune"]

        read = (await client.get("/api/books", params={"status": "read"}, headers=alice)).json()
        assert [b["title"] for b in read] == ["Dune"]

        austen = (await client.get("/api/books", params={"search": "AUSTEN"}, headers=alice)).json()
        assert [b["title"] for b in austen] == ["Emma"]

        combined = await client.get(
            "/api/books", params={"status": "read", "genre": "Classic"}, headers=alice
        )
        assert combined.json() == []

    async def test_list_invalid_status(self, client, signup):
        cookie = await signup("alice")

        response = await client.get("/api/books", params={"status": "done"}, headers=cookie)

        assert response.status_code == 400

    async def test_get_update_delete(self, client, signup):
        cookie = await signup("alice")
        book = await add_book(client, cookie, title="Dune", author="Frank Herbert", notes="Spice")

        fetched = await client.get(f"/api/books/{book['id']}", headers=cookie)
        assert fetched.json() == book

        updated = await client.put(
            f"/api/books/{book['id']}",
            json={"title": "Dune", "author": "Frank Herbert", "genre": "Sci-Fi", "status": "read", "notes": None},
            headers=cookie,
        )
        assert updated.status_code == 200
        data = updated.json()
        assert data["status"] == "read"
        assert data["genre"] == "Sci-Fi"
        assert data["notes"] is None
        assert data["createdAt"] == book["createdAt"]
        assert parse_timestamp(data["updatedAt"]) > parse_timestamp(book["updatedAt"])

        deleted = await client.delete(f"/api/books/{book['id']}", headers=cookie)
        assert deleted.json() == {"deletedId": book["id"]}

        gone = await client.get(f"/api/books/{book['id']}", headers=cookie)
        assert gone.status_code == 404

    async def test_update_requires_every_field(self, client, signup):
        cookie = await signup("alice")
        book = await add_book(client, cookie, title="Dune")

        response = await client.put(
            f"/api/books/{book['id']}",
            json={"title": "Dune Messiah"},
            headers=cookie,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_foreign_book_is_forbidden(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        book = await add_book(client, alice, title="Dune")
        replacement = {"title": "Mine now", "author": None, "genre": None, "status": "read", "notes": None}

        assert (await client.get(f"/api/books/{book['id']}", headers=bob)).status_code == 403
        assert (
            await client.put(f"/api/books/{book['id']}", json=replacement, headers=bob)
        ).status_code == 403
        denied = await client.delete(f"/api/books/{book['id']}", headers=bob)
        assert denied.status_code == 403
        assert denied.json()["code"] == "AUTHORIZATION_ERROR"

        unchanged = await client.get(f"/api/books/{book['id']}", headers=alice)
        assert unchanged.json() == book

    async def test_partial_update_of_foreign_book_is_forbidden(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        book = await add_book(client, alice, title="Dune", author="Frank Herbert")

        response = await client.put(f"/api/books/{book['id']}", json={"title": "Mine"}, headers=bob)

        assert response.status_code == 403
        assert response.json()["code"] == "AUTHORIZATION_ERROR"
        unchanged = await client.get(f"/api/books/{book['id']}", headers=alice)
        assert unchanged.json() == book

    async def test_search_folds_non_ascii_case(self, client, signup):
        cookie = await signup("alice")
        await add_book(client, cookie, title="Émile", author="Jean-Jacques Rousseau")
        await add_book(client, cookie, title="Emma", author="Jane Austen")

        for term in ("émile", "ÉMILE"):
            found = (await client.get("/api/books", params={"search": term}, headers=cookie)).json()
            assert [b["title"] for b in found] == ["Émile"]

    async def test_missing_book(self, client, signup):
        cookie = await signup("alice")

        response = await client.get("/api/books/9999", headers=cookie)

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestPublicEndpoints:
    """Tests for anonymised statistics and search."""

    async def test_empty_stats(self, client):
        response = await client.get("/api/books/public")

        assert response.status_code == 200
        assert response.json() == {
            "popularBooks": [],
            "popularGenres": [],
            "popularAuthors": [],
            "statusDistribution": [],
            "totalBooks": 0,
            "totalAccounts": 0,
        }

    async def test_stats_keep_distinct_authors_apart(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await add_book(client, alice, title="Dune", status="to-read")
        await add_book(client, bob, title="Dune", author="Frank Herbert", genre="Sci-Fi")

        data = (await client.get("/api/books/public")).json()

        dune = sorted(
            ((b["title"], b["author"], b["count"]) for b in data["popularBooks"]),
            key=lambda row: row[1] or "",
        )
        assert dune == [("Dune", None, 1), ("Dune", "Frank Herbert", 1)]
        assert data["popularGenres"] == [{"genre": "Sci-Fi", "count": 1}]
        assert data["statusDistribution"] == [{"status": "to-read", "count": 2}]
        assert data["totalBooks"] == 2
        assert data["totalAccounts"] == 2

    async def test_stats_are_anonymous(self, client, signup):
        alice = await signup("alice")
        await add_book(client, alice, title="Dune", author="Frank Herbert", genre="Sci-Fi")

        response = await client.get("/api/books/public")

        assert "alice" not in response.text
        assert "ownerId" not in response.text

    async def test_search(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await add_book(client, alice, title="Dune", author="Frank Herbert", genre="Sci-Fi")
        await add_book(client, bob, title="Dune", author="Frank Herbert", genre="Sci-Fi")
        await add_book(client, bob, title="Emma", author="Jane Austen", genre="Classic")

        response = await client.get("/api/books/public/search", params={"q": "herbert"})

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "herbert"
        assert data["filters"] == {"genre": None}
        assert data["count"] == 1
        assert data["results"] == [
            {"title": "Dune", "author": "Frank Herbert", "genre": "Sci-Fi", "popularity": 2}
        ]
        assert "bob" not in response.text

    async def test_search_genre_filter(self, client, signup):
        alice = await signup("alice")
        await add_book(client, alice, title="Dune", genre="Sci-Fi")
        await add_book(client, alice, title="Dune", genre="Classic")

        response = await client.get(
            "/api/books/public/search", params={"q": "dune", "genre": "Classic"}
        )

        data = response.json()
        assert data["filters"] == {"genre": "Classic"}
        assert [r["genre"] for r in data["results"]] == ["Classic"]

    async def test_search_no_matches(self, client):
        response = await client.get("/api/books/public/search", params={"q": "xy"})

        assert response.status_code == 200
        assert response.json()["count"] == 0

    async def test_search_folds_non_ascii_case(self, client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await add_book(client, alice, title="Émile", author="Jean-Jacques Rousseau")
        await add_book(client, bob, title="Émile", author="Jean-Jacques Rousseau")

        response = await client.get("/api/books/public/search", params={"q": "émile"})

        assert response.json()["results"] == [
            {"title": "Émile", "author": "Jean-Jacques Rousseau", "genre": None, "popularity": 2}
        ]

    @pytest.mark.parametrize("params", [{"q": "x"}, {"q": "  "}, {}])
    async def test_search_query_too_short(self, client, params):
        response = await client.get("/api/books/public/search", params=params)

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"


class TestRateLimiting:
    @pytest_asyncio.fixture
    async def limited_client(self, test_settings):
        settings = replace(test_settings, rate_limit_enabled=True, auth_rate_limit=2)
        services = ServiceContainer(settings)
        transport = ASGITransport(app=create_app(services=services))
        async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
            yield ac
        services.close()

    async def test_login_is_throttled(self, limited_client):
        body = {"username": "nobody", "password": PASSWORD}

        for _ in range(2):
            response = await limited_client.post("/api/auth/login", json=body)
            assert response.status_code == 401

        throttled = await limited_client.post("/api/auth/login", json=body)

        assert throttled.status_code == 429
        assert throttled.json()["code"] == "RATE_LIMIT_EXCEEDED"
        assert int(throttled.headers["retry-after"]) > 0

    async def test_other_paths_use_global_budget(self, limited_client):
        body = {"username": "nobody", "password": PASSWORD}
        for _ in range(3):
            await limited_client.post("/api/auth/login", json=body)

        response = await limited_client.get("/api/books/public")

        assert response.status_code == 200
