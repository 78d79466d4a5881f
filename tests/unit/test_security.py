"""
Unit tests for password hashing and session storage.
"""

from datetime import datetime, timedelta, timezone

import pytest

from readinglist.security import check_password_strength, hash_password, verify_password
from readinglist.sessions import InMemorySessionStore


class TestPasswordHashing:
    """Tests for bcrypt hashing helpers."""

    def test_hash_and_verify(self):
        hashed = hash_password("Str0ng!pass", rounds=4)

        assert hashed != "Str0ng!pass"
        assert hashed.startswith("$2")
        assert verify_password("Str0ng!pass", hashed)
        assert not verify_password("Str0ng!pasS", hashed)

    def test_salt_is_per_password(self):
        assert hash_password("Str0ng!pass", rounds=4) != hash_password("Str0ng!pass", rounds=4)

    def test_work_factor_recorded(self):
        assert hash_password("Str0ng!pass", rounds=5).split("$")[2] == "05"

    def test_malformed_hash_is_mismatch(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestPasswordStrength:
    def test_strong(self):
        report = check_password_strength("Str0ng!pass")
        assert report.is_strong
        assert report.to_dict()["requirements"]["has_symbol"] is True

    def test_weak(self):
        report = check_password_strength("abc")
        assert not report.is_strong
        assert report.length is False
        assert report.has_lowercase is True
        assert report.has_uppercase is False


class FakeClock:
    def __init__(self):
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class TestInMemorySessionStore:
    """Tests for the server-side session store."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def store(self, clock):
        return InMemorySessionStore(ttl=timedelta(hours=24), clock=clock)

    def test_create_and_get(self, store):
        session = store.create(7, "alice")

        assert store.get(session.token) == session
        assert session.account_id == 7
        assert session.username == "alice"
        assert len(store) == 1

    def test_tokens_are_unique(self, store):
        assert store.create(1, "a").token != store.create(1, "a").token

    def test_unknown_or_missing_token(self, store):
        assert store.get("nope") is None
        assert store.get(None) is None
        assert store.get("") is None

    def test_expiry(self, store, clock):
        session = store.create(1, "alice")

        clock.advance(hours=23, minutes=59)
        assert store.get(session.token) is not None

        clock.advance(minutes=1)
        assert store.get(session.token) is None
        assert len(store) == 0

    def test_delete(self, store):
        session = store.create(1, "alice")

        assert store.delete(session.token) is True
        assert store.get(session.token) is None
        assert store.delete(session.token) is False
        assert store.delete(None) is False

    def test_purge_expired(self, store, clock):
        store.create(1, "alice")
        clock.advance(hours=12)
        fresh = store.create(2, "bob")
        clock.advance(hours=13)

        assert store.purge_expired() == 1
        assert store.get(fresh.token) is not None
