"""
Server-side session store.

Maps an opaque token (held by the client in a cookie) to the account it
authenticates. The store is injected into the services and the API rather
than living in a module global, so it can be swapped or inspected in tests.
"""

import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from loguru import logger


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionData:
    """An authenticated session."""

    token: str
    account_id: int
    username: str
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class SessionStore(ABC):
    """Token -> session mapping with expiry."""

    @abstractmethod
    def create(self, account_id: int, username: str) -> SessionData:
        """Open a new session and return it."""

    @abstractmethod
    def get(self, token: Optional[str]) -> Optional[SessionData]:
        """Return the live session for a token, or None if absent or expired."""

    @abstractmethod
    def delete(self, token: Optional[str]) -> bool:
        """Invalidate a session. Returns False when there was nothing to remove."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop expired sessions and return how many were removed."""


class InMemorySessionStore(SessionStore):
    """
    Process-local session store.

    Suitable for the single-node deployment this service targets. All access
    goes through one lock, so concurrent requests handled in FastAPI's thread
    pool cannot corrupt the mapping.
    """

    def __init__(
        self,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the store.

        Args:
            ttl: Lifetime of a session from its creation
            clock: Source of the current time (overridable in tests)
        """
        self.ttl = ttl
        self._clock = clock
        self._sessions: dict[str, SessionData] = {}
        self._lock = threading.Lock()

    def create(self, account_id: int, username: str) -> SessionData:
        now = self._clock()
        session = SessionData(
            token=secrets.token_urlsafe(32),
            account_id=account_id,
            username=username,
            created_at=now,
            expires_at=now + self.ttl,
        )
        with self._lock:
            self._sessions[session.token] = session
        logger.debug(f"Session opened for account {account_id}")
        return session

    def get(self, token: Optional[str]) -> Optional[SessionData]:
        if not token:
            return None

        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired(self._clock()):
                del self._sessions[token]
                return None
            return session

    def delete(self, token: Optional[str]) -> bool:
        if not token:
            return False

        with self._lock:
            session = self._sessions.pop(token, None)

        if session is not None:
            logger.debug(f"Session closed for account {session.account_id}")
        return session is not None

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [
                token for token, session in self._sessions.items()
                if session.is_expired(now)
            ]
            for token in expired:
                del self._sessions[token]

        if expired:
            logger.debug(f"Purged {len(expired)} expired sessions")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
