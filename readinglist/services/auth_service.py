"""
Authentication Service

Registration, login, logout and session status on top of the account
repository and an injected session store.

Design Decisions:
1. One failure message for unknown user and wrong password
2. Unknown users still pay for a bcrypt verification, so response time
   does not reveal whether a username exists
3. Hashes never leave this module; results carry id and username only
"""

from dataclasses import dataclass
from typing import Optional

from loguru import logger

from readinglist.exceptions import (
    AuthenticationError,
    ConflictError,
    ConstraintViolationError,
    NotFoundError,
)
from readinglist.security import DEFAULT_BCRYPT_ROUNDS, hash_password, verify_password
from readinglist.services.boundary import service_boundary
from readinglist.services.guard import require_session
from readinglist.sessions import SessionData, SessionStore
from readinglist.storage.account_repository import AccountRepository, StoredAccount
from readinglist.validation import validate_login, validate_registration

INVALID_CREDENTIALS = "Invalid username or password"
USERNAME_TAKEN = "Username already exists"


@dataclass
class AuthResult:
    """Outcome of a successful register or login."""

    account_id: int
    username: str
    session: SessionData


@dataclass
class SessionStatus:
    """Answer to "who is calling?"."""

    authenticated: bool
    account_id: Optional[int] = None
    username: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.authenticated:
            return {"authenticated": False}
        return {
            "authenticated": True,
            "id": self.account_id,
            "username": self.username,
        }


class AuthService:
    """
    Credential checks and session lifecycle.

    Usage:
        auth = AuthService(accounts, sessions, bcrypt_rounds=12)
        result = auth.register("alice", "S3cret!x", "S3cret!x")
        auth.current_session(result.session.token).authenticated  # True
    """

    def __init__(
        self,
        accounts: AccountRepository,
        sessions: SessionStore,
        bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS,
    ):
        """
        Initialize service.

        Args:
            accounts: Account storage
            sessions: Server-side session store
            bcrypt_rounds: Work factor for new password hashes
        """
        self.accounts = accounts
        self.sessions = sessions
        self.bcrypt_rounds = bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    @property
    def dummy_hash(self) -> str:
        """Hash checked against when the username is unknown."""
        if self._dummy_hash is None:
            self._dummy_hash = hash_password("not-a-real-password", self.bcrypt_rounds)
        return self._dummy_hash

    def register(self, username, password, password_confirmation) -> AuthResult:
        """
        Create an account and open a session for it.

        Args:
            username: Requested username
            password: Plaintext password
            password_confirmation: Must equal ``password``

        Returns:
            AuthResult for the new account

        Raises:
            ValidationError: every violated username/password rule
            ConflictError: the username is taken
        """
        validate_registration(username, password, password_confirmation)

        with service_boundary("auth.register"):
            if self.accounts.exists(username):
                logger.info("Registration rejected: username taken")
                raise ConflictError(USERNAME_TAKEN)

            password_hash = hash_password(password, self.bcrypt_rounds)
            try:
                account = self.accounts.create(username, password_hash)
            except ConstraintViolationError as e:
                # Lost a race with a concurrent registration
                raise ConflictError(USERNAME_TAKEN) from e

            session = self.sessions.create(account.id, account.username)

        logger.info(f"Account registered: id={account.id}")
        return AuthResult(account_id=account.id, username=account.username, session=session)

    def login(self, username, password, previous_token: Optional[str] = None) -> AuthResult:
        """
        Verify credentials and open a session.

        Args:
            username: Account username (exact, case-sensitive)
            password: Plaintext password
            previous_token: Session the client held before, dropped on success

        Raises:
            ValidationError: username or password missing
            AuthenticationError: unknown user or wrong password (same message)
        """
        validate_login(username, password)

        with service_boundary("auth.login"):
            credential = self.accounts.get_by_username(username)

            if credential is None:
                verify_password(password, self.dummy_hash)
                logger.info("Login failed")
                raise AuthenticationError(INVALID_CREDENTIALS)

            if not verify_password(password, credential.password_hash):
                logger.info(f"Login failed: account={credential.account.id}")
                raise AuthenticationError(INVALID_CREDENTIALS)

            if previous_token:
                self.sessions.delete(previous_token)

            account = credential.account
            session = self.sessions.create(account.id, account.username)

        logger.info(f"Login succeeded: account={account.id}")
        return AuthResult(account_id=account.id, username=account.username, session=session)

    def logout(self, token: Optional[str]) -> None:
        """Invalidate a session. A missing or expired session is not an error."""
        if self.sessions.delete(token):
            logger.info("Logged out")

    def resolve(self, token: Optional[str]) -> Optional[SessionData]:
        return self.sessions.get(token)

    def current_session(self, token: Optional[str]) -> SessionStatus:
        session = self.sessions.get(token)
        if session is None:
            return SessionStatus(authenticated=False)
        return SessionStatus(
            authenticated=True,
            account_id=session.account_id,
            username=session.username,
        )

    def get_account(self, session: Optional[SessionData]) -> StoredAccount:
        """
        Profile of the calling account.

        Raises:
            AuthenticationError: no session
            NotFoundError: the account was removed after the session opened
        """
        session = require_session(session)

        with service_boundary("auth.get_account"):
            account = self.accounts.get(session.account_id)

        if account is None:
            raise NotFoundError("Account", session.account_id)
        return account
