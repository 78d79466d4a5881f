"""
Account Repository

Persistence for registered accounts. The credential hash only leaves this
module through ``StoredCredential``, which the authentication service alone
asks for.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import func, select

from readinglist.storage.database import Database
from readinglist.storage.models import AccountModel


@dataclass
class StoredAccount:
    """Public view of an account."""

    id: int
    username: str
    created_at: datetime

    @classmethod
    def from_model(cls, model: AccountModel) -> "StoredAccount":
        return cls(
            id=model.id,
            username=model.username,
            created_at=model.created_at,
        )


@dataclass
class StoredCredential:
    """Account plus its password hash, for credential checks only."""

    account: StoredAccount
    password_hash: str

    def __repr__(self) -> str:
        return f"StoredCredential(account={self.account!r}, password_hash='***')"


class AccountRepository:
    """
    Repository for account CRUD operations.

    Usage:
        repo = AccountRepository(database)
        account = repo.create("alice", password_hash)
        repo.get(account.id)
    """

    def __init__(self, database: Database):
        self.database = database

    def create(self, username: str, password_hash: str) -> StoredAccount:
        """
        Insert an account.

        Raises:
            ConstraintViolationError: if the username is already taken
        """
        with self.database.session_scope() as session:
            account = AccountModel(username=username, password_hash=password_hash)
            session.add(account)
            session.flush()
            stored = StoredAccount.from_model(account)

        logger.info(f"Account created: id={stored.id}")
        return stored

    def get(self, account_id: int) -> Optional[StoredAccount]:
        with self.database.session_scope() as session:
            account = session.get(AccountModel, account_id)
            return StoredAccount.from_model(account) if account else None

    def get_by_username(self, username: str) -> Optional[StoredCredential]:
        """Exact, case-sensitive lookup returning the credential-bearing record."""
        with self.database.session_scope() as session:
            account = session.execute(
                select(AccountModel).where(AccountModel.username == username)
            ).scalar_one_or_none()

            if account is None:
                return None
            return StoredCredential(
                account=StoredAccount.from_model(account),
                password_hash=account.password_hash,
            )

    def exists(self, username: str) -> bool:
        with self.database.session_scope() as session:
            found = session.execute(
                select(AccountModel.id).where(AccountModel.username == username)
            ).first()
            return found is not None

    def count(self) -> int:
        with self.database.session_scope() as session:
            return session.execute(select(func.count(AccountModel.id))).scalar_one()

    def delete(self, account_id: int) -> bool:
        """
        Remove an account and, through the foreign key cascade, its books.

        Administrative path only; no HTTP route exposes it.
        """
        with self.database.session_scope() as session:
            account = session.get(AccountModel, account_id)
            if account is None:
                return False
            session.delete(account)

        logger.info(f"Account deleted: id={account_id}")
        return True
