"""
Account and user directories.

The journal engine needs two answers from the outside world:
"does this account code exist, and is it open for posting?" and
"what role does this user hold?". These two protocols are
what the engine depends on; the Sql* classes answer them from
this service's own tables and can be swapped for any other
source with the same methods.
"""

from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping.models.enums import AccountType, Role
from bookkeeping.models.ledger_account import LedgerAccount
from bookkeeping.models.user import User


@dataclass(frozen=True)
class AccountInfo:
    code: str
    account_type: AccountType
    active: bool


class AccountDirectory(Protocol):
    def lookup(self, code: str) -> AccountInfo | None:
        """Return the account for code, or None if there is no such account."""
        ...


class UserDirectory(Protocol):
    def role_of(self, user_id: str) -> Role | None:
        """Return the user's role, or None for unknown or inactive users."""
        ...


class SqlAccountDirectory:
    """Resolves account codes against the ledger_accounts table."""

    def __init__(self, db: Session):
        self.db = db

    def lookup(self, code: str) -> AccountInfo | None:
        account = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == code)
        ).scalar_one_or_none()
        if account is None:
            return None
        return AccountInfo(
            code=account.code,
            account_type=account.account_type,
            active=account.is_active,
        )


class SqlUserDirectory:
    """Resolves roles against the users table."""

    def __init__(self, db: Session):
        self.db = db

    def role_of(self, user_id: str) -> Role | None:
        user = self.db.execute(
            select(User).where(User.user_id == user_id)
        ).scalar_one_or_none()
        if user is None or not user.is_active:
            return None
        return user.role
