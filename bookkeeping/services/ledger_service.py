"""
Chart of accounts service.

Maintains the ledger accounts that journal lines post to.
Accounts are created and retired here; they are never deleted,
because confirmed entries keep referring to their codes.
"""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping.errors import ForbiddenError, NotFoundError, ValidationError
from bookkeeping.models.enums import Role
from bookkeeping.models.ledger_account import LedgerAccount
from bookkeeping.schemas.ledger import LedgerAccountCreate
from bookkeeping.services.directories import SqlUserDirectory, UserDirectory

logger = logging.getLogger(__name__)

ACCOUNT_MANAGERS = frozenset({Role.MANAGER, Role.ADMIN})


class LedgerService:
    """
    The service takes a database session as a constructor
    argument, so the caller controls the transaction boundary.
    """

    def __init__(self, db: Session, users: UserDirectory | None = None):
        self.db = db
        self.users = users or SqlUserDirectory(db)

    def _require_manager(self, actor: str) -> None:
        if self.users.role_of(actor) not in ACCOUNT_MANAGERS:
            raise ForbiddenError(
                f"User '{actor}' may not maintain the chart of accounts"
            )

    def create_account(self, request: LedgerAccountCreate, actor: str) -> LedgerAccount:
        """Create a ledger account. Raises ValidationError if the code is taken."""
        self._require_manager(actor)

        existing = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == request.code)
        ).scalar_one_or_none()
        if existing:
            raise ValidationError(f"Account with code '{request.code}' already exists")

        account = LedgerAccount(
            code=request.code,
            name=request.name,
            account_type=request.account_type,
        )
        self.db.add(account)
        self.db.flush()
        logger.info("Ledger account %s created by %s", account.code, actor)
        return account

    def set_active(self, code: str, active: bool, actor: str) -> LedgerAccount:
        """
        Open or retire an account for posting.

        Existing lines keep their code; a retired account only
        stops new or revised lines from using it.
        """
        self._require_manager(actor)
        account = self.get_account(code)
        account.is_active = active
        self.db.flush()
        logger.info(
            "Ledger account %s %s by %s",
            code, "activated" if active else "deactivated", actor,
        )
        return account

    def get_account(self, code: str) -> LedgerAccount:
        account = self.db.execute(
            select(LedgerAccount).where(LedgerAccount.code == code)
        ).scalar_one_or_none()
        if not account:
            raise NotFoundError(f"Account {code} not found")
        return account

    def list_accounts(self, active_only: bool = False) -> list[LedgerAccount]:
        """Return accounts ordered by code."""
        stmt = select(LedgerAccount).order_by(LedgerAccount.code)
        if active_only:
            stmt = stmt.where(LedgerAccount.is_active.is_(True))
        return list(self.db.execute(stmt).scalars().all())
