"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from bookkeeping.models.base import Base
from bookkeeping.models.enums import (
    AccountType,
    AuditAction,
    EntryStatus,
    Role,
    WorkflowEvent,
)
from bookkeeping.models.audit_log import AuditLog
from bookkeeping.models.ledger_account import LedgerAccount
from bookkeeping.models.user import User
from bookkeeping.models.journal_entry import JournalEntry, JournalLine

__all__ = [
    "Base",
    "AccountType",
    "AuditAction",
    "EntryStatus",
    "Role",
    "WorkflowEvent",
    "AuditLog",
    "LedgerAccount",
    "User",
    "JournalEntry",
    "JournalLine",
]
