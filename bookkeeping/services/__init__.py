"""Business logic services."""

from bookkeeping.services.journal_service import JournalEntryService, TransitionResult
from bookkeeping.services.ledger_service import LedgerService
from bookkeeping.services.user_service import UserService

__all__ = ["JournalEntryService", "TransitionResult", "LedgerService", "UserService"]
