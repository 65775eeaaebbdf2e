"""
Journal entry service: the workflow and balance-integrity engine.

Every write follows the same sequence:
1. Resolve the actor's role (unknown or inactive users are refused)
2. Load the entry and compare its version with the caller's
3. Check the actor may perform the operation
4. Check status, balance, and input
5. Apply the change and persist it with a version-conditioned
   UPDATE or DELETE
6. Append an audit record in the same transaction

Nothing is committed here. The caller owns the transaction and
rolls back on any BookkeepingError, so a failed request leaves
the stored entry untouched.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy import select
from sqlalchemy.orm import Session

from bookkeeping.config import get_settings
from bookkeeping.errors import ForbiddenError, ValidationError
from bookkeeping.models.audit_log import AuditLog
from bookkeeping.models.enums import AuditAction, EntryStatus, Role, WorkflowEvent
from bookkeeping.models.journal_entry import JournalEntry
from bookkeeping.models.workflow import available_events, decide
from bookkeeping.schemas.journal import (
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryPage,
    JournalEntrySummary,
    JournalEntryUpdate,
)
from bookkeeping.services.directories import (
    AccountDirectory,
    SqlAccountDirectory,
    SqlUserDirectory,
    UserDirectory,
)
from bookkeeping.services.repository import JournalEntryRepository

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    entry: JournalEntry
    audit: AuditLog


class JournalEntryService:
    """
    All journal entry reads and writes pass through this service.

    The directories default to the database-backed ones; tests
    and other deployments may pass their own.
    """

    def __init__(
        self,
        db: Session,
        accounts: AccountDirectory | None = None,
        users: UserDirectory | None = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.accounts = accounts or SqlAccountDirectory(db)
        self.users = users or SqlUserDirectory(db)
        self.repository = JournalEntryRepository(db)
        self.clock = clock

    # --- Commands ---

    def create_entry(self, request: JournalEntryCreate, actor: str) -> JournalEntry:
        """Create a DRAFT entry at version 1. Drafts may be unbalanced."""
        self._role_of(actor)

        entry = JournalEntry.create(
            entry_date=request.entry_date,
            description=request.description,
            lines=request.lines,
            created_by=actor,
            accounts=self.accounts,
            now=self.clock(),
        )
        self.repository.add(entry)
        self._record(
            entry.id, AuditAction.CREATE, actor,
            None, entry.status,
            f"created with {len(entry.lines)} line(s)",
        )
        logger.info(
            "Journal entry %s created by %s (%d lines, imbalance=%s)",
            entry.id, actor, len(entry.lines), entry.imbalance,
        )
        return entry

    def update_entry(
        self, entry_id: int, request: JournalEntryUpdate, actor: str
    ) -> JournalEntry:
        """Replace a draft's header and lines under the version check."""
        self._role_of(actor)
        entry = self._load_at_version(entry_id, request.version)

        entry.revise(
            entry_date=request.entry_date,
            description=request.description,
            new_lines=request.lines,
            accounts=self.accounts,
            now=self.clock(),
        )
        self.repository.save(entry, request.version)
        self._record(
            entry.id, AuditAction.UPDATE, actor,
            entry.status, entry.status,
            f"revised to version {entry.version}",
        )
        logger.info(
            "Journal entry %s updated by %s (v%s -> v%s)",
            entry.id, actor, request.version, entry.version,
        )
        return entry

    def delete_entry(self, entry_id: int, expected_version: int, actor: str) -> None:
        """Delete a draft. Entries past DRAFT can never be deleted."""
        self._role_of(actor)
        entry = self._load_at_version(entry_id, expected_version)

        entry.ensure_deletable()
        status = entry.status
        self.repository.delete(entry, expected_version)
        self._record(
            entry_id, AuditAction.DELETE, actor,
            status, None,
            f"deleted at version {expected_version}",
        )
        logger.info("Journal entry %s deleted by %s", entry_id, actor)

    def apply_transition(
        self,
        entry_id: int,
        expected_version: int,
        event: WorkflowEvent,
        actor: str,
        reason: str | None = None,
    ) -> TransitionResult:
        """
        Move an entry along one workflow edge.

        Raises NotFoundError, ConflictError, ForbiddenError,
        InvalidStateError, or ValidationError, in that order of
        precedence. On success the version has advanced by one and
        an audit record describes the change.
        """
        role = self._role_of(actor)
        entry = self._load_at_version(entry_id, expected_version)

        now = self.clock()
        try:
            change = decide(
                status=entry.status,
                event=event,
                role=role,
                imbalance=entry.imbalance,
                actor=actor,
                now=now,
                reason=reason,
            )
        except ForbiddenError:
            logger.warning(
                "%s denied %s on journal entry %s (role %s)",
                actor, event.value, entry_id, role.value,
            )
            raise

        entry.apply_status_change(change, now)
        self.repository.save(entry, expected_version)

        details = event.value
        if change.fields.get("rejected_reason"):
            details = f"{event.value}: {change.fields['rejected_reason']}"
        audit = self._record(
            entry.id, AuditAction(event.value), actor,
            change.from_status, change.to_status, details,
        )
        logger.info(
            "Journal entry %s %s by %s: %s -> %s (v%s)",
            entry.id, event.value, actor,
            change.from_status.value, change.to_status.value, entry.version,
        )
        return TransitionResult(entry=entry, audit=audit)

    transition = apply_transition

    def submit(self, entry_id: int, expected_version: int, actor: str) -> TransitionResult:
        return self.apply_transition(entry_id, expected_version, WorkflowEvent.SUBMIT, actor)

    def approve(self, entry_id: int, expected_version: int, actor: str) -> TransitionResult:
        return self.apply_transition(entry_id, expected_version, WorkflowEvent.APPROVE, actor)

    def reject(
        self, entry_id: int, expected_version: int, actor: str, reason: str | None
    ) -> TransitionResult:
        return self.apply_transition(
            entry_id, expected_version, WorkflowEvent.REJECT, actor, reason
        )

    def confirm(self, entry_id: int, expected_version: int, actor: str) -> TransitionResult:
        return self.apply_transition(entry_id, expected_version, WorkflowEvent.CONFIRM, actor)

    # --- Queries ---

    def get_entry(self, entry_id: int) -> JournalEntry:
        return self.repository.load(entry_id)

    def list_entries(
        self,
        criteria: JournalEntryFilter | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> JournalEntryPage:
        """Return one 0-based page of entry summaries matching criteria."""
        settings = get_settings()
        criteria = criteria or JournalEntryFilter()
        if size is None:
            size = settings.DEFAULT_PAGE_SIZE

        if page < 0:
            raise ValidationError("page must not be negative")
        if not 1 <= size <= settings.MAX_PAGE_SIZE:
            raise ValidationError(
                f"size must be between 1 and {settings.MAX_PAGE_SIZE}"
            )
        if (
            criteria.date_from and criteria.date_to
            and criteria.date_from > criteria.date_to
        ):
            raise ValidationError("date_from must not be after date_to")
        if (
            criteria.amount_from is not None and criteria.amount_to is not None
            and criteria.amount_from > criteria.amount_to
        ):
            raise ValidationError("amount_from must not exceed amount_to")

        entries, total, pages = self.repository.search(criteria, page, size)
        return JournalEntryPage(
            items=[JournalEntrySummary.model_validate(e) for e in entries],
            page=page,
            size=size,
            total_elements=total,
            total_pages=pages,
        )

    def get_available_events(self, entry_id: int, actor: str) -> list[WorkflowEvent]:
        """
        Events the actor could request on the entry as it stands.

        For showing or hiding buttons only; apply_transition still
        checks version, balance and reason.
        """
        role = self._role_of(actor)
        entry = self.repository.load(entry_id)
        return available_events(entry.status, role)

    def get_audit_trail(self, entry_id: int) -> list[AuditLog]:
        """Audit records for an entry, oldest first. Survives deletion."""
        records = self.db.execute(
            select(AuditLog)
            .where(AuditLog.entry_id == entry_id)
            .order_by(AuditLog.id)
        ).scalars().all()
        return list(records)

    # --- Internals ---

    def _role_of(self, actor: str) -> Role:
        role = self.users.role_of(actor)
        if role is None:
            logger.warning("Rejected request from unknown or inactive user %r", actor)
            raise ForbiddenError(f"User '{actor}' is not an active user")
        return role

    def _load_at_version(self, entry_id: int, expected_version: int) -> JournalEntry:
        entry = self.repository.load(entry_id)
        self.repository.check_version(entry, expected_version)
        return entry

    def _record(
        self,
        entry_id: int,
        action: AuditAction,
        actor: str,
        from_status: EntryStatus | None,
        to_status: EntryStatus | None,
        details: str,
    ) -> AuditLog:
        record = AuditLog(
            entry_id=entry_id,
            action=action,
            actor=actor,
            from_status=from_status,
            to_status=to_status,
            details=details,
            created_at=self.clock(),
        )
        self.db.add(record)
        self.db.flush()
        return record
