"""
Journal entry endpoints.

The API layer is thin: it reads the actor, calls
JournalEntryService, commits on success and rolls back on any
engine error. Every write carries the version the client last
saw; a 409 means "reload the entry and try again".
"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from bookkeeping.api.deps import get_actor
from bookkeeping.api.errors import to_http_exception
from bookkeeping.errors import BookkeepingError
from bookkeeping.models.base import get_db
from bookkeeping.models.enums import EntryStatus, WorkflowEvent
from bookkeeping.schemas.journal import (
    AuditLogResponse,
    AvailableEventsResponse,
    JournalEntryCreate,
    JournalEntryFilter,
    JournalEntryPage,
    JournalEntryResponse,
    JournalEntryUpdate,
    TransitionRequest,
    TransitionResponse,
)
from bookkeeping.services.journal_service import JournalEntryService

router = APIRouter(prefix="/journal-entries", tags=["Journal Entries"])


@router.post("", response_model=JournalEntryResponse, status_code=201)
def create_entry(
    request: JournalEntryCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Create a DRAFT journal entry."""
    service = JournalEntryService(db)
    try:
        entry = service.create_entry(request, actor)
        db.commit()
        return entry
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.get("", response_model=JournalEntryPage)
def list_entries(
    status: list[EntryStatus] | None = Query(default=None),
    date_from: date | None = None,
    date_to: date | None = None,
    description: str | None = None,
    account_code: str | None = None,
    amount_from: Decimal | None = Query(default=None, ge=0, max_digits=19, decimal_places=4),
    amount_to: Decimal | None = Query(default=None, ge=0, max_digits=19, decimal_places=4),
    page: int = Query(default=0, ge=0),
    size: int | None = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    """
    Search journal entries.

    All conditions are optional and combine with AND. The amount
    range applies to the entry's total debit amount.
    """
    criteria = JournalEntryFilter(
        statuses=status or [],
        date_from=date_from,
        date_to=date_to,
        description=description,
        account_code=account_code,
        amount_from=amount_from,
        amount_to=amount_to,
    )
    try:
        return JournalEntryService(db).list_entries(criteria, page=page, size=size)
    except BookkeepingError as e:
        raise to_http_exception(e)


@router.get("/{entry_id}", response_model=JournalEntryResponse)
def get_entry(entry_id: int, db: Session = Depends(get_db)):
    try:
        return JournalEntryService(db).get_entry(entry_id)
    except BookkeepingError as e:
        raise to_http_exception(e)


@router.put("/{entry_id}", response_model=JournalEntryResponse)
def update_entry(
    entry_id: int,
    request: JournalEntryUpdate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Replace a draft's header and lines. Only DRAFT entries can be edited."""
    service = JournalEntryService(db)
    try:
        entry = service.update_entry(entry_id, request, actor)
        db.commit()
        return entry
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.delete("/{entry_id}", status_code=204)
def delete_entry(
    entry_id: int,
    version: int = Query(ge=1),
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Delete a draft. Submitted, approved and confirmed entries are kept."""
    service = JournalEntryService(db)
    try:
        service.delete_entry(entry_id, version, actor)
        db.commit()
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


def _transition(
    entry_id: int,
    event: WorkflowEvent,
    request: TransitionRequest,
    actor: str,
    db: Session,
) -> TransitionResponse:
    service = JournalEntryService(db)
    try:
        result = service.apply_transition(
            entry_id, request.version, event, actor, request.reason
        )
        db.commit()
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)
    return TransitionResponse(
        event=event,
        entry=JournalEntryResponse.model_validate(result.entry),
        audit=AuditLogResponse.model_validate(result.audit),
    )


@router.post("/{entry_id}/submit", response_model=TransitionResponse)
def submit_entry(
    entry_id: int,
    request: TransitionRequest,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Submit a balanced draft for approval."""
    return _transition(entry_id, WorkflowEvent.SUBMIT, request, actor, db)


@router.post("/{entry_id}/approve", response_model=TransitionResponse)
def approve_entry(
    entry_id: int,
    request: TransitionRequest,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Approve a pending entry. MANAGER or ADMIN only."""
    return _transition(entry_id, WorkflowEvent.APPROVE, request, actor, db)


@router.post("/{entry_id}/reject", response_model=TransitionResponse)
def reject_entry(
    entry_id: int,
    request: TransitionRequest,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Send a pending entry back to DRAFT. A reason is required."""
    return _transition(entry_id, WorkflowEvent.REJECT, request, actor, db)


@router.post("/{entry_id}/confirm", response_model=TransitionResponse)
def confirm_entry(
    entry_id: int,
    request: TransitionRequest,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Confirm an approved entry. After this the entry never changes."""
    return _transition(entry_id, WorkflowEvent.CONFIRM, request, actor, db)


@router.get("/{entry_id}/audit", response_model=list[AuditLogResponse])
def get_audit_trail(entry_id: int, db: Session = Depends(get_db)):
    """Audit records for an entry, oldest first, including deleted drafts."""
    return JournalEntryService(db).get_audit_trail(entry_id)


@router.get("/{entry_id}/available-events", response_model=AvailableEventsResponse)
def get_available_events(
    entry_id: int,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Workflow buttons to show this actor. A hint; the transition endpoints decide."""
    service = JournalEntryService(db)
    try:
        events = service.get_available_events(entry_id, actor)
        entry = service.get_entry(entry_id)
    except BookkeepingError as e:
        raise to_http_exception(e)
    return AvailableEventsResponse(
        entry_id=entry.id,
        status=entry.status,
        version=entry.version,
        events=events,
    )
