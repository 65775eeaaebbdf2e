"""
Pydantic schemas for journal entries.

Request shapes are loose about required header
fields: a missing date or blank description reaches the entry
itself, which rejects it with the engine's own ValidationError
instead of a framework-level 422.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from bookkeeping.models.enums import AuditAction, EntryStatus, WorkflowEvent


# --- Request Schemas ---

class JournalLineCreate(BaseModel):
    """A single debit or credit line. Exactly one amount is non-zero."""
    account_code: str = Field(min_length=1, max_length=20)
    debit_amount: Decimal = Field(
        default=Decimal("0"), ge=0, max_digits=19, decimal_places=4
    )
    credit_amount: Decimal = Field(
        default=Decimal("0"), ge=0, max_digits=19, decimal_places=4
    )


class JournalEntryCreate(BaseModel):
    entry_date: date | None = None
    description: str | None = Field(default=None, max_length=255)
    lines: list[JournalLineCreate] = Field(default_factory=list)


class JournalEntryUpdate(JournalEntryCreate):
    """Full replacement of a draft's header and lines."""
    version: int = Field(ge=1)


class TransitionRequest(BaseModel):
    """
    Body for submit / approve / reject / confirm.

    version is the version the caller last loaded; reason is
    required for reject and ignored otherwise.
    """
    version: int = Field(ge=1)
    reason: str | None = Field(default=None, max_length=500)


class JournalEntryFilter(BaseModel):
    """Search conditions; every field is optional and they combine with AND."""
    statuses: list[EntryStatus] = Field(default_factory=list)
    date_from: date | None = None
    date_to: date | None = None
    description: str | None = None
    account_code: str | None = None
    amount_from: Decimal | None = Field(default=None, ge=0, max_digits=19, decimal_places=4)
    amount_to: Decimal | None = Field(default=None, ge=0, max_digits=19, decimal_places=4)


# --- Response Schemas ---

class JournalLineResponse(BaseModel):
    line_number: int
    account_code: str
    debit_amount: Decimal
    credit_amount: Decimal

    model_config = {"from_attributes": True}


class JournalEntryResponse(BaseModel):
    id: int
    entry_date: date
    description: str
    status: EntryStatus
    version: int
    lines: list[JournalLineResponse]
    total_debit: Decimal
    total_credit: Decimal
    imbalance: Decimal
    created_by: str
    approved_by: str | None
    approved_at: datetime | None
    confirmed_by: str | None
    confirmed_at: datetime | None
    rejected_by: str | None
    rejected_at: datetime | None
    rejected_reason: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class JournalEntrySummary(BaseModel):
    """One row of a journal entry list."""
    id: int
    entry_date: date
    description: str
    total_debit: Decimal
    total_credit: Decimal
    status: EntryStatus
    version: int

    model_config = {"from_attributes": True}


class JournalEntryPage(BaseModel):
    """A page of summaries. page is 0-based."""
    items: list[JournalEntrySummary]
    page: int
    size: int
    total_elements: int
    total_pages: int


class AuditLogResponse(BaseModel):
    id: int
    entry_id: int
    action: AuditAction
    actor: str
    from_status: EntryStatus | None
    to_status: EntryStatus | None
    details: str
    created_at: datetime

    model_config = {"from_attributes": True}


class TransitionResponse(BaseModel):
    """Response after a workflow transition."""
    event: WorkflowEvent
    entry: JournalEntryResponse
    audit: AuditLogResponse


class AvailableEventsResponse(BaseModel):
    """Workflow actions the acting user may offer for an entry."""
    entry_id: int
    status: EntryStatus
    version: int
    events: list[WorkflowEvent]
