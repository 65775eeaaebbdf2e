"""
Journal entry aggregate.

A journal entry is a dated, described group of debit and credit
lines moving through the approval workflow. The entry guards its
own invariants: lines are well formed and post to active
accounts, only drafts change, and confirmed entries never do.

The version column is SQLAlchemy's version_id_col. Every UPDATE
or DELETE the ORM emits for an entry is conditioned on
"version = <loaded version>" and bumps it by one, so two writers
holding the same version cannot both succeed.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Iterable, Protocol

from sqlalchemy import (
    String, Date, DateTime, Integer, Numeric, ForeignKey, Text,
    CheckConstraint, Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.orm.attributes import flag_modified

from bookkeeping.errors import InvalidStateError, ValidationError
from bookkeeping.models.balance import (
    ZERO, compute_imbalance, total_credits, total_debits,
)
from bookkeeping.models.base import Base
from bookkeeping.models.enums import EntryStatus
from bookkeeping.models.workflow import EDITABLE_STATUSES, StatusChange

if TYPE_CHECKING:
    from bookkeeping.services.directories import AccountDirectory


class LineInput(Protocol):
    account_code: str
    debit_amount: Decimal | None
    credit_amount: Decimal | None


class JournalEntry(Base):
    __tablename__ = "journal_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[EntryStatus] = mapped_column(
        SAEnum(
            EntryStatus,
            name="entry_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=EntryStatus.DRAFT,
        index=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by: Mapped[str] = mapped_column(String(100), nullable=False)
    approved_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    confirmed_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(100), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    rejected_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lines: Mapped[list["JournalLine"]] = relationship(
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="JournalLine.line_number",
    )

    __mapper_args__ = {"version_id_col": version}

    # --- Construction ---

    @classmethod
    def create(
        cls,
        entry_date: date | None,
        description: str | None,
        lines: Iterable[LineInput],
        created_by: str,
        accounts: "AccountDirectory",
        now: datetime | None = None,
    ) -> "JournalEntry":
        """
        Build a new DRAFT entry after validating header and lines.

        An unbalanced draft is accepted; balance is enforced when
        the entry is submitted for approval.
        """
        now = now or datetime.utcnow()
        entry = cls(
            entry_date=_require_date(entry_date),
            description=_require_description(description),
            status=EntryStatus.DRAFT,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        entry.lines = build_lines(lines, accounts)
        return entry

    # --- Guards ---

    @property
    def is_editable(self) -> bool:
        return self.status in EDITABLE_STATUSES

    def ensure_editable(self) -> None:
        if not self.is_editable:
            raise InvalidStateError(
                f"Journal entry {self.id} is {self.status.value}; "
                f"only DRAFT entries can be modified",
                status=self.status,
            )

    def ensure_deletable(self) -> None:
        if not self.is_editable:
            raise InvalidStateError(
                f"Journal entry {self.id} is {self.status.value}; "
                f"only DRAFT entries can be deleted",
                status=self.status,
            )

    # --- Mutation (DRAFT only) ---

    def update_header(
        self,
        entry_date: date | None,
        description: str | None,
        now: datetime | None = None,
    ) -> None:
        self.ensure_editable()
        entry_date = _require_date(entry_date)
        description = _require_description(description)
        self.entry_date = entry_date
        self.description = description
        self._touch(now)

    def revise(
        self,
        entry_date: date | None,
        description: str | None,
        new_lines: Iterable[LineInput],
        accounts: "AccountDirectory",
        now: datetime | None = None,
    ) -> None:
        """
        Replace header and lines together.

        Everything is validated before anything is assigned, so a
        rejected revision leaves the entry exactly as it was.
        """
        self.ensure_editable()
        entry_date = _require_date(entry_date)
        description = _require_description(description)
        lines = build_lines(new_lines, accounts)

        self.entry_date = entry_date
        self.description = description
        self.lines = lines
        self._touch(now)

    def replace_lines(
        self,
        new_lines: Iterable[LineInput],
        accounts: "AccountDirectory",
        now: datetime | None = None,
    ) -> None:
        self.ensure_editable()
        lines = build_lines(new_lines, accounts)
        self.lines = lines
        self._touch(now)

    def apply_status_change(self, change: StatusChange, now: datetime) -> None:
        """Apply a change produced by workflow.decide()."""
        if change.from_status != self.status:
            raise InvalidStateError(
                f"Journal entry {self.id} is {self.status.value}, "
                f"not {change.from_status.value}",
                status=self.status,
            )
        self.status = change.to_status
        for name, value in change.fields.items():
            setattr(self, name, value)
        self.updated_at = now

    def _touch(self, now: datetime | None) -> None:
        """
        Mark the header row dirty and stamp updated_at.

        Replacing lines alone changes only child rows, and an
        unchanged updated_at (a frozen or coarse clock) would not
        count as a change either. Flagging the column first makes
        the flush always emit the version-checked UPDATE, so every
        edit bumps the version exactly once.
        """
        flag_modified(self, "updated_at")
        self.updated_at = now or datetime.utcnow()

    # --- Balance ---

    @property
    def total_debit(self) -> Decimal:
        return total_debits(self.lines)

    @property
    def total_credit(self) -> Decimal:
        return total_credits(self.lines)

    @property
    def imbalance(self) -> Decimal:
        return compute_imbalance(self.lines)

    @property
    def is_balanced(self) -> bool:
        return self.imbalance == ZERO

    def __repr__(self) -> str:
        return (
            f"<JournalEntry {self.id} {self.status.value} "
            f"v{self.version}>"
        )


class JournalLine(Base):
    """
    One debit or credit posting within a journal entry.

    Exactly one of debit_amount and credit_amount is non-zero;
    the other is stored as zero. A database CHECK backs this up.
    """

    __tablename__ = "journal_lines"
    __table_args__ = (
        CheckConstraint(
            "debit_amount >= 0 AND credit_amount >= 0",
            name="ck_journal_lines_non_negative",
        ),
        CheckConstraint(
            "(debit_amount = 0) <> (credit_amount = 0)",
            name="ck_journal_lines_one_side",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_id: Mapped[int] = mapped_column(
        ForeignKey("journal_entries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    line_number: Mapped[int] = mapped_column(Integer, nullable=False)
    account_code: Mapped[str] = mapped_column(
        String(20), nullable=False, index=True
    )
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=ZERO
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=ZERO
    )

    entry: Mapped["JournalEntry"] = relationship(back_populates="lines")

    @property
    def is_debit(self) -> bool:
        return self.debit_amount != ZERO

    @property
    def is_credit(self) -> bool:
        return self.credit_amount != ZERO

    def __repr__(self) -> str:
        side = "DR" if self.is_debit else "CR"
        amount = self.debit_amount if self.is_debit else self.credit_amount
        return f"<JournalLine {self.line_number} {side} {self.account_code} {amount}>"


# --- Validation helpers ---

def _require_date(value: date | None) -> date:
    if value is None:
        raise ValidationError("entry_date is required")
    return value


def _require_description(value: str | None) -> str:
    description = (value or "").strip()
    if not description:
        raise ValidationError("description is required")
    return description


def _line_amount(value, line_number: int, side: str) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, float):
        raise ValidationError(
            f"Line {line_number}: {side} amount must be a decimal, not a float"
        )
    amount = Decimal(value)
    if amount < ZERO:
        raise ValidationError(
            f"Line {line_number}: {side} amount must not be negative"
        )
    return amount


def build_lines(
    lines: Iterable[LineInput],
    accounts: "AccountDirectory",
) -> list[JournalLine]:
    """
    Validate incoming lines and turn them into JournalLine rows.

    Line numbers follow input order, starting at 1. Raises
    ValidationError for an empty list, a line with both or
    neither amount, a negative amount, or an account code that
    is unknown or inactive.
    """
    lines = list(lines)
    if not lines:
        raise ValidationError("A journal entry needs at least one line")

    built = []
    for number, line in enumerate(lines, start=1):
        debit = _line_amount(line.debit_amount, number, "debit")
        credit = _line_amount(line.credit_amount, number, "credit")

        if (debit == ZERO) == (credit == ZERO):
            raise ValidationError(
                f"Line {number}: exactly one of debit or credit must be non-zero"
            )

        code = (line.account_code or "").strip()
        account = accounts.lookup(code) if code else None
        if account is None:
            raise ValidationError(f"Line {number}: account '{code}' not found")
        if not account.active:
            raise ValidationError(f"Line {number}: account '{code}' is not active")

        built.append(JournalLine(
            line_number=number,
            account_code=code,
            debit_amount=debit,
            credit_amount=credit,
        ))
    return built
