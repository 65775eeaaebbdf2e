"""
Audit log model.

One row per successful journal entry mutation: creation, edit,
deletion, and every workflow transition. Rows are written in the
same database transaction as the change they describe, so a
rolled-back request leaves no audit trace either.
"""

from datetime import datetime

from sqlalchemy import String, DateTime, Text, Integer, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from bookkeeping.models.base import Base
from bookkeeping.models.enums import AuditAction, EntryStatus


class AuditLog(Base):
    """
    Immutable record of a journal entry event.

    entry_id is not a foreign key: the audit trail of a deleted
    draft must outlive the draft itself.
    """

    __tablename__ = "audit_log"

    id: Mapped[int] = mapped_column(primary_key=True)
    entry_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    action: Mapped[AuditAction] = mapped_column(
        SAEnum(AuditAction, name="audit_action_enum"),
        nullable=False,
    )
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    from_status: Mapped[EntryStatus | None] = mapped_column(
        SAEnum(EntryStatus, name="audit_from_status_enum"),
        nullable=True,
    )
    to_status: Mapped[EntryStatus | None] = mapped_column(
        SAEnum(EntryStatus, name="audit_to_status_enum"),
        nullable=True,
    )
    details: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<AuditLog entry={self.entry_id} {self.action.value} by {self.actor}>"
