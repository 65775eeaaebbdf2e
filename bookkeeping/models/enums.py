"""
Shared enumerations for database models.

Mapped to database enums so an unknown status, role, or
account type is rejected by the database as well as by the
request schemas.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"


class EntryStatus(str, enum.Enum):
    """Lifecycle of a journal entry."""
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    CONFIRMED = "CONFIRMED"


class WorkflowEvent(str, enum.Enum):
    """Requested status change for a journal entry."""
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CONFIRM = "CONFIRM"


class Role(str, enum.Enum):
    USER = "USER"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"


class AuditAction(str, enum.Enum):
    """Kinds of audit records written for journal entries."""
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CONFIRM = "CONFIRM"
