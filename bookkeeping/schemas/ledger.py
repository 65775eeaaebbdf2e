"""
Pydantic schemas for the chart of accounts.

Journal lines reference accounts by code, so the code is the
account's public identifier throughout the API.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from bookkeeping.models.enums import AccountType


class LedgerAccountCreate(BaseModel):
    """Request to create a new ledger account."""
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType


class LedgerAccountResponse(BaseModel):
    """Ledger account in API responses."""
    id: int
    code: str
    name: str
    account_type: AccountType
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
