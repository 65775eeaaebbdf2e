"""
Chart of accounts endpoints.

Thin HTTP layer over LedgerService: status codes and response
shapes here, business rules in the service.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookkeeping.api.deps import get_actor
from bookkeeping.api.errors import to_http_exception
from bookkeeping.errors import BookkeepingError
from bookkeeping.models.base import get_db
from bookkeeping.schemas.ledger import LedgerAccountCreate, LedgerAccountResponse
from bookkeeping.services.ledger_service import LedgerService

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/accounts", response_model=LedgerAccountResponse, status_code=201)
def create_ledger_account(
    request: LedgerAccountCreate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Create a ledger account. Lines can only post to existing, active accounts."""
    service = LedgerService(db)
    try:
        account = service.create_account(request, actor)
        db.commit()
        return account
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.get("/accounts", response_model=list[LedgerAccountResponse])
def list_ledger_accounts(
    active_only: bool = False,
    db: Session = Depends(get_db),
):
    return LedgerService(db).list_accounts(active_only=active_only)


@router.get("/accounts/{code}", response_model=LedgerAccountResponse)
def get_ledger_account(code: str, db: Session = Depends(get_db)):
    try:
        return LedgerService(db).get_account(code)
    except BookkeepingError as e:
        raise to_http_exception(e)


@router.post("/accounts/{code}/deactivate", response_model=LedgerAccountResponse)
def deactivate_ledger_account(
    code: str,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Retire an account so that no new lines can post to it."""
    service = LedgerService(db)
    try:
        account = service.set_active(code, False, actor)
        db.commit()
        return account
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.post("/accounts/{code}/activate", response_model=LedgerAccountResponse)
def activate_ledger_account(
    code: str,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    service = LedgerService(db)
    try:
        account = service.set_active(code, True, actor)
        db.commit()
        return account
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)
