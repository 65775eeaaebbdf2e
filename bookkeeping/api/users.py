"""
User administration endpoints.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from bookkeeping.api.deps import get_actor, get_optional_actor
from bookkeeping.api.errors import to_http_exception
from bookkeeping.errors import BookkeepingError
from bookkeeping.models.base import get_db
from bookkeeping.schemas.user import UserCreate, UserResponse, UserRoleUpdate
from bookkeeping.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    request: UserCreate,
    actor: str | None = Depends(get_optional_actor),
    db: Session = Depends(get_db),
):
    """
    Create a user.

    The first user of an empty directory needs no actor and
    must be an ADMIN; every later user needs an ADMIN actor.
    """
    service = UserService(db)
    try:
        user = service.create_user(request, actor)
        db.commit()
        return user
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.get("", response_model=list[UserResponse])
def list_users(db: Session = Depends(get_db)):
    return UserService(db).list_users()


@router.patch("/{user_id}/role", response_model=UserResponse)
def change_user_role(
    user_id: str,
    request: UserRoleUpdate,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    try:
        user = service.change_role(user_id, request.role, actor)
        db.commit()
        return user
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)


@router.post("/{user_id}/deactivate", response_model=UserResponse)
def deactivate_user(
    user_id: str,
    actor: str = Depends(get_actor),
    db: Session = Depends(get_db),
):
    service = UserService(db)
    try:
        user = service.deactivate_user(user_id, actor)
        db.commit()
        return user
    except BookkeepingError as e:
        db.rollback()
        raise to_http_exception(e)
