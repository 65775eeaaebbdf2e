"""
User administration service.

Administrators create users, change their roles, and deactivate
them. A deactivated user keeps their name on past entries but
can no longer act on any entry.
"""

import logging

from sqlalchemy import select, func
from sqlalchemy.orm import Session

from bookkeeping.errors import ForbiddenError, NotFoundError, ValidationError
from bookkeeping.models.enums import Role
from bookkeeping.models.user import User
from bookkeeping.schemas.user import UserCreate

logger = logging.getLogger(__name__)


class UserService:

    def __init__(self, db: Session):
        self.db = db

    def _require_admin(self, actor: str | None) -> None:
        admin = self.db.execute(
            select(User).where(User.user_id == actor)
        ).scalar_one_or_none()
        if admin is None or not admin.is_active or admin.role != Role.ADMIN:
            raise ForbiddenError("Only administrators may manage users")

    def create_user(self, request: UserCreate, actor: str | None) -> User:
        """
        Create a user.

        Requires an ADMIN actor, except for the very first user,
        which bootstraps an empty directory and must be an ADMIN.
        """
        user_count = self.db.execute(select(func.count(User.id))).scalar_one()
        if user_count == 0:
            if request.role != Role.ADMIN:
                raise ValidationError("The first user must be an ADMIN")
        else:
            self._require_admin(actor)

        existing = self.db.execute(
            select(User).where(User.user_id == request.user_id)
        ).scalar_one_or_none()
        if existing:
            raise ValidationError(f"User '{request.user_id}' already exists")

        user = User(user_id=request.user_id, name=request.name, role=request.role)
        self.db.add(user)
        self.db.flush()
        logger.info(
            "User %s created with role %s by %s",
            user.user_id, user.role.value, actor or "<bootstrap>",
        )
        return user

    def change_role(self, user_id: str, role: Role, actor: str) -> User:
        self._require_admin(actor)
        user = self.get_user(user_id)
        if user.user_id == actor and role != Role.ADMIN:
            raise ValidationError("Administrators cannot demote themselves")
        user.role = role
        self.db.flush()
        logger.info("User %s role set to %s by %s", user_id, role.value, actor)
        return user

    def deactivate_user(self, user_id: str, actor: str) -> User:
        self._require_admin(actor)
        user = self.get_user(user_id)
        if user.user_id == actor:
            raise ValidationError("Administrators cannot deactivate themselves")
        user.is_active = False
        self.db.flush()
        logger.info("User %s deactivated by %s", user_id, actor)
        return user

    def get_user(self, user_id: str) -> User:
        user = self.db.execute(
            select(User).where(User.user_id == user_id)
        ).scalar_one_or_none()
        if not user:
            raise NotFoundError(f"User {user_id} not found")
        return user

    def list_users(self) -> list[User]:
        users = self.db.execute(select(User).order_by(User.user_id)).scalars().all()
        return list(users)
