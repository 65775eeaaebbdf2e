"""
Pydantic schemas for user administration.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from bookkeeping.models.enums import Role


class UserCreate(BaseModel):
    user_id: str = Field(min_length=1, max_length=100)
    name: str = Field(min_length=1, max_length=100)
    role: Role = Role.USER


class UserRoleUpdate(BaseModel):
    role: Role


class UserResponse(BaseModel):
    id: int
    user_id: str
    name: str
    role: Role
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}
