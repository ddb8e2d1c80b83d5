"""Pydantic schemas for admin user management."""

from pydantic import BaseModel

from taskflow.db.enums import Role
from taskflow.schemas.auth import UserRead


class AdminUserUpdate(BaseModel):
    """Admin change to another user's role or activation."""
    role: Role | None = None
    is_active: bool | None = None

    model_config = {"extra": "forbid"}


class UserListResponse(BaseModel):
    items: list[UserRead]
    total: int
    admins: int
    active: int
