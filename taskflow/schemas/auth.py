"""Authentication-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from taskflow.db.enums import Role


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    role: str
    token_version: int


class UserSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency; every
    owner-scoped query filters by `user_id`.
    """
    user_id: UUID
    username: str
    email: str
    role: Role  # Validated enum
    display_name: str


class RegisterRequest(BaseModel):
    """Create a local account."""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class ProfileUpdate(BaseModel):
    """Self-service profile edit (partial)."""
    email: EmailStr | None = None
    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    password: str | None = Field(None, min_length=6, max_length=128)

    model_config = {"extra": "forbid"}


class UserRead(BaseModel):
    """User response (never includes the password hash)."""
    id: UUID
    username: str
    email: str
    first_name: str | None
    last_name: str | None
    display_name: str
    role: Role
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}
