"""User service - admin management of roles and activation."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from taskflow.db.enums import Role
from taskflow.db.models import User
from taskflow.schemas.user import AdminUserUpdate
from taskflow.services.auth_service import get_user_by_username

logger = logging.getLogger(__name__)


class UserServiceError(Exception):
    """Base exception for user service errors."""

    pass


class UserNotFoundError(UserServiceError):
    """User not found."""

    pass


class SelfModificationError(UserServiceError):
    """Admins cannot change their own role or deactivate themselves."""

    pass


def get_user(db: Session, user_id: UUID) -> User | None:
    return db.query(User).filter(User.id == user_id).first()


def list_users(db: Session) -> list[User]:
    return db.query(User).order_by(User.created_at.desc()).all()


def admin_update_user(
    db: Session,
    actor_id: UUID,
    user_id: UUID,
    data: AdminUserUpdate,
) -> User:
    """
    Change another user's role and/or active flag.

    Deactivation bumps token_version so existing sessions stop working.
    """
    user = get_user(db, user_id)
    if not user:
        raise UserNotFoundError(f"User {user_id} not found")

    update_data = data.model_dump(exclude_unset=True)
    if user.id == actor_id and (
        ("role" in update_data and update_data["role"] != Role(user.role))
        or update_data.get("is_active") is False
    ):
        raise SelfModificationError("Cannot change your own role or deactivate yourself")

    if update_data.get("role") is not None:
        user.role = update_data["role"].value
    if update_data.get("is_active") is not None and update_data["is_active"] != user.is_active:
        user.is_active = update_data["is_active"]
        if not user.is_active:
            user.token_version += 1

    db.commit()
    db.refresh(user)
    logger.info("User %s updated by admin %s: %s", user.id, actor_id, sorted(update_data))
    return user


def set_role(db: Session, username: str, role: Role) -> User | None:
    """Set a role by username (CLI bootstrap, no self-check)."""
    user = get_user_by_username(db, username)
    if not user:
        return None
    user.role = role.value
    db.commit()
    db.refresh(user)
    return user
