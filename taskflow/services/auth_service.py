"""Auth service - local account registration, login and profile updates."""

import logging
from datetime import datetime, timezone

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskflow.core.security import hash_password, verify_password
from taskflow.db.enums import Role
from taskflow.db.models import User
from taskflow.schemas.auth import ProfileUpdate, RegisterRequest

logger = logging.getLogger(__name__)


class AuthServiceError(Exception):
    """Base exception for auth service errors."""

    pass


class DuplicateUserError(AuthServiceError):
    """Username or email already taken."""

    pass


class InvalidCredentialsError(AuthServiceError):
    """Unknown username or wrong password."""

    pass


class AccountDisabledError(AuthServiceError):
    """User exists but is deactivated."""

    pass


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(func.lower(User.username) == username.lower()).first()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(func.lower(User.email) == email.lower()).first()


def _ensure_email_available(db: Session, email: str, exclude_user: User | None = None) -> None:
    existing = get_user_by_email(db, email)
    if existing and existing is not exclude_user:
        raise DuplicateUserError("Email already in use")


def _commit_account(db: Session) -> None:
    """Commit, turning a lost username/email race into DuplicateUserError."""
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateUserError("Username or email already exists") from exc


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    first_name: str | None = None,
    last_name: str | None = None,
    role: Role = Role.STANDARD,
) -> User:
    """Create a local account with a hashed password."""
    if get_user_by_username(db, username):
        raise DuplicateUserError("Username already exists")
    _ensure_email_available(db, email)

    user = User(
        username=username,
        email=email.lower(),
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role.value,
        is_active=True,
    )
    db.add(user)
    _commit_account(db)
    db.refresh(user)
    logger.info("Registered user %s", user.id)
    return user


def register(db: Session, data: RegisterRequest) -> User:
    return create_user(
        db,
        username=data.username,
        email=data.email,
        password=data.password,
        first_name=data.first_name or None,
        last_name=data.last_name or None,
    )


def authenticate(db: Session, username: str, password: str) -> User:
    """
    Check credentials and stamp last login.

    Raises:
        InvalidCredentialsError: Unknown user or wrong password
        AccountDisabledError: Correct credentials on an inactive account
    """
    user = get_user_by_username(db, username)
    if not user or not verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Invalid credentials")
    if not user.is_active:
        raise AccountDisabledError("Account disabled")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user


def update_profile(db: Session, user: User, data: ProfileUpdate) -> User:
    """
    Self-service profile edit.

    A password change bumps token_version, revoking other sessions.
    """
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("email"):
        _ensure_email_available(db, update_data["email"], exclude_user=user)
        user.email = update_data["email"].lower()
    if "first_name" in update_data:
        user.first_name = update_data["first_name"] or None
    if "last_name" in update_data:
        user.last_name = update_data["last_name"] or None
    if update_data.get("password"):
        user.password_hash = hash_password(update_data["password"])
        user.token_version += 1

    _commit_account(db)
    db.refresh(user)
    return user
