"""Request dependencies: DB session, caller identity, roles, CSRF and the channel manager."""

from typing import Generator
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from taskflow.core.security import decode_session_token
from taskflow.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "taskflow_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"
BEARER_PREFIX = "bearer "


def get_db() -> Generator[Session, None, None]:
    """
    Per-request SQLAlchemy session.

    Closed when the response is sent.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.lower().startswith(BEARER_PREFIX):
        return header[len(BEARER_PREFIX):].strip() or None
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get authenticated user from the bearer token or session cookie.

    Validates:
    - A token is present
    - JWT signature and expiry
    - User still exists and is active
    - token_version still matches (bumped on password change or deactivation)

    Raises:
        HTTPException 401: Any check failed
    """
    # Late import keeps deps importable before the models
    from taskflow.db.models import User

    token = _bearer_token(request) or request.cookies.get(COOKIE_NAME)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Revoked sessions
    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    return user


def get_current_session(
    request: Request,
    db: Session = Depends(get_db)
):
    """
    Get session context: user_id, role, identity.

    Owner-scoped endpoints depend on this; `user_id` is the owner filter.

    Raises:
        HTTPException 401: Not authenticated
        HTTPException 403: Unknown role
    """
    from taskflow.db.enums import Role
    from taskflow.schemas.auth import UserSession

    user = get_current_user(request, db)

    # Unknown role strings are a 403, never a 500
    if not Role.has_value(user.role):
        raise HTTPException(
            status_code=403,
            detail=f"Unknown role '{user.role}'. Contact administrator."
        )

    return UserSession(
        user_id=user.id,
        username=user.username,
        email=user.email,
        role=Role(user.role),
        display_name=user.display_name,
    )


def require_roles(allowed_roles: list):
    """
    Build a dependency that admits only the given roles.

    Usage:
        @router.get("/users", dependencies=[Depends(require_roles([Role.ADMIN]))])
    """
    def dependency(request: Request, db: Session = Depends(get_db)):
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(
                status_code=403,
                detail=f"Role '{session.role.value}' not authorized for this action"
            )
        return session
    return dependency


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on cookie-authenticated mutations.

    Bearer-token calls carry no ambient credentials and are exempt.

    Raises:
        HTTPException 403: Header absent on a cookie-authenticated call
    """
    if _bearer_token(request):
        return
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'"
        )


def get_channel_manager():
    """In-process WhatsApp channel manager (overridden in tests)."""
    from taskflow.services.channel_manager import channel_manager

    return channel_manager
