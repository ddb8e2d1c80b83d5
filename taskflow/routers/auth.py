"""Auth router - local registration, login, logout and profile."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from taskflow.core.config import settings
from taskflow.core.deps import (
    COOKIE_NAME,
    get_current_user,
    get_db,
    require_csrf_header,
)
from taskflow.core.rate_limit import auth_limit, limiter
from taskflow.core.security import create_session_token
from taskflow.db.models import User
from taskflow.schemas.auth import (
    LoginRequest,
    ProfileUpdate,
    RegisterRequest,
    UserRead,
)
from taskflow.services import auth_service

router = APIRouter()


def _set_session_cookie(response: Response, user: User) -> None:
    session_token = create_session_token(user.id, user.role, user.token_version)
    response.set_cookie(
        key=COOKIE_NAME,
        value=session_token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


@router.post("/register", response_model=UserRead, status_code=201)
@limiter.limit(auth_limit)
def register(
    request: Request,
    response: Response,
    data: RegisterRequest,
    db: Session = Depends(get_db),
):
    """Create a local account and start a session."""
    try:
        user = auth_service.register(db, data)
    except auth_service.DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))

    _set_session_cookie(response, user)
    return user


@router.post("/login", response_model=UserRead)
@limiter.limit(auth_limit)
def login(
    request: Request,
    response: Response,
    data: LoginRequest,
    db: Session = Depends(get_db),
):
    """Check credentials and set the session cookie."""
    try:
        user = auth_service.authenticate(db, data.username, data.password)
    except auth_service.InvalidCredentialsError:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    except auth_service.AccountDisabledError:
        raise HTTPException(status_code=401, detail="Account disabled")

    _set_session_cookie(response, user)
    return user


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response):
    """Clear session cookie."""
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


# =============================================================================
# Session Endpoints
# =============================================================================

@router.get("/me", response_model=UserRead)
def get_me(user: User = Depends(get_current_user)):
    """Current authenticated user (used by the frontend on page load)."""
    return user


@router.patch(
    "/me",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_me(
    data: ProfileUpdate,
    response: Response,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Update the current user's profile.

    A password change revokes other sessions; this one gets a fresh cookie.
    """
    previous_version = user.token_version
    try:
        user = auth_service.update_profile(db, user, data)
    except auth_service.DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))

    if user.token_version != previous_version:
        _set_session_cookie(response, user)
    return user
