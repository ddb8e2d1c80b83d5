"""Admin router - user management (admins only)."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taskflow.core.deps import get_db, require_csrf_header, require_roles
from taskflow.db.enums import Role
from taskflow.schemas.auth import UserRead, UserSession
from taskflow.schemas.user import AdminUserUpdate, UserListResponse
from taskflow.services import user_service

router = APIRouter()

require_admin = require_roles([Role.ADMIN])


@router.get("/users", response_model=UserListResponse)
def list_users(
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """All users with role and activity counts."""
    users = user_service.list_users(db)
    return UserListResponse(
        items=[UserRead.model_validate(u) for u in users],
        total=len(users),
        admins=sum(1 for u in users if u.role == Role.ADMIN.value),
        active=sum(1 for u in users if u.is_active),
    )


@router.patch(
    "/users/{user_id}",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_user(
    user_id: UUID,
    data: AdminUserUpdate,
    session: UserSession = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Change a user's role or active flag."""
    try:
        return user_service.admin_update_user(db, session.user_id, user_id, data)
    except user_service.UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except user_service.SelfModificationError as e:
        raise HTTPException(status_code=409, detail=str(e))
