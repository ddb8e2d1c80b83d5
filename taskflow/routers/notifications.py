"""
Notifications Router - /notifications endpoints.

Provides notification listing and read status.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from taskflow.core.deps import get_current_session, get_db, require_csrf_header
from taskflow.schemas.auth import UserSession
from taskflow.schemas.notification import (
    NotificationListResponse,
    NotificationRead,
    UnreadCountResponse,
)
from taskflow.services import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    unread_only: bool = False,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Get user's notifications (newest first)."""
    notifications = notification_service.get_notifications(
        db=db,
        user_id=session.user_id,
        unread_only=unread_only,
        limit=limit,
        offset=offset,
    )
    unread_count = notification_service.get_unread_count(db, session.user_id)
    return NotificationListResponse(
        items=[NotificationRead.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.get("/count", response_model=UnreadCountResponse)
def get_unread_count(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Unread count for the caller, cheap enough to poll."""
    count = notification_service.get_unread_count(db, session.user_id)
    return UnreadCountResponse(count=count)


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_notification_read(
    notification_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark a single notification as read."""
    notification = notification_service.mark_read(db, notification_id, session.user_id)
    if not notification:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.post("/read-all", dependencies=[Depends(require_csrf_header)])
def mark_all_notifications_read(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Mark every unread notification of the caller as read."""
    count = notification_service.mark_all_read(db, session.user_id)
    return {"marked_read": count}
