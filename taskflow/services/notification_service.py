"""
Notification Service - handles in-app notifications.

Provides CRUD for notifications and trigger functions for task/message events.
"""

from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.db.enums import NotificationType
from taskflow.db.models import Notification

PREVIEW_LENGTH = 50


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    commit: bool = True,
) -> Notification:
    """
    Create a notification.

    Args:
        commit: If False, only flushes; the caller commits as part of
                a larger unit of work.
    """
    notification = Notification(
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
    )
    db.add(notification)
    if commit:
        db.commit()
        db.refresh(notification)
    else:
        db.flush()
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    unread_only: bool = False,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = db.query(Notification).filter(Notification.user_id == user_id)

    if unread_only:
        query = query.filter(Notification.read.is_(False))

    return query.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()


def get_unread_count(db: Session, user_id: UUID) -> int:
    """Get count of unread notifications."""
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    ).count()


def mark_read(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
) -> Notification | None:
    """Mark a single notification as read (owner-scoped)."""
    notification = db.query(Notification).filter(
        Notification.id == notification_id,
        Notification.user_id == user_id,
    ).first()

    if not notification:
        return None

    if not notification.read:
        notification.read = True
        db.commit()
        db.refresh(notification)

    return notification


def mark_all_read(db: Session, user_id: UUID) -> int:
    """Mark all of a user's notifications as read. Returns count updated."""
    result = db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    db.commit()
    return result.rowcount


# =============================================================================
# Triggers
# =============================================================================


def _preview(text: str) -> str:
    if len(text) > PREVIEW_LENGTH:
        return f"{text[:PREVIEW_LENGTH]}..."
    return text


def notify_task_created(
    db: Session, user_id: UUID, task_title: str, commit: bool = True
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.INFO,
        title="Task created",
        message=f'Task "{task_title}" was created.',
        commit=commit,
    )


def notify_message_received(
    db: Session, user_id: UUID, contact: str, content: str, commit: bool = True
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.INFO,
        title="New WhatsApp message",
        message=f"Message from {contact}: {_preview(content)}",
        commit=commit,
    )


def notify_message_converted(
    db: Session, user_id: UUID, contact: str, task_title: str, commit: bool = True
) -> Notification:
    return create_notification(
        db=db,
        user_id=user_id,
        type=NotificationType.SUCCESS,
        title="Message converted",
        message=f'Message from {contact} became task "{task_title}".',
        commit=commit,
    )
