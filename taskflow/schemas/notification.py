"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from taskflow.db.enums import NotificationType


class NotificationRead(BaseModel):
    """A single in-app notification."""
    id: UUID
    title: str
    message: str
    type: NotificationType
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    items: list[NotificationRead]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Number of unread notifications."""
    count: int
