"""Pydantic schemas for WhatsApp messages."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from taskflow.db.enums import TaskPriority


class MessageCreate(BaseModel):
    """
    Inbound message payload (manual insert and webhook).

    Priority is classified from the content when omitted.
    """
    contact: str = Field(..., min_length=1, max_length=255)
    content: str = Field(..., min_length=1, max_length=10000)
    time: datetime | None = None
    priority: TaskPriority | None = None


class MessageUpdate(BaseModel):
    """Partial message update: priority override or dismissal."""
    priority: TaskPriority | None = None
    converted: Literal[True] | None = None

    model_config = {"extra": "forbid"}


class MessageRead(BaseModel):
    id: UUID
    owner_id: UUID
    contact: str
    content: str
    received_at: datetime
    priority: TaskPriority | None
    converted: bool
    created_at: datetime

    model_config = {"from_attributes": True}
