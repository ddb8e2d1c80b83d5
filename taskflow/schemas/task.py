"""Pydantic schemas for tasks."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from taskflow.db.enums import TaskPriority, TaskStatus


class TaskCreate(BaseModel):
    """Request to create a task."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    client: str | None = Field(None, max_length=255)
    deadline: date | None = None

    model_config = {"extra": "forbid"}


class TaskUpdate(BaseModel):
    """
    Request to update a task (partial).

    Only the fields listed here are mutable; anything else is rejected.
    """
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    client: str | None = Field(None, max_length=255)
    deadline: date | None = None
    completed: bool | None = None

    model_config = {"extra": "forbid"}


class TaskRead(BaseModel):
    """Full task response."""
    id: UUID
    owner_id: UUID
    title: str
    description: str | None
    priority: TaskPriority
    status: TaskStatus
    client: str | None
    deadline: date | None
    completed: bool
    from_channel: bool
    source_message_id: UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskStats(BaseModel):
    """Counts over the caller's tasks."""
    total: int
    in_progress: int
    completed: int
    from_channel: int
