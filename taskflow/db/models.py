"""SQLAlchemy ORM models for users, tasks, WhatsApp messages and notifications."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    Boolean, Date, ForeignKey, Index, Integer, String, Text, Uuid, func, text
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from taskflow.db.base import Base
from taskflow.db.enums import (
    DEFAULT_ROLE, DEFAULT_TASK_PRIORITY, DEFAULT_TASK_STATUS,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Users
# =============================================================================

class User(Base):
    """
    An account holding tasks, messages, notifications and
    at most one WhatsApp connection.
    """
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_ROLE.value,
        server_default=text(f"'{DEFAULT_ROLE.value}'"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=text("true"), nullable=False
    )
    # Bumped to revoke every session token issued before
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    @property
    def display_name(self) -> str:
        full_name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return full_name or self.username


# =============================================================================
# Tasks
# =============================================================================

class Task(Base):
    """
    A to-do item owned by one user.

    `status` is canonical; `completed` mirrors status == done.
    Tasks converted from a WhatsApp message carry `from_channel` and
    the id of their source message (unique, so a message yields one task).
    """
    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_owner_created", "owner_id", "created_at"),
        Index("idx_tasks_owner_status", "owner_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(
        String(10),
        default=DEFAULT_TASK_PRIORITY.value,
        server_default=text(f"'{DEFAULT_TASK_PRIORITY.value}'"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        default=DEFAULT_TASK_STATUS.value,
        server_default=text(f"'{DEFAULT_TASK_STATUS.value}'"),
        nullable=False,
    )
    client: Mapped[str | None] = mapped_column(String(255), nullable=True)
    deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    completed: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    from_channel: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    source_message_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("inbound_messages.id", ondelete="SET NULL"),
        unique=True,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    owner: Mapped["User"] = relationship()


# =============================================================================
# WhatsApp
# =============================================================================

class InboundMessage(Base):
    """
    A WhatsApp message received for a user.

    Only `converted` (and a manual priority override) ever changes after insert.
    """
    __tablename__ = "inbound_messages"
    __table_args__ = (
        Index("idx_messages_owner_created", "owner_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    contact: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)
    priority: Mapped[str | None] = mapped_column(String(10), nullable=True)
    converted: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class ChannelConnection(Base):
    """
    Persisted WhatsApp link state; one row per user (upserted by owner).

    `qr_code` holds the pending pairing token while a scan is awaited.
    """
    __tablename__ = "channel_connections"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True)
    qr_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_connected: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    last_connected_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )


# =============================================================================
# Notifications
# =============================================================================

class Notification(Base):
    """In-app notification for a user."""
    __tablename__ = "notifications"
    __table_args__ = (
        Index("idx_notif_user_read", "user_id", "read", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=text("false"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
