"""Pydantic schemas for the WhatsApp channel."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from taskflow.db.enums import ChannelEventKind, ChannelState


class ChannelStatus(BaseModel):
    """Connection lifecycle snapshot for one owner."""
    state: ChannelState
    connected: bool
    pending_token: str | None = None  # QR payload, only while awaiting a scan
    qr_image: str | None = None  # Same payload as a PNG data URL
    phone_number: str | None = None
    last_connected_at: datetime | None = None


class SendMessageRequest(BaseModel):
    to: str = Field(..., min_length=3, max_length=64)
    message: str = Field(..., min_length=1, max_length=4096)


class SendMessageResponse(BaseModel):
    success: bool
    message: str


class BridgeEvent(BaseModel):
    """Event pushed by the WhatsApp bridge for one owner's session."""
    owner_id: UUID
    event: ChannelEventKind
    data: dict[str, Any] = Field(default_factory=dict)
