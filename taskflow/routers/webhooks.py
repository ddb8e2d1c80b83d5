"""Webhooks router - inbound WhatsApp messages and bridge events."""

import json
import logging

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from taskflow.core.config import settings
from taskflow.core.deps import (
    get_channel_manager,
    get_current_session,
    get_db,
    require_csrf_header,
)
from taskflow.core.rate_limit import limiter, owner_event_allowed, webhook_limit
from taskflow.core.security import verify_signature
from taskflow.db.models import User
from taskflow.schemas.auth import UserSession
from taskflow.schemas.channel import BridgeEvent
from taskflow.schemas.message import MessageCreate, MessageRead
from taskflow.services import message_service
from taskflow.services.channel_manager import ChannelManager

router = APIRouter()
logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Bridge-Signature"


@router.post(
    "/whatsapp",
    response_model=MessageRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
@limiter.limit(webhook_limit)
def receive_whatsapp_message(
    request: Request,
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """
    Accept `{contact, content, time?}` for the caller and store it classified.
    """
    return message_service.ingest_message(
        db,
        owner_id=session.user_id,
        contact=data.contact,
        content=data.content,
        received_at=data.time,
        priority=data.priority,
    )


def _owner_is_active(db: Session, owner_id: UUID) -> bool:
    owner = db.query(User).filter(User.id == owner_id).first()
    return owner is not None and owner.is_active


@router.post("/whatsapp/events", status_code=202)
async def receive_bridge_event(
    request: Request,
    db: Session = Depends(get_db),
    manager: ChannelManager = Depends(get_channel_manager),
):
    """
    Receive a WhatsApp bridge event.

    Security:
    - Validates X-Bridge-Signature HMAC over the raw body
    - Owner must be an existing, active user
    - Rate limited per owner (429), not per address

    Events are queued per owner and applied in order; the response does not
    wait for them.
    """
    body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")
    if not signature:
        logger.warning("Bridge event missing signature")
        raise HTTPException(403, "Missing signature")
    if not verify_signature(body, signature, settings.WHATSAPP_BRIDGE_SECRET):
        logger.warning("Bridge event invalid signature")
        raise HTTPException(403, "Invalid signature")

    try:
        event = BridgeEvent.model_validate(json.loads(body))
    except (ValueError, ValidationError):
        raise HTTPException(400, "Invalid event payload")

    if not await run_in_threadpool(_owner_is_active, db, event.owner_id):
        logger.warning("Bridge event for unknown owner %s", event.owner_id)
        raise HTTPException(404, "Owner not found")

    if not await run_in_threadpool(owner_event_allowed, event.owner_id):
        logger.warning("Bridge event rate limit hit for owner %s", event.owner_id)
        raise HTTPException(429, "Too many events for this owner")

    manager.publish(event.owner_id, event.event, event.data)
    return {"status": "accepted"}
