"""Message service - WhatsApp message ingestion and message-to-task conversion."""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from taskflow.db.enums import DEFAULT_TASK_PRIORITY, TaskPriority, TaskStatus
from taskflow.db.models import InboundMessage, Task
from taskflow.schemas.message import MessageUpdate
from taskflow.services import notification_service
from taskflow.services.priority_classifier import classify

logger = logging.getLogger(__name__)

CONVERTED_TITLE_PREFIX = "WhatsApp"


class MessageServiceError(Exception):
    """Base exception for message service errors."""

    pass


class MessageNotFoundError(MessageServiceError):
    """Message not found for this owner."""

    pass


class MessageAlreadyConvertedError(MessageServiceError):
    """Message was already turned into a task."""

    def __init__(self, message_id: UUID, task_id: UUID | None = None):
        super().__init__(f"Message {message_id} was already converted")
        self.message_id = message_id
        self.task_id = task_id


# =============================================================================
# Ingestion
# =============================================================================


def ingest_message(
    db: Session,
    owner_id: UUID,
    contact: str,
    content: str,
    received_at: datetime | None = None,
    priority: TaskPriority | None = None,
) -> InboundMessage:
    """
    Store an inbound message and notify its owner.

    Priority is classified from the content unless given explicitly.
    """
    assigned = priority or classify(content)
    message = InboundMessage(
        owner_id=owner_id,
        contact=contact,
        content=content,
        received_at=received_at or datetime.now(timezone.utc),
        priority=assigned.value,
        converted=False,
    )
    db.add(message)
    db.flush()
    notification_service.notify_message_received(
        db, owner_id, contact, content, commit=False
    )
    db.commit()
    db.refresh(message)

    logger.info(
        "Stored WhatsApp message %s for owner %s (priority=%s)",
        message.id,
        owner_id,
        assigned.value,
    )
    return message


# =============================================================================
# CRUD
# =============================================================================


def get_message(db: Session, message_id: UUID, owner_id: UUID) -> InboundMessage | None:
    """Get message by ID (owner-scoped)."""
    return db.query(InboundMessage).filter(
        InboundMessage.id == message_id,
        InboundMessage.owner_id == owner_id,
    ).first()


def list_messages(
    db: Session,
    owner_id: UUID,
    converted: bool | None = None,
    priority: TaskPriority | None = None,
) -> list[InboundMessage]:
    """List the owner's messages, newest first."""
    query = db.query(InboundMessage).filter(InboundMessage.owner_id == owner_id)

    if converted is not None:
        query = query.filter(InboundMessage.converted.is_(converted))
    if priority:
        query = query.filter(InboundMessage.priority == priority.value)

    return query.order_by(InboundMessage.created_at.desc()).all()


def update_message(
    db: Session, message: InboundMessage, data: MessageUpdate
) -> InboundMessage:
    """Apply a priority override and/or mark the message as dismissed."""
    update_data = data.model_dump(exclude_unset=True)

    if update_data.get("priority") is not None:
        message.priority = update_data["priority"].value
    if update_data.get("converted"):
        message.converted = True

    db.commit()
    db.refresh(message)
    return message


# =============================================================================
# Conversion
# =============================================================================


def converted_task_title(contact: str) -> str:
    return f"{CONVERTED_TITLE_PREFIX}: {contact}"[:255]


def convert_message(db: Session, owner_id: UUID, message_id: UUID) -> Task:
    """
    Turn one message into one task.

    The message is claimed with a conditional update on `converted = false`,
    so concurrent or repeated calls cannot both succeed. Task, flag and
    notification are committed together; any failure rolls all of them back.

    Raises:
        MessageNotFoundError: No such message for this owner
        MessageAlreadyConvertedError: Message was converted before
    """
    claimed = db.execute(
        update(InboundMessage)
        .where(
            InboundMessage.id == message_id,
            InboundMessage.owner_id == owner_id,
            InboundMessage.converted.is_(False),
        )
        .values(converted=True)
        .execution_options(synchronize_session=False)
    )

    if claimed.rowcount == 0:
        db.rollback()
        message = get_message(db, message_id, owner_id)
        if not message:
            raise MessageNotFoundError(f"Message {message_id} not found")
        existing_task_id = db.query(Task.id).filter(
            Task.source_message_id == message_id,
            Task.owner_id == owner_id,
        ).scalar()
        raise MessageAlreadyConvertedError(message_id, existing_task_id)

    try:
        message = get_message(db, message_id, owner_id)
        db.refresh(message)

        task = Task(
            owner_id=owner_id,
            title=converted_task_title(message.contact),
            description=message.content,
            priority=message.priority or DEFAULT_TASK_PRIORITY.value,
            status=TaskStatus.PENDING.value,
            completed=False,
            client=message.contact,
            from_channel=True,
            source_message_id=message.id,
        )
        db.add(task)
        db.flush()

        notification_service.notify_message_converted(
            db, owner_id, message.contact, task.title, commit=False
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(task)
    logger.info("Converted message %s into task %s", message_id, task.id)
    return task
