"""Messages router - stored WhatsApp messages and conversion to tasks."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taskflow.core.deps import get_current_session, get_db, require_csrf_header
from taskflow.db.enums import TaskPriority
from taskflow.schemas.auth import UserSession
from taskflow.schemas.message import MessageCreate, MessageRead, MessageUpdate
from taskflow.schemas.task import TaskRead
from taskflow.services import message_service

router = APIRouter()


def _get_owned_message(db: Session, message_id: UUID, session: UserSession):
    message = message_service.get_message(db, message_id, session.user_id)
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")
    return message


@router.get("", response_model=list[MessageRead])
def list_messages(
    converted: bool | None = None,
    priority: TaskPriority | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List the caller's messages, newest first."""
    return message_service.list_messages(
        db, session.user_id, converted=converted, priority=priority
    )


@router.post(
    "",
    response_model=MessageRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_message(
    data: MessageCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Store a message by hand; priority is classified when omitted."""
    return message_service.ingest_message(
        db,
        owner_id=session.user_id,
        contact=data.contact,
        content=data.content,
        received_at=data.time,
        priority=data.priority,
    )


@router.get("/{message_id}", response_model=MessageRead)
def get_message(
    message_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_owned_message(db, message_id, session)


@router.patch(
    "/{message_id}",
    response_model=MessageRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_message(
    message_id: UUID,
    data: MessageUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Override priority or dismiss a message."""
    message = _get_owned_message(db, message_id, session)
    return message_service.update_message(db, message, data)


@router.post(
    "/{message_id}/convert",
    response_model=TaskRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def convert_message(
    message_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Turn a message into a task. A message converts at most once."""
    try:
        return message_service.convert_message(db, session.user_id, message_id)
    except message_service.MessageNotFoundError:
        raise HTTPException(status_code=404, detail="Message not found")
    except message_service.MessageAlreadyConvertedError as e:
        detail = {"message": "Message already converted"}
        if e.task_id:
            detail["task_id"] = str(e.task_id)
        raise HTTPException(status_code=409, detail=detail)
