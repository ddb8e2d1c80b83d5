"""Stats router - aggregate counts over the caller's tasks."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from taskflow.core.deps import get_current_session, get_db
from taskflow.schemas.auth import UserSession
from taskflow.schemas.task import TaskStats
from taskflow.services import task_service

router = APIRouter()


@router.get("", response_model=TaskStats)
def get_stats(
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Task counts: total, in progress, completed, converted from WhatsApp."""
    return task_service.compute_stats(db, session.user_id)
