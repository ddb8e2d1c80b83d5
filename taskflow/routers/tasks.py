"""Tasks router - API endpoints for task management."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from taskflow.core.deps import get_current_session, get_db, require_csrf_header
from taskflow.db.enums import TaskPriority, TaskStatus
from taskflow.schemas.auth import UserSession
from taskflow.schemas.task import TaskCreate, TaskRead, TaskUpdate
from taskflow.services import task_service

router = APIRouter()


def _get_owned_task(db: Session, task_id: UUID, session: UserSession):
    task = task_service.get_task(db, task_id, session.user_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.get("", response_model=list[TaskRead])
def list_tasks(
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    from_channel: bool | None = None,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """List the caller's tasks, newest first."""
    return task_service.list_tasks(
        db,
        owner_id=session.user_id,
        status=status,
        priority=priority,
        from_channel=from_channel,
    )


@router.post(
    "",
    response_model=TaskRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_task(
    data: TaskCreate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Create a new task."""
    return task_service.create_task(db, owner_id=session.user_id, data=data)


@router.get("/{task_id}", response_model=TaskRead)
def get_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return _get_owned_task(db, task_id, session)


@router.patch(
    "/{task_id}",
    response_model=TaskRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Update task fields. `status` and `completed` are kept consistent."""
    task = _get_owned_task(db, task_id, session)
    try:
        return task_service.update_task(db, task, data)
    except task_service.TaskValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.delete(
    "/{task_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def delete_task(
    task_id: UUID,
    session: UserSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _get_owned_task(db, task_id, session)
    task_service.delete_task(db, task)
