"""Task service - business logic for task management and stats."""

from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from taskflow.db.enums import TaskPriority, TaskStatus
from taskflow.db.models import Task
from taskflow.schemas.task import TaskCreate, TaskStats, TaskUpdate
from taskflow.services import notification_service


class TaskServiceError(Exception):
    """Base exception for task service errors."""

    pass


class TaskNotFoundError(TaskServiceError):
    """Task not found for this owner."""

    pass


class TaskValidationError(TaskServiceError):
    """Patch is internally inconsistent."""

    pass


def create_task(
    db: Session,
    owner_id: UUID,
    data: TaskCreate,
) -> Task:
    """Create a new task and notify the owner."""
    task = Task(
        owner_id=owner_id,
        title=data.title,
        description=data.description,
        priority=data.priority.value,
        status=data.status.value,
        completed=data.status == TaskStatus.DONE,
        client=data.client,
        deadline=data.deadline,
    )
    db.add(task)
    db.flush()
    notification_service.notify_task_created(db, owner_id, task.title, commit=False)
    db.commit()
    db.refresh(task)
    return task


def get_task(db: Session, task_id: UUID, owner_id: UUID) -> Task | None:
    """Get task by ID (owner-scoped)."""
    return db.query(Task).filter(
        Task.id == task_id,
        Task.owner_id == owner_id,
    ).first()


def list_tasks(
    db: Session,
    owner_id: UUID,
    status: TaskStatus | None = None,
    priority: TaskPriority | None = None,
    from_channel: bool | None = None,
) -> list[Task]:
    """List the owner's tasks, newest first."""
    query = db.query(Task).filter(Task.owner_id == owner_id)

    if status:
        query = query.filter(Task.status == status.value)
    if priority:
        query = query.filter(Task.priority == priority.value)
    if from_channel is not None:
        query = query.filter(Task.from_channel.is_(from_channel))

    return query.order_by(Task.created_at.desc()).all()


def _reconcile_completion(task: Task, update_data: dict) -> None:
    """
    Keep `completed` in lock-step with `status`.

    status is canonical; a lone `completed` flag is translated into a status.
    """
    status = update_data.get("status")
    completed = update_data.pop("completed", None)

    if status is not None and completed is not None:
        if completed != (status == TaskStatus.DONE):
            raise TaskValidationError(
                "completed must be true exactly when status is 'done'"
            )
    elif completed is not None:
        if completed:
            update_data["status"] = TaskStatus.DONE
        elif task.status == TaskStatus.DONE.value:
            update_data["status"] = TaskStatus.PENDING

    if "status" in update_data:
        update_data["completed"] = update_data["status"] == TaskStatus.DONE


def update_task(db: Session, task: Task, data: TaskUpdate) -> Task:
    """
    Update task fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clear optional fields.
    """
    update_data = data.model_dump(exclude_unset=True)

    # Required columns cannot be cleared
    for field in ("title", "priority", "status", "completed"):
        if field in update_data and update_data[field] is None:
            raise TaskValidationError(f"{field} cannot be null")

    _reconcile_completion(task, update_data)

    for field, value in update_data.items():
        if isinstance(value, (TaskStatus, TaskPriority)):
            value = value.value
        setattr(task, field, value)

    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task: Task) -> None:
    """Delete a task."""
    db.delete(task)
    db.commit()


def compute_stats(db: Session, owner_id: UUID) -> TaskStats:
    """Count the owner's tasks in one aggregate query."""
    row = db.query(
        func.count(Task.id),
        func.coalesce(
            func.sum(case((Task.status == TaskStatus.IN_PROGRESS.value, 1), else_=0)), 0
        ),
        func.coalesce(
            func.sum(case((Task.status == TaskStatus.DONE.value, 1), else_=0)), 0
        ),
        func.coalesce(func.sum(case((Task.from_channel.is_(True), 1), else_=0)), 0),
    ).filter(Task.owner_id == owner_id).one()

    total, in_progress, completed, from_channel = row
    return TaskStats(
        total=int(total),
        in_progress=int(in_progress),
        completed=int(completed),
        from_channel=int(from_channel),
    )
