"""Task mutations and reads.

Every mutation returns an ActionResult: validation, authorization and store
failures all come back as data with a user-facing `error`, never as an
exception. `revalidate` names the views that must be refetched.
"""

import logging
from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import crud
from .auth import RequestContext
from .schemas import (
    ActionResult,
    SafeUser,
    TaskFields,
    TaskOut,
    TaskPriority,
    TaskStatus,
    TeamStats,
    TopPerformer,
)

logger = logging.getLogger(__name__)

NOT_AUTHENTICATED = "Not authenticated"
TASK_NOT_FOUND = "Task not found"

TASK_VIEWS = ["/tasks", "/board"]
BOARD_VIEWS = ["/board"]


def parse_due_date(value: Optional[str]) -> Optional[datetime]:
    """Parse YYYY-MM-DD at local noon so timezone shifts keep the same day."""
    value = (value or "").strip()
    if not value:
        return None
    day = datetime.strptime(value, "%Y-%m-%d")
    return day.replace(hour=12)


def parse_status(value: Optional[str]) -> TaskStatus:
    return TaskStatus((value or "").strip())


def parse_task_form(
    title: Optional[str],
    description: Optional[str] = "",
    priority: Optional[str] = "",
    status: Optional[str] = "",
    due_date: Optional[str] = "",
    assignee_id: Optional[str] = "",
) -> Union[TaskFields, str]:
    """Turn raw form values into TaskFields, or return an error message."""
    name = (title or "").strip()
    if not name:
        return "Task name is required"

    priority = (priority or "").strip() or TaskPriority.MEDIUM.value
    try:
        priority = TaskPriority(priority)
    except ValueError:
        return f"Invalid priority: {priority}"

    status = (status or "").strip() or TaskStatus.TODO.value
    try:
        status = TaskStatus(status)
    except ValueError:
        return f"Invalid status: {status}"

    try:
        due = parse_due_date(due_date)
    except ValueError:
        return "Invalid due date"

    assignee = (assignee_id or "").strip()
    if assignee:
        if not (assignee.isascii() and assignee.isdigit()):
            return "Invalid assignee"
        assignee = int(assignee)
        if not 0 < assignee <= crud.MAX_ID:
            return "Invalid assignee"
    else:
        assignee = None

    return TaskFields(
        name=name,
        description=(description or "").strip(),
        priority=priority,
        status=status,
        due_date=due,
        assignee_id=assignee,
    )


def _check_assignee(db: Session, fields: TaskFields) -> Optional[str]:
    if fields.assignee_id is not None and crud.get_user(db, fields.assignee_id) is None:
        return "Assignee not found"
    return None


def create_task(ctx: RequestContext, fields: Union[TaskFields, str]) -> ActionResult:
    if ctx.user is None:
        return ActionResult(error=NOT_AUTHENTICATED)
    if isinstance(fields, str):
        return ActionResult(error=fields)

    db = ctx.db
    try:
        error = _check_assignee(db, fields)
        if error:
            return ActionResult(error=error)
        task = crud.create_task(db, ctx.user.id, fields)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to create task")
        return ActionResult(error="Failed to create task")

    logger.info(f"User {ctx.user.id} created task {task.id}")
    return ActionResult(
        success=True,
        message="Task created",
        task=TaskOut.model_validate(task),
        revalidate=TASK_VIEWS,
    )


def update_task(ctx: RequestContext, task_id: int, fields: Union[TaskFields, str]) -> ActionResult:
    if ctx.user is None:
        return ActionResult(error=NOT_AUTHENTICATED)
    if isinstance(fields, str):
        return ActionResult(error=fields)

    db = ctx.db
    try:
        task = crud.get_task(db, task_id)
        if not task:
            return ActionResult(error=TASK_NOT_FOUND)
        error = _check_assignee(db, fields)
        if error:
            return ActionResult(error=error)
        task = crud.update_task(db, task, fields)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to update task {task_id}")
        return ActionResult(error="Failed to update task")

    logger.info(f"User {ctx.user.id} updated task {task_id}")
    return ActionResult(
        success=True,
        message="Task updated",
        task=TaskOut.model_validate(task),
        revalidate=TASK_VIEWS,
    )


def update_task_status(ctx: RequestContext, task_id: int, status: Optional[str]) -> ActionResult:
    """Status-only update used by the board; touches no other field."""
    if ctx.user is None:
        return ActionResult(error=NOT_AUTHENTICATED)
    try:
        new_status = parse_status(status)
    except ValueError:
        return ActionResult(error=f"Invalid status: {status}")

    db = ctx.db
    try:
        task = crud.get_task(db, task_id)
        if not task:
            return ActionResult(error=TASK_NOT_FOUND)
        task = crud.set_task_status(db, task, new_status)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to update status of task {task_id}")
        return ActionResult(error="Failed to update task status")

    logger.info(f"User {ctx.user.id} moved task {task_id} to {new_status.value}")
    return ActionResult(
        success=True,
        message="Task status updated",
        task=TaskOut.model_validate(task),
        revalidate=BOARD_VIEWS,
    )


def delete_task(ctx: RequestContext, task_id: int) -> ActionResult:
    if ctx.user is None:
        return ActionResult(error=NOT_AUTHENTICATED)

    db = ctx.db
    try:
        task = crud.get_task(db, task_id)
        if not task:
            return ActionResult(error=TASK_NOT_FOUND)
        crud.delete_task(db, task)
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to delete task {task_id}")
        return ActionResult(error="Failed to delete task")

    logger.info(f"User {ctx.user.id} deleted task {task_id}")
    return ActionResult(success=True, message="Task deleted", revalidate=TASK_VIEWS)


# Reads

def get_all_tasks(db: Session) -> List[TaskOut]:
    return [TaskOut.model_validate(t) for t in crud.list_tasks(db)]


def get_task(db: Session, task_id: int) -> Optional[TaskOut]:
    task = crud.get_task(db, task_id)
    return TaskOut.model_validate(task) if task else None


def get_all_users(db: Session) -> List[SafeUser]:
    return [SafeUser.model_validate(u) for u in crud.list_users(db)]


def get_team_stats(db: Session) -> TeamStats:
    top = crud.top_performer(db)
    return TeamStats(
        total_members=crud.count_users(db),
        open_tasks=crud.count_open_tasks(db),
        tasks_completed=crud.count_tasks_with_status(db, TaskStatus.DONE),
        top_performer=TopPerformer(id=top[0].id, name=top[0].name, tasks_completed=top[1]) if top else None,
    )
