from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from .models import Task, User
from .models import Session as UserSession
from .schemas import OPEN_STATUSES, TaskFields, TaskStatus

# largest value an INTEGER primary key can hold
MAX_ID = 2**63 - 1


def utcnow() -> datetime:
    # stored naive, in UTC, matching the database's CURRENT_TIMESTAMP
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Users

def get_user(db: Session, user_id: int) -> Optional[User]:
    if not 0 < user_id <= MAX_ID:
        return None
    return db.get(User, user_id)

def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()

def create_user(db: Session, email: str, name: str, password_hash: str) -> User:
    obj = User(email=email, name=name, password=password_hash)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def list_users(db: Session) -> List[User]:
    return db.query(User).order_by(User.name.asc(), User.id.asc()).all()


# Sessions

def create_session(db: Session, user_id: int, token: str, expires_at: datetime) -> UserSession:
    obj = UserSession(token=token, user_id=user_id, expires_at=expires_at)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj

def get_session_by_token(db: Session, token: str) -> Optional[UserSession]:
    return (
        db.query(UserSession)
        .options(joinedload(UserSession.user))
        .filter(UserSession.token == token)
        .first()
    )

def delete_session(db: Session, token: str) -> bool:
    count = db.query(UserSession).filter(UserSession.token == token).delete()
    db.commit()
    return count > 0

def purge_expired_sessions(db: Session, now: Optional[datetime] = None) -> int:
    now = now or utcnow()
    count = db.query(UserSession).filter(UserSession.expires_at <= now).delete()
    db.commit()
    return count


# Tasks

def _task_query(db: Session):
    return db.query(Task).options(joinedload(Task.creator), joinedload(Task.assignee))

def list_tasks(db: Session) -> List[Task]:
    return _task_query(db).order_by(Task.created_at.desc(), Task.id.desc()).all()

def get_task(db: Session, task_id: int) -> Optional[Task]:
    if not 0 < task_id <= MAX_ID:
        return None
    return _task_query(db).filter(Task.id == task_id).first()

def create_task(db: Session, creator_id: int, fields: TaskFields) -> Task:
    obj = Task(
        name=fields.name,
        description=fields.description,
        priority=fields.priority.value,
        status=fields.status.value,
        due_date=fields.due_date,
        creator_id=creator_id,
        assignee_id=fields.assignee_id,
    )
    db.add(obj)
    db.commit()
    return get_task(db, obj.id)

def update_task(db: Session, task: Task, fields: TaskFields) -> Task:
    task.name = fields.name
    task.description = fields.description
    task.priority = fields.priority.value
    task.status = fields.status.value
    task.due_date = fields.due_date
    task.assignee_id = fields.assignee_id
    # refreshed even when no other column changed
    task.updated_at = func.now()
    db.commit()
    db.refresh(task)
    return task

def set_task_status(db: Session, task: Task, status: TaskStatus) -> Task:
    task.status = status.value
    task.updated_at = func.now()
    db.commit()
    db.refresh(task)
    return task

def delete_task(db: Session, task: Task) -> None:
    db.delete(task)
    db.commit()


# Aggregates

def count_users(db: Session) -> int:
    return db.query(func.count(User.id)).scalar()

def count_tasks_with_status(db: Session, *statuses: TaskStatus) -> int:
    values = [s.value for s in statuses]
    return db.query(func.count(Task.id)).filter(Task.status.in_(values)).scalar()

def top_performer(db: Session) -> Optional[Tuple[User, int]]:
    """Assignee with the most done tasks; ties go to the lowest user id."""
    completed = func.count(Task.id).label("completed")
    row = (
        db.query(User, completed)
        .join(Task, Task.assignee_id == User.id)
        .filter(Task.status == TaskStatus.DONE.value)
        .group_by(User.id)
        .order_by(completed.desc(), User.id.asc())
        .first()
    )
    if not row:
        return None
    return row[0], row[1]

def count_open_tasks(db: Session) -> int:
    return count_tasks_with_status(db, *OPEN_STATUSES)
