from datetime import datetime
from enum import Enum
from pydantic import BaseModel
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional


class TaskStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"

class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

OPEN_STATUSES = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.REVIEW)


class CamelModel(BaseModel):
    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class SafeUser(CamelModel):
    """Public view of a user: never carries email or password."""
    id: int
    name: str

class CurrentUser(CamelModel):
    id: int
    email: str
    name: str


class TaskFields(BaseModel):
    """Validated task form input."""
    name: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.TODO
    due_date: Optional[datetime] = None
    assignee_id: Optional[int] = None

class TaskOut(CamelModel):
    id: int
    name: str
    description: str
    priority: str
    status: str
    due_date: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    creator: SafeUser
    assignee: Optional[SafeUser]


class ActionResult(CamelModel):
    error: Optional[str] = None
    success: bool = False
    message: Optional[str] = None
    task: Optional[TaskOut] = None
    user: Optional[CurrentUser] = None
    # views the caller should refetch after this mutation
    revalidate: List[str] = []


class TopPerformer(CamelModel):
    id: int
    name: str
    tasks_completed: int

class TeamStats(CamelModel):
    total_members: int
    open_tasks: int
    tasks_completed: int
    top_performer: Optional[TopPerformer]


class KanbanColumn(CamelModel):
    id: TaskStatus
    title: str
    tasks: List[TaskOut]

class KanbanBoard(CamelModel):
    columns: Dict[TaskStatus, KanbanColumn]
    unrecognized: List[TaskOut] = []
