from fastapi import APIRouter, Depends, Form, HTTPException

from ..auth import RequestContext, get_request_context, guard
from ..board import build_board
from .. import actions, schemas

router = APIRouter(prefix="/api", tags=["tasks"])


def task_form(
    title: str = Form(""),
    description: str = Form(""),
    priority: str = Form(""),
    status: str = Form(""),
    due_date: str = Form("", alias="dueDate"),
    assignee_id: str = Form("", alias="assigneeId"),
):
    return actions.parse_task_form(title, description, priority, status, due_date, assignee_id)


@router.get("/tasks", response_model=list[schemas.TaskOut])
def list_all(ctx: RequestContext = Depends(guard)):
    return actions.get_all_tasks(ctx.db)

@router.get("/tasks/{task_id}", response_model=schemas.TaskOut)
def get_one(task_id: int, ctx: RequestContext = Depends(guard)):
    task = actions.get_task(ctx.db, task_id)
    if not task:
        raise HTTPException(404, "Task not found")
    return task

@router.get("/board", response_model=schemas.KanbanBoard)
def board(ctx: RequestContext = Depends(guard)):
    return build_board(actions.get_all_tasks(ctx.db))

@router.post("/tasks", response_model=schemas.ActionResult)
def create(fields=Depends(task_form), ctx: RequestContext = Depends(get_request_context)):
    return actions.create_task(ctx, fields)

@router.put("/tasks/{task_id}", response_model=schemas.ActionResult)
def update(task_id: int, fields=Depends(task_form), ctx: RequestContext = Depends(get_request_context)):
    return actions.update_task(ctx, task_id, fields)

@router.patch("/tasks/{task_id}/status", response_model=schemas.ActionResult)
def update_status(task_id: int, status: str = Form(""), ctx: RequestContext = Depends(get_request_context)):
    return actions.update_task_status(ctx, task_id, status)

@router.delete("/tasks/{task_id}", response_model=schemas.ActionResult)
def delete(task_id: int, ctx: RequestContext = Depends(get_request_context)):
    return actions.delete_task(ctx, task_id)
