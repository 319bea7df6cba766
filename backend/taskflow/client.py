"""Thin requests-based client for the TaskFlow HTTP API."""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from . import config
from .actions import NOT_AUTHENTICATED
from .schemas import ActionResult, CurrentUser, KanbanBoard, SafeUser, TaskOut, TeamStats

logger = logging.getLogger(__name__)


class TaskFlowError(Exception):
    pass

class NotAuthenticated(TaskFlowError):
    pass


class TaskFlowClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None, timeout: float = None):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout or config.STORE_TIMEOUT_SECONDS

    def _request(self, method: str, path: str, data: Optional[Dict[str, Any]] = None):
        resp = self.session.request(
            method,
            f"{self.base_url}{path}",
            data=data,
            timeout=self.timeout,
            allow_redirects=False,
        )
        if resp.status_code in (302, 303, 307):
            raise NotAuthenticated("Login required")
        if resp.status_code >= 400:
            raise TaskFlowError(f"{method} {path} failed with HTTP {resp.status_code}")
        return resp.json()

    def _action(self, method: str, path: str, data: Optional[Dict[str, Any]] = None) -> ActionResult:
        result = ActionResult.model_validate(self._request(method, path, data))
        if result.error:
            if result.error == NOT_AUTHENTICATED:
                raise NotAuthenticated(result.error)
            raise TaskFlowError(result.error)
        return result

    # Auth

    def signup(self, email: str, password: str, name: str) -> CurrentUser:
        return self._action("POST", "/api/auth/signup", {"email": email, "password": password, "name": name}).user

    def login(self, email: str, password: str) -> CurrentUser:
        return self._action("POST", "/api/auth/login", {"email": email, "password": password}).user

    def logout(self) -> None:
        self._request("POST", "/api/auth/logout")

    def me(self) -> Optional[CurrentUser]:
        data = self._request("GET", "/api/auth/me")
        return CurrentUser.model_validate(data) if data else None

    # Reads

    def list_tasks(self) -> List[TaskOut]:
        return [TaskOut.model_validate(t) for t in self._request("GET", "/api/tasks")]

    def get_task(self, task_id: int) -> TaskOut:
        return TaskOut.model_validate(self._request("GET", f"/api/tasks/{task_id}"))

    def board(self) -> KanbanBoard:
        return KanbanBoard.model_validate(self._request("GET", "/api/board"))

    def stats(self) -> TeamStats:
        return TeamStats.model_validate(self._request("GET", "/api/stats"))

    def users(self) -> List[SafeUser]:
        return [SafeUser.model_validate(u) for u in self._request("GET", "/api/users")]

    # Mutations

    @staticmethod
    def _task_form(
        title: str,
        description: str = "",
        priority: str = "medium",
        status: str = "todo",
        due_date: Optional[date] = None,
        assignee_id: Optional[int] = None,
    ) -> Dict[str, str]:
        return {
            "title": title,
            "description": description,
            "priority": priority,
            "status": status,
            "dueDate": due_date.isoformat() if due_date else "",
            "assigneeId": str(assignee_id) if assignee_id is not None else "",
        }

    def create_task(self, title: str, **fields) -> TaskOut:
        return self._action("POST", "/api/tasks", self._task_form(title, **fields)).task

    def update_task(self, task_id: int, title: str, **fields) -> TaskOut:
        return self._action("PUT", f"/api/tasks/{task_id}", self._task_form(title, **fields)).task

    def update_task_status(self, task_id: int, status: str) -> TaskOut:
        """Also usable as BoardReconciler's persist_status callable."""
        logger.debug(f"Persisting task {task_id} status={status}")
        return self._action("PATCH", f"/api/tasks/{task_id}/status", {"status": status}).task

    def delete_task(self, task_id: int) -> None:
        self._action("DELETE", f"/api/tasks/{task_id}")
