from __future__ import annotations

from datetime import datetime

import pytest

from conftest import create_task, signup
from taskflow import actions
from taskflow.models import Task


# --- Form parsing -----------------------------------------------------------

def test_parse_due_date_lands_on_local_noon():
    assert actions.parse_due_date("2025-03-14") == datetime(2025, 3, 14, 12, 0)
    assert actions.parse_due_date("") is None
    with pytest.raises(ValueError):
        actions.parse_due_date("14/03/2025")


def test_parse_task_form_defaults():
    fields = actions.parse_task_form("  Ship it  ")
    assert fields.name == "Ship it"
    assert fields.priority.value == "medium"
    assert fields.status.value == "todo"
    assert fields.due_date is None
    assert fields.assignee_id is None


@pytest.mark.parametrize(
    "kwargs,error",
    [
        ({"title": ""}, "Task name is required"),
        ({"title": "   "}, "Task name is required"),
        ({"title": "x", "status": "blocked"}, "Invalid status: blocked"),
        ({"title": "x", "priority": "urgent"}, "Invalid priority: urgent"),
        ({"title": "x", "due_date": "tomorrow"}, "Invalid due date"),
        ({"title": "x", "assignee_id": "bob"}, "Invalid assignee"),
        ({"title": "x", "assignee_id": "\u00b2"}, "Invalid assignee"),
        ({"title": "x", "assignee_id": "\u0663"}, "Invalid assignee"),
        ({"title": "x", "assignee_id": "0"}, "Invalid assignee"),
        ({"title": "x", "assignee_id": "9" * 25}, "Invalid assignee"),
    ],
)
def test_parse_task_form_errors(kwargs, error):
    assert actions.parse_task_form(**kwargs) == error


# --- Create -------------------------------------------------------------------

def test_create_task_requires_session(client, db):
    body = create_task(client)
    assert body["error"] == "Not authenticated"
    assert db.query(Task).count() == 0


def test_create_task_with_empty_name_persists_nothing(client, alice, db):
    body = create_task(client, title="")
    assert body["error"] == "Task name is required"
    assert body["success"] is False
    assert db.query(Task).count() == 0


def test_create_task_defaults(client, alice):
    body = create_task(client, description="first draft")
    assert body["error"] is None
    assert body["revalidate"] == ["/tasks", "/board"]
    task = body["task"]
    assert task["name"] == "Write spec"
    assert task["description"] == "first draft"
    assert task["status"] == "todo"
    assert task["priority"] == "medium"
    assert task["dueDate"] is None
    assert task["assignee"] is None
    assert task["creator"] == {"id": alice["id"], "name": "Alice"}


def test_create_task_with_all_fields(client, make_client):
    bob = signup(make_client(), email="bob@example.com", name="Bob")["user"]
    signup(client)
    task = create_task(
        client,
        title="Review PR",
        priority="high",
        status="review",
        dueDate="2025-03-14",
        assigneeId=str(bob["id"]),
    )["task"]
    assert task["priority"] == "high"
    assert task["status"] == "review"
    assert task["dueDate"].startswith("2025-03-14T12:00:00")
    assert task["assignee"] == {"id": bob["id"], "name": "Bob"}


def test_create_task_with_unknown_assignee(client, alice, db):
    body = create_task(client, assigneeId="999")
    assert body["error"] == "Assignee not found"
    assert db.query(Task).count() == 0


def test_create_task_rejects_unknown_status(client, alice, db):
    body = create_task(client, status="archived")
    assert body["error"] == "Invalid status: archived"
    assert db.query(Task).count() == 0


@pytest.mark.parametrize("assignee", ["²", "9" * 25])
def test_create_task_rejects_malformed_assignee(client, alice, db, assignee):
    body = create_task(client, assigneeId=assignee)
    assert body["error"] == "Invalid assignee"
    assert db.query(Task).count() == 0


# --- Update -------------------------------------------------------------------

def test_update_task_replaces_all_fields(client, alice):
    task_id = create_task(client, description="old", priority="low", dueDate="2025-01-01")["task"]["id"]
    body = client.put(
        f"/api/tasks/{task_id}",
        data={"title": "Renamed", "description": "", "priority": "high", "status": "done", "dueDate": ""},
    ).json()
    assert body["error"] is None
    assert body["revalidate"] == ["/tasks", "/board"]
    task = body["task"]
    assert task["name"] == "Renamed"
    assert task["description"] == ""
    assert task["priority"] == "high"
    assert task["status"] == "done"
    assert task["dueDate"] is None


def test_update_task_validates(client, alice):
    task_id = create_task(client)["task"]["id"]
    body = client.put(f"/api/tasks/{task_id}", data={"title": ""}).json()
    assert body["error"] == "Task name is required"
    assert client.get(f"/api/tasks/{task_id}").json()["name"] == "Write spec"


def test_update_missing_task(client, alice):
    body = client.put("/api/tasks/42", data={"title": "x"}).json()
    assert body["error"] == "Task not found"


def test_update_refreshes_updated_at_even_without_changes(client, alice, db):
    task = create_task(client)["task"]
    db.query(Task).update({Task.updated_at: datetime(2000, 1, 1)})
    db.commit()

    body = client.put(
        f"/api/tasks/{task['id']}",
        data={"title": task["name"], "priority": task["priority"], "status": task["status"]},
    ).json()
    assert body["error"] is None
    db.expire_all()
    assert db.query(Task).one().updated_at > datetime(2000, 1, 1)


def test_update_requires_session(client, make_client):
    signup(client)
    task_id = create_task(client)["task"]["id"]
    body = make_client().put(f"/api/tasks/{task_id}", data={"title": "x"}).json()
    assert body["error"] == "Not authenticated"


# --- Status -------------------------------------------------------------------

def test_update_status_is_visible_on_next_read(client, alice):
    task_id = create_task(client)["task"]["id"]
    body = client.patch(f"/api/tasks/{task_id}/status", data={"status": "in_progress"}).json()
    assert body["error"] is None
    assert body["revalidate"] == ["/board"]

    board = client.get("/api/board").json()
    assert board["columns"]["todo"]["tasks"] == []
    assert [t["id"] for t in board["columns"]["in_progress"]["tasks"]] == [task_id]


def test_update_status_leaves_other_fields_alone(client, alice):
    task = create_task(client, description="keep me", priority="high", dueDate="2025-06-01")["task"]
    updated = client.patch(f"/api/tasks/{task['id']}/status", data={"status": "done"}).json()["task"]
    for key in ("name", "description", "priority", "dueDate", "creator", "assignee"):
        assert updated[key] == task[key]


@pytest.mark.parametrize("status", ["", "blocked", "DONE"])
def test_update_status_rejects_unknown_values(client, alice, status):
    task_id = create_task(client)["task"]["id"]
    body = client.patch(f"/api/tasks/{task_id}/status", data={"status": status}).json()
    assert body["error"].startswith("Invalid status")
    assert client.get(f"/api/tasks/{task_id}").json()["status"] == "todo"


def test_update_status_missing_task(client, alice):
    body = client.patch("/api/tasks/7/status", data={"status": "done"}).json()
    assert body["error"] == "Task not found"


@pytest.mark.parametrize("task_id", ["9" * 25, "-" + "9" * 25])
def test_out_of_range_task_ids_are_not_found(client, alice, task_id):
    assert client.patch(f"/api/tasks/{task_id}/status", data={"status": "done"}).json()["error"] == "Task not found"
    assert client.put(f"/api/tasks/{task_id}", data={"title": "x"}).json()["error"] == "Task not found"
    assert client.delete(f"/api/tasks/{task_id}").json()["error"] == "Task not found"
    assert client.get(f"/api/tasks/{task_id}").status_code == 404


# --- Delete -------------------------------------------------------------------

def test_delete_task(client, alice, db):
    task_id = create_task(client)["task"]["id"]
    body = client.delete(f"/api/tasks/{task_id}").json()
    assert body["success"] is True
    assert body["revalidate"] == ["/tasks", "/board"]
    assert db.query(Task).count() == 0
    assert client.get(f"/api/tasks/{task_id}").status_code == 404


def test_delete_missing_task(client, alice):
    assert client.delete("/api/tasks/3").json()["error"] == "Task not found"


def test_delete_requires_session(client, make_client, db):
    signup(client)
    task_id = create_task(client)["task"]["id"]
    assert make_client().delete(f"/api/tasks/{task_id}").json()["error"] == "Not authenticated"
    assert db.query(Task).count() == 1


# --- Reads --------------------------------------------------------------------

def test_list_is_newest_first(client, alice):
    ids = [create_task(client, title=f"task {i}")["task"]["id"] for i in range(3)]
    listed = client.get("/api/tasks").json()
    assert [t["id"] for t in listed] == list(reversed(ids))


def test_nested_users_expose_only_id_and_name(client, alice):
    create_task(client, assigneeId=str(alice["id"]))
    task = client.get("/api/tasks").json()[0]
    assert set(task["creator"]) == {"id", "name"}
    assert set(task["assignee"]) == {"id", "name"}


def test_users_list_exposes_only_id_and_name(client, make_client, alice):
    signup(make_client(), email="bob@example.com", name="Bob")
    users = client.get("/api/users").json()
    assert users == [{"id": alice["id"], "name": "Alice"}, {"id": users[1]["id"], "name": "Bob"}]


@pytest.mark.parametrize("path", ["/api/tasks", "/api/tasks/1", "/api/board", "/api/stats", "/api/users"])
def test_protected_reads_redirect_to_login(client, path):
    resp = client.get(path, follow_redirects=False)
    assert resp.status_code == 303
    assert resp.headers["location"] == "/login"


def test_redirect_lands_on_login_page(client):
    resp = client.get("/api/tasks")
    assert resp.status_code == 200
    assert resp.json()["detail"] == "Login required"


def test_end_to_end_scenario(client, make_client):
    signup(make_client())
    login = client.post("/api/auth/login", data={"email": "alice@example.com", "password": "password123"}).json()
    assert login["success"] is True

    task_id = create_task(client, title="Write spec", status="todo")["task"]["id"]
    client.patch(f"/api/tasks/{task_id}/status", data={"status": "in_progress"})

    tasks = client.get("/api/tasks").json()
    assert len(tasks) == 1
    assert tasks[0]["status"] == "in_progress"
    assert tasks[0]["creator"]["name"] == "Alice"
