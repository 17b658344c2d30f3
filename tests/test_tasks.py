import uuid
from datetime import datetime, timezone

import pytest

from todo_api.crud.tasks import MAX_PAGE_SIZE, TaskRepository
from todo_api.errors import NotFoundError
from todo_api.schemas.task import TaskCreate


@pytest.fixture
def alice(make_user):
    return make_user()


@pytest.fixture
def bob(make_user):
    return make_user()


def _create(client, headers, **body):
    body.setdefault("title", "Buy milk and eggs")
    r = client.post("/tasks", json=body, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


def test_create_returns_full_row(client, alice):
    user_id, headers = alice
    task = _create(client, headers, title="  Write report  ", description="quarterly", dueDate="2030-01-15")
    assert task["title"] == "Write report"
    assert task["description"] == "quarterly"
    assert task["completed"] is False
    assert task["dueDate"] == "2030-01-15"
    assert task["ownerId"] == user_id
    assert uuid.UUID(task["id"])
    assert task["createdAt"] and task["updatedAt"]


def test_create_defaults_due_date_to_today(client, alice):
    _, headers = alice
    task = _create(client, headers)
    assert task["dueDate"] == datetime.now(timezone.utc).date().isoformat()


def test_create_accepts_completed_flag(client, alice):
    _, headers = alice
    assert _create(client, headers, completed=True)["completed"] is True


@pytest.mark.parametrize("body", [{}, {"title": ""}, {"title": "   "}, {"title": "ok", "dueDate": "not-a-date"}])
def test_create_validation(client, alice, body):
    _, headers = alice
    r = client.post("/tasks", json=body, headers=headers)
    assert r.status_code == 400


def test_list_returns_only_own_tasks_newest_first(client, alice, bob):
    _, alice_headers = alice
    _, bob_headers = bob
    first = _create(client, alice_headers, title="task one")
    second = _create(client, alice_headers, title="task two")
    _create(client, bob_headers, title="bob task")

    r = client.get("/tasks", headers=alice_headers)
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [second["id"], first["id"]]

    r = client.get("/tasks", headers=bob_headers)
    assert [t["title"] for t in r.json()] == ["bob task"]


def test_list_search_and_pagination(client, alice):
    _, headers = alice
    for i in range(5):
        _create(client, headers, title=f"Chore {i}")
    _create(client, headers, title="Groceries")

    r = client.get("/tasks", params={"q": "chore"}, headers=headers)
    assert len(r.json()) == 5

    r = client.get("/tasks", params={"page": 2, "limit": 4}, headers=headers)
    page = r.json()
    assert page["total"] == 6
    assert page["pages"] == 2
    assert page["page"] == 2
    assert len(page["items"]) == 2

    r = client.get("/tasks", params={"page": 1, "limit": 100}, headers=headers)
    assert r.json()["limit"] == 100
    assert len(r.json()["items"]) == 6


@pytest.mark.parametrize("params", [
    {"page": 0, "limit": 10},
    {"page": 1, "limit": 0},
    {"page": 1, "limit": 101},
    {"page": 10**20, "limit": 10},
    {"page": 1, "limit": 10**20},
])
def test_list_pagination_out_of_range(client, alice, params):
    _, headers = alice
    r = client.get("/tasks", params=params, headers=headers)
    assert r.status_code == 400


def test_repository_clamps_page_size(db, alice):
    user_id, _ = alice
    owner_id = uuid.UUID(user_id)
    repo = TaskRepository(db)
    repo.create(owner_id, TaskCreate(title="Buy milk and eggs"))

    page = repo.list(owner_id, page=0, limit=10**6)
    assert page["page"] == 1
    assert page["limit"] == MAX_PAGE_SIZE
    assert page["total"] == 1


def test_search_treats_wildcards_literally(client, alice):
    _, headers = alice
    _create(client, headers, title="100% done")
    _create(client, headers, title="100 percent")
    _create(client, headers, title="a_b")
    _create(client, headers, title="axb")

    def titles(q):
        r = client.get("/tasks", params={"q": q}, headers=headers)
        assert r.status_code == 200
        return sorted(t["title"] for t in r.json())

    assert titles("%") == ["100% done"]
    assert titles("100%") == ["100% done"]
    assert titles("_") == ["a_b"]
    assert titles("a_b") == ["a_b"]


def test_get_by_id(client, alice):
    _, headers = alice
    task = _create(client, headers)
    r = client.get(f"/tasks/{task['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json() == task


def test_get_other_users_task_is_not_found(client, alice, bob):
    _, alice_headers = alice
    _, bob_headers = bob
    task = _create(client, alice_headers)

    r = client.get(f"/tasks/{task['id']}", headers=bob_headers)
    assert r.status_code == 404
    assert task["title"] not in r.text

    missing = client.get(f"/tasks/{uuid.uuid4()}", headers=bob_headers)
    assert missing.status_code == 404
    assert missing.json() == r.json()


def test_malformed_task_id(client, alice):
    _, headers = alice
    assert client.get("/tasks/not-a-uuid", headers=headers).status_code == 400


def test_update_applies_only_given_fields(client, alice):
    _, headers = alice
    task = _create(client, headers, description="keep me", dueDate="2030-01-15")

    r = client.put(f"/tasks/{task['id']}", json={"completed": True, "title": "Buy oat milk"}, headers=headers)
    assert r.status_code == 200
    updated = r.json()
    assert updated["completed"] is True
    assert updated["title"] == "Buy oat milk"
    assert updated["description"] == "keep me"
    assert updated["dueDate"] == "2030-01-15"
    assert updated["ownerId"] == task["ownerId"]
    assert datetime.fromisoformat(updated["updatedAt"]) > datetime.fromisoformat(task["updatedAt"])

    r = client.put(f"/tasks/{task['id']}", json={"description": None, "dueDate": None}, headers=headers)
    assert r.json()["description"] is None
    assert r.json()["dueDate"] is None


def test_update_missing_task_is_not_found(client, alice):
    _, headers = alice
    r = client.put(f"/tasks/{uuid.uuid4()}", json={"title": "nothing here"}, headers=headers)
    assert r.status_code == 404


def test_update_other_users_task_is_forbidden(client, alice, bob):
    _, alice_headers = alice
    _, bob_headers = bob
    task = _create(client, alice_headers)

    r = client.put(f"/tasks/{task['id']}", json={"title": "hijacked"}, headers=bob_headers)
    assert r.status_code == 403

    r = client.get(f"/tasks/{task['id']}", headers=alice_headers)
    assert r.json()["title"] == task["title"]


@pytest.mark.parametrize("body", [{"title": ""}, {"title": None}, {"completed": None}])
def test_update_validation(client, alice, body):
    _, headers = alice
    task = _create(client, headers)
    r = client.put(f"/tasks/{task['id']}", json=body, headers=headers)
    assert r.status_code == 400


def test_update_of_row_deleted_before_reread_is_not_found(db, alice, monkeypatch):
    user_id, _ = alice
    owner_id = uuid.UUID(user_id)
    repo = TaskRepository(db)
    task = repo.create(owner_id, TaskCreate(title="Buy milk and eggs"))

    # another request removes the row after the UPDATE committed
    monkeypatch.setattr(db, "get", lambda *args, **kwargs: None)
    with pytest.raises(NotFoundError):
        repo.update(task.id, owner_id, {"title": "Buy oat milk"})


def test_delete_then_get_is_not_found(client, alice):
    _, headers = alice
    task = _create(client, headers)

    r = client.delete(f"/tasks/{task['id']}", headers=headers)
    assert r.status_code == 200
    assert r.json()["message"]

    assert client.get(f"/tasks/{task['id']}", headers=headers).status_code == 404
    assert client.delete(f"/tasks/{task['id']}", headers=headers).status_code == 404


def test_delete_other_users_task_is_forbidden(client, alice, bob):
    _, alice_headers = alice
    _, bob_headers = bob
    task = _create(client, alice_headers)

    assert client.delete(f"/tasks/{task['id']}", headers=bob_headers).status_code == 403
    assert client.get(f"/tasks/{task['id']}", headers=alice_headers).status_code == 200


def test_task_routes_require_auth(client, alice):
    _, headers = alice
    task = _create(client, headers)
    assert client.get("/tasks").status_code == 401
    assert client.post("/tasks", json={"title": "x"}).status_code == 401
    assert client.get(f"/tasks/{task['id']}").status_code == 401
    assert client.put(f"/tasks/{task['id']}", json={"title": "x"}).status_code == 401
    assert client.delete(f"/tasks/{task['id']}").status_code == 401
