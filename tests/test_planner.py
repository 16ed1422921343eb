"""
Tests for goals and tasks.
"""
import pytest

from models import db
from models.goal import Goal
from models.task import Task
from tests.conftest import bearer


@pytest.fixture
def token(student, login):
    return login()


@pytest.fixture
def other_token(make_user, login):
    make_user(email="other@example.com", name="Other")
    return login(email="other@example.com")


def create_goal(client, token, title="Finish thesis", **fields):
    payload = {"title": title, **fields}
    return client.post("/api/goals", json=payload, headers=bearer(token))


def create_task(client, token, title="Read papers", goal_id=None, **fields):
    payload = {"title": title, **fields}
    if goal_id is None:
        return client.post("/api/tasks", json=payload, headers=bearer(token))
    return client.post(f"/api/goals/{goal_id}/tasks", json=payload, headers=bearer(token))


@pytest.fixture
def goal_id(client, token):
    return create_goal(client, token).get_json()["data"]["id"]


class TestGoals:

    def test_create(self, client, token, student):
        resp = create_goal(client, token, description="Chapter by chapter", target_date="2025-06-30")
        body = resp.get_json()
        assert resp.status_code == 201
        assert body["message"] == "Goal created successfully."
        assert body["data"]["completed"] is False
        assert body["data"]["target_date"] == "2025-06-30"
        assert body["data"]["user_id"] == student.id

    def test_title_is_required(self, client, token):
        resp = client.post("/api/goals", json={"description": "untitled"}, headers=bearer(token))
        assert resp.status_code == 422
        assert "title" in resp.get_json()["errors"]

    def test_list_includes_tasks(self, client, token, goal_id, other_token):
        create_task(client, token, goal_id=goal_id)
        create_goal(client, other_token, title="Someone else's")

        rows = client.get("/api/goals", headers=bearer(token)).get_json()["data"]
        assert len(rows) == 1
        assert [t["title"] for t in rows[0]["tasks"]] == ["Read papers"]

    def test_update(self, client, token, goal_id):
        resp = client.put(f"/api/goals/{goal_id}", json={"completed": True, "title": "Defend thesis"},
                          headers=bearer(token))
        body = resp.get_json()
        assert body["message"] == "Goal updated successfully."
        assert body["data"]["completed"] is True
        assert body["data"]["title"] == "Defend thesis"

    def test_update_rejects_non_boolean(self, client, token, goal_id):
        resp = client.put(f"/api/goals/{goal_id}", json={"completed": "yes"}, headers=bearer(token))
        assert resp.status_code == 422
        assert db.session.get(Goal, goal_id).completed is False

    def test_complete(self, client, token, goal_id):
        resp = client.post(f"/api/goals/{goal_id}/complete", headers=bearer(token))
        assert resp.get_json()["message"] == "Goal marked as completed."
        assert db.session.get(Goal, goal_id).completed is True

    def test_delete_keeps_tasks_as_standalone(self, client, token, goal_id):
        task_id = create_task(client, token, goal_id=goal_id).get_json()["data"]["id"]

        resp = client.delete(f"/api/goals/{goal_id}", headers=bearer(token))
        assert resp.get_json() == {"success": True, "message": "Goal deleted successfully."}
        assert db.session.get(Goal, goal_id) is None
        assert db.session.get(Task, task_id).goal_id is None

    def test_other_users_goal_is_not_found(self, client, goal_id, other_token):
        for method, url in (
            (client.put, f"/api/goals/{goal_id}"),
            (client.delete, f"/api/goals/{goal_id}"),
            (client.post, f"/api/goals/{goal_id}/complete"),
            (client.get, f"/api/goals/{goal_id}/tasks"),
            (client.post, f"/api/goals/{goal_id}/tasks"),
        ):
            resp = method(url, json={"title": "x"}, headers=bearer(other_token))
            assert resp.status_code == 404
            assert resp.get_json() == {"success": False, "message": "Goal not found."}


class TestCreateTask:

    def test_standalone(self, client, token):
        resp = create_task(client, token, due_date="2025-01-03")
        body = resp.get_json()
        assert resp.status_code == 201
        assert body["message"] == "Task created successfully."
        assert body["data"]["goal_id"] is None
        assert body["data"]["completed"] is False
        assert body["data"]["goal"] is None

    def test_standalone_with_goal_in_body(self, client, token, goal_id):
        data = client.post("/api/tasks", json={"title": "Outline", "goal_id": goal_id},
                           headers=bearer(token)).get_json()["data"]
        assert data["goal"] == {"id": goal_id, "title": "Finish thesis"}

    def test_other_users_goal(self, client, goal_id, other_token):
        resp = client.post("/api/tasks", json={"title": "Sneaky", "goal_id": goal_id}, headers=bearer(other_token))
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Goal not found."

    def test_missing_parent(self, client, token):
        resp = create_task(client, token, parent_task_id=999)
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Parent task not found."

    def test_standalone_parent_must_be_standalone(self, client, token, goal_id):
        parent_id = create_task(client, token, goal_id=goal_id).get_json()["data"]["id"]
        resp = create_task(client, token, title="Child", parent_task_id=parent_id)
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Parent task must be a standalone task."

    def test_parent_must_share_goal(self, client, token, goal_id):
        other_goal = create_goal(client, token, title="Get fit").get_json()["data"]["id"]
        parent_id = create_task(client, token, goal_id=other_goal).get_json()["data"]["id"]
        resp = client.post("/api/tasks", json={"title": "Child", "goal_id": goal_id, "parent_task_id": parent_id},
                           headers=bearer(token))
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Parent task must belong to the same goal."

    def test_goal_task_parent_from_other_goal_is_not_found(self, client, token, goal_id):
        other_goal = create_goal(client, token, title="Get fit").get_json()["data"]["id"]
        parent_id = create_task(client, token, goal_id=other_goal).get_json()["data"]["id"]
        resp = create_task(client, token, goal_id=goal_id, parent_task_id=parent_id)
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Parent task not found."

    def test_subtask_shows_under_parent(self, client, token, goal_id):
        parent_id = create_task(client, token, goal_id=goal_id).get_json()["data"]["id"]
        child = create_task(client, token, title="Skim abstracts", goal_id=goal_id, parent_task_id=parent_id)
        assert child.status_code == 201

        rows = client.get("/api/tasks", headers=bearer(token)).get_json()["data"]
        by_title = {r["title"]: r for r in rows}
        assert by_title["Skim abstracts"]["parent"]["id"] == parent_id
        assert [c["title"] for c in by_title["Read papers"]["children"]] == ["Skim abstracts"]

    def test_title_is_required(self, client, token):
        resp = client.post("/api/tasks", json={"title": "  "}, headers=bearer(token))
        assert resp.status_code == 422


class TestListTasks:

    def test_filters_by_goal(self, client, token, goal_id, other_token):
        create_task(client, token, title="Loose end")
        create_task(client, token, title="Thesis work", goal_id=goal_id)
        create_task(client, other_token, title="Not mine")

        def titles(query=""):
            return [r["title"] for r in client.get(f"/api/tasks{query}", headers=bearer(token)).get_json()["data"]]

        assert sorted(titles()) == ["Loose end", "Thesis work"]
        assert titles("?goal_id=null") == ["Loose end"]
        assert titles(f"?goal_id={goal_id}") == ["Thesis work"]

    def test_unknown_goal_filter(self, client, token):
        resp = client.get("/api/tasks?goal_id=999", headers=bearer(token))
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Goal not found."

    def test_goal_tasks_endpoint(self, client, token, goal_id):
        create_task(client, token, title="One", goal_id=goal_id)
        create_task(client, token, title="Two", goal_id=goal_id)
        rows = client.get(f"/api/goals/{goal_id}/tasks", headers=bearer(token)).get_json()["data"]
        assert [r["title"] for r in rows] == ["Two", "One"]


class TestUpdateTask:

    def test_update_fields(self, client, token):
        task_id = create_task(client, token).get_json()["data"]["id"]
        resp = client.put(f"/api/tasks/{task_id}", json={"title": "Read two papers", "completed": True},
                          headers=bearer(token))
        body = resp.get_json()
        assert body["message"] == "Task updated successfully."
        assert body["data"]["title"] == "Read two papers"
        assert body["data"]["completed"] is True

    def test_detach_from_goal(self, client, token, goal_id):
        task_id = create_task(client, token, goal_id=goal_id).get_json()["data"]["id"]
        resp = client.put(f"/api/tasks/{task_id}", json={"goal_id": None}, headers=bearer(token))
        assert resp.get_json()["data"]["goal_id"] is None

    def test_parent_checked_against_current_goal(self, client, token, goal_id):
        task_id = create_task(client, token, goal_id=goal_id).get_json()["data"]["id"]
        loose_id = create_task(client, token, title="Loose").get_json()["data"]["id"]
        resp = client.put(f"/api/tasks/{task_id}", json={"parent_task_id": loose_id}, headers=bearer(token))
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "Parent task must belong to the same goal."

    def test_cannot_nest_under_itself_or_descendant(self, client, token):
        top = create_task(client, token, title="Top").get_json()["data"]["id"]
        child = create_task(client, token, title="Child", parent_task_id=top).get_json()["data"]["id"]

        assert client.put(f"/api/tasks/{top}", json={"parent_task_id": top}, headers=bearer(token)).status_code == 400
        resp = client.put(f"/api/tasks/{top}", json={"parent_task_id": child}, headers=bearer(token))
        assert resp.status_code == 400
        assert db.session.get(Task, top).parent_task_id is None

    def test_other_users_goal(self, client, token, other_token):
        task_id = create_task(client, token).get_json()["data"]["id"]
        foreign_goal = create_goal(client, other_token).get_json()["data"]["id"]
        resp = client.put(f"/api/tasks/{task_id}", json={"goal_id": foreign_goal}, headers=bearer(token))
        assert resp.status_code == 404
        assert resp.get_json()["message"] == "Goal not found."


class TestCompleteAndDeleteTask:

    def test_complete(self, client, token):
        task_id = create_task(client, token).get_json()["data"]["id"]
        resp = client.post(f"/api/tasks/{task_id}/complete", headers=bearer(token))
        assert resp.get_json()["message"] == "Task marked as completed."
        assert db.session.get(Task, task_id).completed is True

    def test_delete_removes_subtasks(self, client, token):
        top = create_task(client, token, title="Top").get_json()["data"]["id"]
        child = create_task(client, token, title="Child", parent_task_id=top).get_json()["data"]["id"]
        create_task(client, token, title="Grandchild", parent_task_id=child)

        resp = client.delete(f"/api/tasks/{top}", headers=bearer(token))
        assert resp.get_json() == {"success": True, "message": "Task deleted successfully."}
        assert Task.query.count() == 0

    def test_other_users_task_is_not_found(self, client, token, other_token):
        task_id = create_task(client, token).get_json()["data"]["id"]
        for method, url in (
            (client.put, f"/api/tasks/{task_id}"),
            (client.post, f"/api/tasks/{task_id}/complete"),
            (client.delete, f"/api/tasks/{task_id}"),
        ):
            resp = method(url, json={}, headers=bearer(other_token))
            assert resp.status_code == 404
            assert resp.get_json() == {"success": False, "message": "Task not found."}

    def test_idle_session_is_timed_out(self, client, token, clock):
        task_id = create_task(client, token).get_json()["data"]["id"]
        clock.advance(minutes=45)
        resp = client.post(f"/api/tasks/{task_id}/complete", headers=bearer(token))
        assert resp.status_code == 401
        assert db.session.get(Task, task_id).completed is False
