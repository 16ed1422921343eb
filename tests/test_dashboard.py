"""
Tests for the student dashboard summary.
"""
from datetime import date, timedelta

import pytest

from models import db
from models.announcement import Announcement
from models.task import Task
from tests.conftest import T0, bearer


@pytest.fixture
def token(student, login):
    return login()


def add_task(user, title, due=None, completed=False):
    task = Task(user_id=user.id, title=title, due_date=due, completed=completed)
    db.session.add(task)
    db.session.commit()
    return task


def announce(title, audience="all", target=None, sent=True, minutes=0):
    row = Announcement(
        title=title,
        message=f"{title} body",
        audience=audience,
        target_user_id=target.id if target else None,
        sent_at=T0 + timedelta(minutes=minutes) if sent else None,
    )
    db.session.add(row)
    db.session.commit()
    return row


class TestDashboardSummary:

    def test_profile_and_semesters_with_courses(self, client, token, student):
        sem = client.post("/api/semesters", json={"title": "Fall"}, headers=bearer(token)).get_json()["data"]
        client.post(f"/api/semesters/{sem['id']}/courses", json={"name": "Biology"}, headers=bearer(token))

        data = client.get("/api/dashboard/summary", headers=bearer(token)).get_json()["data"]
        assert data["user"]["email"] == student.email
        assert [s["title"] for s in data["semesters"]] == ["Fall"]
        assert [c["name"] for c in data["semesters"][0]["courses"]] == ["Biology"]

    def test_pending_tasks_due_this_week_or_undated(self, client, token, student, make_user):
        # the clock starts on Wednesday 2025-01-01; the week runs Monday to Sunday
        add_task(student, "Undated")
        add_task(student, "Friday", due=date(2025, 1, 3))
        add_task(student, "Monday", due=date(2024, 12, 30))
        add_task(student, "Next week", due=date(2025, 1, 6))
        add_task(student, "Done", due=date(2025, 1, 2), completed=True)
        add_task(make_user(email="other@example.com"), "Not mine")

        data = client.get("/api/dashboard/summary", headers=bearer(token)).get_json()["data"]
        assert [t["title"] for t in data["tasks"]] == ["Monday", "Friday", "Undated"]
        assert data["week"] == {"start": "2024-12-30", "end": "2025-01-05"}

    def test_relevant_sent_announcements(self, client, token, student, make_user):
        other = make_user(email="other@example.com")
        announce("Everyone", minutes=1)
        announce("Students", audience="students", minutes=2)
        announce("Just you", audience="single", target=student, minutes=3)
        announce("Someone else", audience="single", target=other, minutes=4)
        announce("Draft", sent=False)

        data = client.get("/api/dashboard/summary", headers=bearer(token)).get_json()["data"]
        assert [a["title"] for a in data["announcements"]] == ["Just you", "Students", "Everyone"]

    def test_admins_do_not_get_student_announcements(self, client, admin, login):
        announce("Everyone", minutes=1)
        announce("Students", audience="students", minutes=2)
        token = login(email=admin.email)

        data = client.get("/api/dashboard/summary", headers=bearer(token)).get_json()["data"]
        assert [a["title"] for a in data["announcements"]] == ["Everyone"]

    def test_only_latest_five_announcements(self, client, token):
        for i in range(7):
            announce(f"News {i}", minutes=i)

        data = client.get("/api/dashboard/summary", headers=bearer(token)).get_json()["data"]
        assert [a["title"] for a in data["announcements"]] == [f"News {i}" for i in (6, 5, 4, 3, 2)]

    def test_requires_login(self, client):
        assert client.get("/api/dashboard/summary").status_code == 401
