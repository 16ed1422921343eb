"""
Test configuration and fixtures for the Student Organizer backend tests.
"""
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import TestConfig
from models import db
from models.user import User
from security.password import hash_password
from utils.seed import get_role

PASSWORD = "correct-horse-battery"
T0 = datetime(2025, 1, 1, 0, 0, 0)


class FakeClock:
    """Injectable clock; tests move time explicitly."""

    def __init__(self, start: datetime = T0):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, value: datetime):
        self.current = value
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def app(clock):
    app = create_app(TestConfig)
    app.config["CLOCK"] = clock
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make_user(email="student@example.com", name="Student", role="STUDENT", status="active",
                   password=PASSWORD):
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            status=status,
        )
        user.roles.append(get_role(role))
        db.session.add(user)
        db.session.commit()
        return user
    return _make_user


@pytest.fixture
def login(client):
    """Logs in through the API and returns the bearer token."""
    def _login(email="student@example.com", password=PASSWORD, user_agent="pytest-browser"):
        resp = client.post(
            "/api/login",
            json={"email": email, "password": password},
            headers={"User-Agent": user_agent},
        )
        assert resp.status_code == 200, resp.get_json()
        return resp.get_json()["data"]["token"]
    return _login


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@example.com", name="Admin", role="ADMIN")


@pytest.fixture
def super_admin(make_user):
    return make_user(email="root@example.com", name="Root", role="SUPER_ADMIN")
