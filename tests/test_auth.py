"""
Tests for signup, login, logout and password reset.
"""
from unittest.mock import patch
from urllib.parse import parse_qs, urlparse

from models import db
from models.audit_log import AuditLog
from models.password_reset import PasswordResetToken
from models.user import User
from models.user_session import UserSession
from tests.conftest import PASSWORD, bearer

NEW_PASSWORD = "brand-new-secret-42"


def signup_payload(**overrides):
    payload = {
        "name": "Ada Student",
        "email": "ada@example.com",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
        "major": "Mathematics",
        "university": "Analytical U",
    }
    payload.update(overrides)
    return payload


class TestSignup:

    def test_creates_student_and_returns_token(self, client, clock):
        resp = client.post("/api/signup", json=signup_payload())
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["token_type"] == "Bearer"
        assert data["user"]["email"] == "ada@example.com"
        assert data["user"]["role"] == "student"
        assert data["user"]["major"] == "Mathematics"
        assert data["user"]["status"] == "active"

        me = client.get("/api/me", headers=bearer(data["token"]))
        assert me.status_code == 200

        user = User.query.filter_by(email="ada@example.com").one()
        assert UserSession.query.filter_by(user_id=user.id, is_active=True).count() == 1

    def test_email_is_normalised(self, client):
        resp = client.post("/api/signup", json=signup_payload(email="  Ada@Example.COM "))
        assert resp.status_code == 201
        assert resp.get_json()["data"]["user"]["email"] == "ada@example.com"

    def test_duplicate_email_is_rejected(self, client, student):
        resp = client.post("/api/signup", json=signup_payload(email=student.email))
        assert resp.status_code == 422
        assert "email" in resp.get_json()["errors"]

    def test_password_confirmation_must_match(self, client):
        resp = client.post("/api/signup", json=signup_payload(password_confirmation="something-else"))
        assert resp.status_code == 422
        assert "password" in resp.get_json()["errors"]

    def test_short_password_is_rejected(self, client):
        resp = client.post("/api/signup", json=signup_payload(password="short", password_confirmation="short"))
        assert resp.status_code == 422

    def test_missing_fields(self, client):
        resp = client.post("/api/signup", json={})
        body = resp.get_json()
        assert resp.status_code == 422
        assert set(body["errors"]) >= {"name", "email", "password"}


class TestLogin:

    def test_success_updates_last_login(self, client, student, login, clock):
        login()
        assert db.session.get(User, student.id).last_login == clock()
        assert AuditLog.query.filter_by(action="LOGIN_SUCCESS", user_id=student.id).count() == 1

    def test_wrong_password(self, client, student):
        resp = client.post("/api/login", json={"email": student.email, "password": "nope-nope-nope"})
        assert resp.status_code == 401
        assert resp.get_json() == {"success": False, "message": "Invalid credentials"}

        row = AuditLog.query.filter_by(action="LOGIN_FAIL").one()
        assert row.user_id == student.id
        assert row.level == "warning"

    def test_unknown_email(self, client):
        resp = client.post("/api/login", json={"email": "ghost@example.com", "password": PASSWORD})
        assert resp.status_code == 401
        assert AuditLog.query.filter_by(action="LOGIN_FAIL").one().user_id is None

    def test_suspended_user_is_refused(self, client, make_user):
        make_user(email="banned@example.com", status="suspended")
        resp = client.post("/api/login", json={"email": "banned@example.com", "password": PASSWORD})
        assert resp.status_code == 403
        assert UserSession.query.count() == 0

    def test_invalid_payload(self, client):
        resp = client.post("/api/login", json={"email": "not-an-email"})
        assert resp.status_code == 422

    def test_concurrent_logins_are_independent(self, client, student, login):
        phone = login(user_agent="Phone")
        laptop = login(user_agent="Laptop")
        assert client.get("/api/me", headers=bearer(phone)).status_code == 200
        assert client.get("/api/me", headers=bearer(laptop)).status_code == 200


class TestLogout:

    def test_ends_session_and_deletes_token(self, client, student, login, clock):
        token = login()
        clock.advance(minutes=1)

        resp = client.post("/api/logout", headers=bearer(token))
        assert resp.status_code == 200

        sess = UserSession.query.filter_by(user_id=student.id).one()
        assert sess.is_active is False
        assert sess.ended_reason == "logout"
        assert sess.ended_at == clock()

        assert client.get("/api/me", headers=bearer(token)).status_code == 401

    def test_requires_authentication(self, client):
        assert client.post("/api/logout").status_code == 401


class TestPasswordReset:

    def request_reset(self, client, email):
        with patch("routes.auth.send_email", return_value=(True, None)) as sender:
            resp = client.post("/api/forgot-password", json={"email": email})
        return resp, sender

    def token_from(self, sender):
        body = sender.call_args[0][2]
        link = [line for line in body.splitlines() if "reset-password.html" in line][0]
        return parse_qs(urlparse(link.strip()).query)["token"][0]

    def test_unknown_email_gets_same_answer(self, client):
        resp, sender = self.request_reset(client, "ghost@example.com")
        assert resp.status_code == 200
        assert sender.call_count == 0
        assert PasswordResetToken.query.count() == 0

    def test_sends_link_and_stores_hash(self, client, student):
        resp, sender = self.request_reset(client, student.email)
        assert resp.status_code == 200
        assert sender.call_args[0][0] == student.email
        assert sender.call_args[0][1] == "Reset Your Password - Student Tracker"

        token = self.token_from(sender)
        stored = db.session.get(PasswordResetToken, student.email)
        assert stored is not None
        assert stored.token_hash != token

    def test_email_failure_reports_error(self, client, student):
        # no SMTP host in the test config
        resp = client.post("/api/forgot-password", json={"email": student.email})
        assert resp.status_code == 500
        assert resp.get_json()["success"] is False

    def test_reset_changes_password_and_signs_out_everywhere(self, client, student, login):
        phone = login(user_agent="Phone")
        laptop = login(user_agent="Laptop")
        _, sender = self.request_reset(client, student.email)

        resp = client.post("/api/reset-password", json={
            "email": student.email,
            "token": self.token_from(sender),
            "password": NEW_PASSWORD,
            "password_confirmation": NEW_PASSWORD,
        })
        assert resp.status_code == 200

        assert client.get("/api/me", headers=bearer(phone)).status_code == 401
        assert client.get("/api/me", headers=bearer(laptop)).status_code == 401
        reasons = {s.ended_reason for s in UserSession.query.filter_by(user_id=student.id)}
        assert reasons == {"password_reset"}

        old = client.post("/api/login", json={"email": student.email, "password": PASSWORD})
        assert old.status_code == 401
        assert login(password=NEW_PASSWORD)
        assert db.session.get(PasswordResetToken, student.email) is None

    def test_wrong_token(self, client, student):
        self.request_reset(client, student.email)
        resp = client.post("/api/reset-password", json={
            "email": student.email,
            "token": "definitely-not-it",
            "password": NEW_PASSWORD,
            "password_confirmation": NEW_PASSWORD,
        })
        assert resp.status_code == 400

    def test_expired_token(self, client, student, clock):
        _, sender = self.request_reset(client, student.email)
        clock.advance(minutes=61)

        resp = client.post("/api/reset-password", json={
            "email": student.email,
            "token": self.token_from(sender),
            "password": NEW_PASSWORD,
            "password_confirmation": NEW_PASSWORD,
        })
        assert resp.status_code == 400
        assert db.session.get(PasswordResetToken, student.email) is None

    def test_new_request_replaces_old_token(self, client, student):
        _, first = self.request_reset(client, student.email)
        _, second = self.request_reset(client, student.email)
        assert PasswordResetToken.query.count() == 1

        resp = client.post("/api/reset-password", json={
            "email": student.email,
            "token": self.token_from(first),
            "password": NEW_PASSWORD,
            "password_confirmation": NEW_PASSWORD,
        })
        assert resp.status_code == 400
        assert self.token_from(second) != self.token_from(first)
