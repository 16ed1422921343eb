from functools import wraps
from flask import current_app, g, jsonify
from security.activity import TIMED_OUT
from security.session import enforce_session_activity
from security.tokens import bearer_token_from_request, resolve_token
from models import db
from models.user import User

SESSION_EXPIRED_MESSAGE = "Your session has expired. Please log in again."
SESSION_TIMEOUT_MESSAGE = "Your session has expired due to 30 minutes of inactivity. Please log in again."


def load_current_user():
    """Resolves the bearer credential only; the inactivity guard runs on protected routes."""
    g.user = None
    g.access_token = None

    token = resolve_token(bearer_token_from_request())
    if not token:
        return
    g.access_token = token
    g.user = db.session.get(User, token.user_id)


def session_expired_response(decision):
    message = SESSION_TIMEOUT_MESSAGE if decision.verdict == TIMED_OUT else SESSION_EXPIRED_MESSAGE
    return jsonify(
        success=False,
        message=message,
        redirect_url=current_app.config.get("LOGIN_URL"),
    ), 401


def check_authenticated():
    """Returns a failure response, or None when the request may proceed."""
    if getattr(g, "user", None) is None:
        return jsonify(success=False, message="Unauthenticated."), 401

    decision = enforce_session_activity(g.access_token)
    if not decision.allowed:
        g.user = None
        g.access_token = None
        return session_expired_response(decision)
    return None


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        failure = check_authenticated()
        if failure:
            return failure
        return fn(*args, **kwargs)
    return wrapper
