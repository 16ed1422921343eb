import logging
import secrets
from urllib.parse import urlencode

from flask import Blueprint, redirect, request, jsonify, current_app, g

from models import db
from models.user import User, STATUS_ACTIVE
from security.password import hash_password
from security.tokens import issue_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.clock import now
from utils.google_oauth import GoogleOAuthError, authorization_url, exchange_code, fetch_user_info
from utils.seed import get_role

logger = logging.getLogger(__name__)

google_bp = Blueprint("google_auth", __name__, url_prefix="/api")


def _frontend_error(message: str):
    frontend_url = current_app.config.get("FRONTEND_URL", "").rstrip("/")
    return redirect(f"{frontend_url}/?" + urlencode({"error": message}))


def _link_or_create_user(profile: dict) -> User:
    user = User.query.filter_by(email=profile["email"]).first()
    if user:
        user.google_id = profile["id"]
        user.google_email = profile["email"]
        if not user.avatar and profile.get("avatar"):
            user.avatar = profile["avatar"]
        return user

    # Random password; the account signs in through Google
    user = User(
        name=profile["name"],
        email=profile["email"],
        password_hash=hash_password(secrets.token_urlsafe(32)),
        avatar=profile.get("avatar"),
        google_id=profile["id"],
        google_email=profile["email"],
        status=STATUS_ACTIVE,
    )
    user.roles.append(get_role("STUDENT"))
    db.session.add(user)
    return user


@google_bp.get("/auth/google")
def google_redirect():
    logger.info("Google OAuth redirect initiated")
    return redirect(authorization_url())


@google_bp.get("/auth/google/callback")
def google_callback():
    try:
        access_token = exchange_code(request.args.get("code"))
        profile = fetch_user_info(access_token)
    except GoogleOAuthError as e:
        logger.error("Google OAuth callback error: %s", e)
        log_event("GOOGLE_LOGIN_FAIL", level="warning", message=str(e))
        return _frontend_error("Google authentication failed. Please try again.")

    user = _link_or_create_user(profile)
    if not user.is_active():
        db.session.commit()
        log_event("LOGIN_SUSPENDED", user_id=user.id, level="warning", metadata={"via": "google"})
        return _frontend_error("Your account has been suspended. Please contact support.")

    user.last_login = now()
    db.session.commit()

    raw_token, sess = issue_token(user, name="google_auth_token")
    log_event("LOGIN_SUCCESS", user_id=user.id, entity="user_session", entity_id=sess.id, metadata={"via": "google"})

    frontend_url = current_app.config.get("FRONTEND_URL", "").rstrip("/")
    redirect_path = request.args.get("redirect_to") or "/"
    if not redirect_path.startswith("/") or redirect_path.startswith("//"):
        redirect_path = "/"
    separator = "&" if "?" in redirect_path else "?"
    query = urlencode({"token": raw_token, "google_login": "success", "from_callback": "1"})
    return redirect(f"{frontend_url}{redirect_path}{separator}{query}")


@google_bp.post("/google/disconnect")
@login_required
def google_disconnect():
    g.user.google_id = None
    g.user.google_email = None
    db.session.commit()

    log_event("GOOGLE_DISCONNECT", user_id=g.user.id)
    return jsonify(success=True, message="Google account disconnected successfully."), 200
