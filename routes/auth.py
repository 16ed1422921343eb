import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User, STATUS_ACTIVE
from models.password_reset import PasswordResetToken
from models.user_session import END_PASSWORD_RESET
from security.password import hash_password, verify_password, password_errors
from security.session import end_current_session, revoke_all_sessions
from security.tokens import issue_token
from utils.audit import log_event
from utils.auth_context import login_required
from utils.clock import now
from utils.emailer import send_email
from utils.seed import get_role
from utils.validation import clean, optional_str, validation_failed

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/api")

RESET_LINK_SENT = "If that email exists, we have sent a password reset link."


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def token_payload(user, raw_token):
    return {
        "user": user.to_dict(),
        "token": raw_token,
        "token_type": "Bearer",
    }


@auth_bp.post("/signup")
def signup():
    data = request.get_json(silent=True) or {}
    name = clean(data.get("name"))
    email = clean(data.get("email")).lower()
    password = data.get("password")

    errors = {}
    if not name or len(name) > 255:
        errors["name"] = ["The name field is required."]
    if not _is_valid_email(email):
        errors["email"] = ["The email must be a valid email address."]
    elif User.query.filter_by(email=email).first():
        errors["email"] = ["The email has already been taken."]
    pw_errors = password_errors(
        password,
        data.get("password_confirmation"),
        current_app.config.get("MIN_PASSWORD_LENGTH", 8),
    )
    if pw_errors:
        errors["password"] = pw_errors
    avatar = optional_str(data, "avatar", errors)
    major = optional_str(data, "major", errors)
    university = optional_str(data, "university", errors)

    if errors:
        return validation_failed(errors)

    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        avatar=avatar,
        major=major,
        university=university,
        status=STATUS_ACTIVE,
        last_login=now(),
    )
    user.roles.append(get_role("STUDENT"))
    db.session.add(user)
    db.session.commit()

    raw_token, sess = issue_token(user)
    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user_session", entity_id=sess.id)

    return jsonify(
        success=True,
        message="User registered successfully",
        data=token_payload(user, raw_token),
    ), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    password = data.get("password")

    errors = {}
    if not isinstance(email, str) or not _is_valid_email(email.strip()):
        errors["email"] = ["The email must be a valid email address."]
    if not isinstance(password, str) or not password:
        errors["password"] = ["The password field is required."]
    if errors:
        return validation_failed(errors)

    email = email.strip().lower()
    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event(
            "LOGIN_FAIL",
            user_id=user.id if user else None,
            level="warning",
            message="Invalid credentials",
            metadata={"email": email},
        )
        return jsonify(success=False, message="Invalid credentials"), 401

    if not user.is_active():
        log_event("LOGIN_SUSPENDED", user_id=user.id, level="warning")
        return jsonify(
            success=False,
            message="Your account has been suspended. Please contact support.",
        ), 403

    user.last_login = now()
    db.session.commit()

    raw_token, sess = issue_token(user)
    log_event("LOGIN_SUCCESS", user_id=user.id, entity="user_session", entity_id=sess.id)

    return jsonify(
        success=True,
        message="Login successful",
        data=token_payload(user, raw_token),
    ), 200


@auth_bp.post("/logout")
@login_required
def logout():
    user_id = g.user.id
    end_current_session(g.access_token)
    log_event("LOGOUT", user_id=user_id)
    return jsonify(success=True, message="Logged out successfully"), 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(success=True, data={"user": g.user.to_dict()}), 200


@auth_bp.post("/forgot-password")
def forgot_password():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    if not isinstance(email, str) or not _is_valid_email(email.strip()):
        return validation_failed({"email": ["The email must be a valid email address."]})
    email = email.strip().lower()

    user = User.query.filter_by(email=email).first()
    if not user:
        # Same answer whether or not the account exists
        return jsonify(success=True, message=RESET_LINK_SENT), 200

    raw_token = secrets.token_urlsafe(48)  # 64 chars

    # Replace any outstanding reset for this email
    PasswordResetToken.query.filter_by(email=email).delete()
    db.session.add(PasswordResetToken(email=email, token_hash=hash_password(raw_token), created_at=now()))
    db.session.commit()

    frontend_url = current_app.config.get("FRONTEND_URL", "").rstrip("/")
    reset_url = f"{frontend_url}/reset-password.html?" + urlencode({"token": raw_token, "email": email})
    body = (
        f"Hi {user.name},\n\n"
        "We received a request to reset your password. Use the link below to choose a new one:\n\n"
        f"{reset_url}\n\n"
        f"This link expires in {current_app.config.get('PASSWORD_RESET_TTL_MINUTES', 60)} minutes. "
        "If you did not request a reset, you can ignore this email."
    )
    ok, error = send_email(user.email, "Reset Your Password" + current_app.config.get("MAIL_SUBJECT_SUFFIX", ""), body)
    if not ok:
        logger.error("Password reset email failed: %s", error)
        log_event("PASSWORD_RESET_EMAIL_FAIL", user_id=user.id, level="error", message=error)
        return jsonify(
            success=False,
            message="Failed to send password reset email. Please try again later.",
            error=error if current_app.debug else None,
        ), 500

    log_event("PASSWORD_RESET_REQUESTED", user_id=user.id)
    return jsonify(success=True, message=RESET_LINK_SENT), 200


@auth_bp.post("/reset-password")
def reset_password():
    data = request.get_json(silent=True) or {}
    email = data.get("email")
    token = data.get("token")

    errors = {}
    if not isinstance(email, str) or not _is_valid_email(email.strip()):
        errors["email"] = ["The email must be a valid email address."]
    if not isinstance(token, str) or not token:
        errors["token"] = ["The token field is required."]
    pw_errors = password_errors(
        data.get("password"),
        data.get("password_confirmation"),
        current_app.config.get("MIN_PASSWORD_LENGTH", 8),
    )
    if pw_errors:
        errors["password"] = pw_errors
    if errors:
        return validation_failed(errors)

    email = email.strip().lower()
    reset = db.session.get(PasswordResetToken, email)
    if not reset or not verify_password(token, reset.token_hash):
        log_event("PASSWORD_RESET_FAIL", level="warning", metadata={"email": email})
        return jsonify(success=False, message="Invalid or expired reset token"), 400

    ttl = timedelta(minutes=current_app.config.get("PASSWORD_RESET_TTL_MINUTES", 60))
    if reset.created_at + ttl < now():
        db.session.delete(reset)
        db.session.commit()
        log_event("PASSWORD_RESET_FAIL", level="warning", message="Expired token", metadata={"email": email})
        return jsonify(success=False, message="Reset token has expired. Please request a new one."), 400

    user = User.query.filter_by(email=email).first()
    if not user:
        return jsonify(success=False, message="User not found"), 404

    user.password_hash = hash_password(data["password"])
    db.session.delete(reset)
    db.session.commit()

    # Sign out every device that knew the old password
    revoked = revoke_all_sessions(user.id, reason=END_PASSWORD_RESET)
    log_event("PASSWORD_RESET", user_id=user.id, metadata={"revoked_sessions": revoked})

    return jsonify(success=True, message="Password has been reset successfully"), 200
