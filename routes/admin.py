from flask import Blueprint, jsonify, g, request
from sqlalchemy import or_

from security.rbac import require_roles
from security.session import revoke_all_sessions
from utils.audit import log_event
from models import db
from models.user import User, Role, STATUS_ACTIVE, STATUS_SUSPENDED
from models.user_session import UserSession, END_SUSPENDED
from models.access_token import AccessToken
from models.announcement import Announcement
from utils.roles import ROLE_BY_API_NAME, primary_role
from utils.seed import get_role

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")

USERS_PER_PAGE = 20


def _page_meta(page):
    return {
        "current_page": page.page,
        "per_page": page.per_page,
        "total": page.total,
        "last_page": page.pages,
    }


def _protected_target(user: User, action: str):
    """Admins can't act on admins; nobody acts on super admins."""
    if user.is_super_admin():
        return jsonify(success=False, message=f"Cannot {action} super admin users"), 403
    if user.is_admin() and not g.user.is_super_admin():
        return jsonify(success=False, message=f"Cannot {action} admin users"), 403
    return None


@admin_bp.get("/analytics")
@require_roles("ADMIN")
def analytics():
    return jsonify(success=True, data={
        "users": {
            "total": User.query.count(),
            "active": User.query.filter_by(status=STATUS_ACTIVE).count(),
            "suspended": User.query.filter_by(status=STATUS_SUSPENDED).count(),
            "admins": User.query.join(User.roles).filter(Role.name.in_(["ADMIN", "SUPER_ADMIN"])).distinct().count(),
        },
        "sessions": {
            "active": UserSession.query.filter_by(is_active=True).count(),
            "timed_out": UserSession.query.filter_by(ended_reason="timeout").count(),
        },
    }), 200


@admin_bp.get("/users")
@require_roles("ADMIN")
def list_users():
    search = (request.args.get("search") or "").strip()
    role_filter = (request.args.get("role") or "").strip().lower()
    status = (request.args.get("status") or "").strip().lower()
    page_no = max(request.args.get("page", type=int) or 1, 1)

    q = User.query
    if search:
        like = f"%{search}%"
        q = q.filter(or_(User.name.ilike(like), User.email.ilike(like)))
    if role_filter:
        role_name = ROLE_BY_API_NAME.get(role_filter, role_filter.upper())
        q = q.join(User.roles).filter(Role.name == role_name)
    if status:
        q = q.filter(User.status == status)

    page = q.order_by(User.created_at.desc(), User.id.desc()).paginate(
        page=page_no, per_page=USERS_PER_PAGE, error_out=False
    )
    return jsonify(
        success=True,
        data=[u.to_dict() for u in page.items],
        meta=_page_meta(page),
    ), 200


@admin_bp.get("/users/<int:user_id>")
@require_roles("ADMIN")
def show_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(success=False, message="User not found"), 404

    sessions = UserSession.query.filter_by(user_id=user.id)
    activity = {
        "last_login": user.last_login.isoformat() if user.last_login else None,
        "sessions_count": sessions.count(),
        "active_sessions_count": sessions.filter_by(is_active=True).count(),
    }
    return jsonify(success=True, data={"user": user.to_dict(), "activity": activity}), 200


@admin_bp.put("/users/<int:user_id>/role")
@require_roles("ADMIN")
def update_user_role(user_id: int):
    data = request.get_json(silent=True) or {}
    new_role = data.get("role")
    if new_role not in ROLE_BY_API_NAME:
        return jsonify(
            success=False,
            message="Validation failed",
            errors={"role": ["The selected role is invalid."]},
        ), 422

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(success=False, message="User not found"), 404

    old_role = primary_role(user.roles)
    if "super_admin" in (new_role, old_role) and not g.user.is_super_admin():
        return jsonify(success=False, message="Only super admins can change super admin roles"), 403

    if user.id == g.user.id and new_role == "student":
        return jsonify(success=False, message="Cannot remove your own admin role"), 403

    user.roles = [get_role(ROLE_BY_API_NAME[new_role])]
    db.session.commit()

    log_event(
        "ADMIN_UPDATE_ROLE",
        admin_id=g.user.id,
        entity="user",
        entity_id=user.id,
        message=f"Changed user {user.id} ({user.name}) role from {old_role} to {new_role}",
        metadata={"user_email": user.email, "old_role": old_role, "new_role": new_role},
    )

    return jsonify(success=True, message="User role updated successfully", data=user.to_dict()), 200


@admin_bp.post("/users/<int:user_id>/suspend")
@require_roles("ADMIN")
def suspend_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(success=False, message="User not found"), 404

    failure = _protected_target(user, "suspend")
    if failure:
        return failure

    user.status = STATUS_SUSPENDED
    db.session.commit()

    # A suspended account keeps no live devices
    revoked = revoke_all_sessions(user.id, reason=END_SUSPENDED)

    log_event(
        "ADMIN_SUSPEND_USER",
        admin_id=g.user.id,
        entity="user",
        entity_id=user.id,
        level="warning",
        message=f"Suspended user {user.id} ({user.name})",
        metadata={"user_email": user.email, "revoked_sessions": revoked},
    )
    return jsonify(success=True, message="User suspended successfully", data=user.to_dict()), 200


@admin_bp.post("/users/<int:user_id>/activate")
@require_roles("ADMIN")
def activate_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(success=False, message="User not found"), 404

    user.status = STATUS_ACTIVE
    db.session.commit()

    log_event(
        "ADMIN_ACTIVATE_USER",
        admin_id=g.user.id,
        entity="user",
        entity_id=user.id,
        message=f"Activated user {user.id} ({user.name})",
        metadata={"user_email": user.email},
    )
    return jsonify(success=True, message="User activated successfully", data=user.to_dict()), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles("ADMIN")
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(success=False, message="User not found"), 404

    failure = _protected_target(user, "delete")
    if failure:
        return failure

    info = {"id": user.id, "name": user.name, "email": user.email, "role": primary_role(user.roles)}

    AccessToken.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    UserSession.query.filter_by(user_id=user.id).delete(synchronize_session=False)
    # announcements outlive both their author and their recipient
    Announcement.query.filter_by(admin_id=user.id).update({"admin_id": None}, synchronize_session=False)
    Announcement.query.filter_by(target_user_id=user.id).update({"target_user_id": None}, synchronize_session=False)
    db.session.delete(user)
    db.session.commit()

    log_event(
        "ADMIN_DELETE_USER",
        admin_id=g.user.id,
        entity="user",
        entity_id=info["id"],
        level="warning",
        message=f"Deleted user {info['id']} ({info['name']})",
        metadata=info,
    )
    return jsonify(success=True, message="User deleted successfully"), 200
