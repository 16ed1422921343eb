from datetime import datetime

from flask import Blueprint, jsonify, request

from models import db
from models.audit_log import AuditLog
from security.rbac import require_roles

audit_bp = Blueprint("audit", __name__, url_prefix="/api/admin/logs")

PER_PAGE = 50
SHORTLIST_LIMIT = 100

AUTH_FAILURE_ACTIONS = ("LOGIN_FAIL", "SESSION_EXPIRED", "SESSION_REJECTED", "PASSWORD_RESET_FAIL")


def _date_arg(name):
    raw = request.args.get(name)
    if not raw:
        return None
    return datetime.fromisoformat(raw)


def _shortlist(q):
    rows = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).limit(SHORTLIST_LIMIT).all()
    return jsonify(success=True, data=[r.to_dict() for r in rows]), 200


@audit_bp.get("")
@require_roles("ADMIN")
def list_audit_logs():
    page_no = max(request.args.get("page", type=int) or 1, 1)

    q = AuditLog.query
    admin_id = request.args.get("admin_id", type=int)
    if admin_id is not None:
        q = q.filter(AuditLog.admin_id == admin_id)
    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)
    action = request.args.get("action")
    if action:
        q = q.filter(AuditLog.action == action)
    level = request.args.get("level")
    if level:
        q = q.filter(AuditLog.level == level)
    entity = request.args.get("entity")
    if entity:
        q = q.filter(AuditLog.entity == entity)

    try:
        from_date = _date_arg("from_date")
        to_date = _date_arg("to_date")
    except ValueError:
        return jsonify(success=False, message="Invalid date. Use ISO-8601, e.g. 2025-01-31"), 400
    if from_date:
        q = q.filter(AuditLog.timestamp >= from_date)
    if to_date:
        q = q.filter(AuditLog.timestamp <= to_date)

    page = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc()).paginate(
        page=page_no, per_page=PER_PAGE, error_out=False
    )
    return jsonify(
        success=True,
        data=[r.to_dict() for r in page.items],
        meta={"current_page": page.page, "per_page": page.per_page, "total": page.total, "last_page": page.pages},
    ), 200


@audit_bp.get("/errors")
@require_roles("ADMIN")
def error_logs():
    return _shortlist(AuditLog.query.filter(AuditLog.level.in_(("error", "critical"))))


@audit_bp.get("/auth-failures")
@require_roles("ADMIN")
def auth_failures():
    return _shortlist(AuditLog.query.filter(AuditLog.action.in_(AUTH_FAILURE_ACTIONS)))


@audit_bp.get("/api-errors")
@require_roles("ADMIN")
def api_errors():
    return _shortlist(AuditLog.query.filter_by(action="API_ERROR"))


@audit_bp.get("/<int:log_id>")
@require_roles("ADMIN")
def show_audit_log(log_id: int):
    row = db.session.get(AuditLog, log_id)
    if not row:
        return jsonify(success=False, message="Log entry not found"), 404
    return jsonify(success=True, data=row.to_dict()), 200
