from flask import Blueprint, jsonify

from .auth import auth_bp
from .google_auth import google_bp
from .sessions import sessions_bp
from .admin import admin_bp
from .announcements import announcements_bp
from .audit_logs import audit_bp
from .academics import academics_bp
from .planner import planner_bp
from .dashboard import dashboard_bp

health_bp = Blueprint("health", __name__, url_prefix="/api")


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    google_bp,
    sessions_bp,
    admin_bp,
    announcements_bp,
    audit_bp,
    academics_bp,
    planner_bp,
    dashboard_bp,
)
