from flask import Blueprint, jsonify, g

from security.session import list_sessions, revoke_session, revoke_all_sessions
from utils.audit import log_event
from utils.auth_context import login_required

sessions_bp = Blueprint("sessions", __name__, url_prefix="/api/sessions")


@sessions_bp.get("")
@login_required
def index():
    rows = list_sessions(g.user.id)
    return jsonify(
        success=True,
        data=[s.to_dict(current_token_id=g.access_token.id) for s in rows],
    ), 200


@sessions_bp.delete("/<int:session_id>")
@login_required
def destroy(session_id: int):
    user_id = g.user.id
    if not revoke_session(user_id, session_id):
        return jsonify(success=False, message="Session not found."), 404

    log_event("SESSION_REVOKE", user_id=user_id, entity="user_session", entity_id=session_id)
    return jsonify(success=True, message="Session revoked successfully."), 200


@sessions_bp.post("/revoke-all")
@login_required
def revoke_all():
    user_id = g.user.id
    count = revoke_all_sessions(user_id, except_token_id=g.access_token.id)

    log_event("SESSION_REVOKE_ALL", user_id=user_id, metadata={"revoked_sessions": count})
    return jsonify(success=True, message="All other sessions revoked.", revoked_sessions=count), 200
