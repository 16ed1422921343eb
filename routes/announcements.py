import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify, g, request, current_app

from security.rbac import require_roles
from utils.audit import log_event
from utils.clock import now
from utils.emailer import send_email
from models import db
from models.announcement import Announcement, AUDIENCES
from models.user import User, Role, STATUS_ACTIVE

logger = logging.getLogger(__name__)

announcements_bp = Blueprint("announcements", __name__, url_prefix="/api/admin/announcements")

PER_PAGE = 20


def _parse_datetime(value):
    """ISO-8601 to naive UTC; raises ValueError."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _recipients(announcement: Announcement):
    if announcement.audience == "all":
        return User.query.filter_by(status=STATUS_ACTIVE).all()
    if announcement.audience == "students":
        return (
            User.query
            .join(User.roles)
            .filter(Role.name == "STUDENT", User.status == STATUS_ACTIVE)
            .all()
        )
    if announcement.audience == "single" and announcement.target_user_id:
        user = db.session.get(User, announcement.target_user_id)
        return [user] if user else []
    return []


def send_announcement(announcement: Announcement) -> dict:
    """Emails every recipient, stamps sent_at and returns delivery counts."""
    users = _recipients(announcement)
    subject = announcement.title + current_app.config.get("MAIL_SUBJECT_SUFFIX", "")

    sent = failed = 0
    for user in users:
        body = f"Hi {user.name},\n\n{announcement.message}\n"
        ok, error = send_email(user.email, subject, body)
        if ok:
            sent += 1
        else:
            logger.error("Failed to send announcement email to %s: %s", user.email, error)
            failed += 1

    announcement.sent_at = now()
    db.session.commit()
    return {"sent": sent, "failed": failed, "total": len(users)}


@announcements_bp.get("")
@require_roles("ADMIN")
def list_announcements():
    page_no = max(request.args.get("page", type=int) or 1, 1)
    page = (
        Announcement.query
        .order_by(Announcement.created_at.desc(), Announcement.id.desc())
        .paginate(page=page_no, per_page=PER_PAGE, error_out=False)
    )
    return jsonify(
        success=True,
        data=[a.to_dict() for a in page.items],
        meta={"current_page": page.page, "per_page": page.per_page, "total": page.total, "last_page": page.pages},
    ), 200


@announcements_bp.post("")
@require_roles("ADMIN")
def create_announcement():
    data = request.get_json(silent=True) or {}
    title = data.get("title")
    message = data.get("message")
    audience = data.get("audience")
    target_user_id = data.get("target_user_id")
    scheduled_raw = data.get("scheduled_at")

    errors = {}
    if not isinstance(title, str) or not title.strip() or len(title) > 255:
        errors["title"] = ["The title field is required."]
    if not isinstance(message, str) or not message.strip():
        errors["message"] = ["The message field is required."]
    if audience not in AUDIENCES:
        errors["audience"] = ["The selected audience is invalid."]
    elif audience == "single":
        if not isinstance(target_user_id, int) or not db.session.get(User, target_user_id):
            errors["target_user_id"] = ["The selected target user id is invalid."]
    scheduled_at = None
    if scheduled_raw:
        try:
            scheduled_at = _parse_datetime(str(scheduled_raw))
        except ValueError:
            errors["scheduled_at"] = ["The scheduled at is not a valid date."]
    if errors:
        return jsonify(success=False, message="Validation failed", errors=errors), 422

    announcement = Announcement(
        admin_id=g.user.id,
        title=title.strip(),
        message=message,
        audience=audience,
        target_user_id=target_user_id if audience == "single" else None,
        scheduled_at=scheduled_at,
    )
    db.session.add(announcement)
    db.session.commit()

    # Unscheduled or already due: deliver now
    result = None
    if scheduled_at is None or now() >= scheduled_at:
        result = send_announcement(announcement)

    log_event(
        "ANNOUNCEMENT_CREATE",
        admin_id=g.user.id,
        entity="announcement",
        entity_id=announcement.id,
        message=f"Created announcement: {announcement.title}",
        metadata={
            "audience": announcement.audience,
            "target_user_id": announcement.target_user_id,
            "scheduled_at": announcement.scheduled_at,
            "sent_count": result["sent"] if result else 0,
            "failed_count": result["failed"] if result else 0,
        },
    )

    body = {
        "success": True,
        "message": "Announcement created successfully",
        "data": announcement.to_dict(),
    }
    if result:
        body["email_stats"] = result
    return jsonify(body), 201


@announcements_bp.get("/<int:announcement_id>")
@require_roles("ADMIN")
def show_announcement(announcement_id: int):
    announcement = db.session.get(Announcement, announcement_id)
    if not announcement:
        return jsonify(success=False, message="Announcement not found"), 404
    return jsonify(success=True, data=announcement.to_dict()), 200


@announcements_bp.post("/<int:announcement_id>/send")
@require_roles("ADMIN")
def send(announcement_id: int):
    announcement = db.session.get(Announcement, announcement_id)
    if not announcement:
        return jsonify(success=False, message="Announcement not found"), 404
    if announcement.sent_at:
        return jsonify(success=False, message="Announcement already sent"), 400

    result = send_announcement(announcement)

    log_event(
        "ANNOUNCEMENT_SEND",
        admin_id=g.user.id,
        entity="announcement",
        entity_id=announcement.id,
        message=f"Sent announcement: {announcement.title}",
        metadata={"sent_count": result["sent"], "failed_count": result["failed"], "total": result["total"]},
    )
    return jsonify(
        success=True,
        message="Announcement sent successfully",
        data=announcement.to_dict(),
        email_stats=result,
    ), 200


@announcements_bp.delete("/<int:announcement_id>")
@require_roles("ADMIN")
def delete_announcement(announcement_id: int):
    announcement = db.session.get(Announcement, announcement_id)
    if not announcement:
        return jsonify(success=False, message="Announcement not found"), 404

    info = {"id": announcement.id, "title": announcement.title, "audience": announcement.audience}
    db.session.delete(announcement)
    db.session.commit()

    log_event(
        "ANNOUNCEMENT_DELETE",
        admin_id=g.user.id,
        entity="announcement",
        entity_id=info["id"],
        level="warning",
        message=f"Deleted announcement: {info['title']}",
        metadata=info,
    )
    return jsonify(success=True, message="Announcement deleted successfully"), 200
