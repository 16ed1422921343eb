from datetime import timedelta

from flask import Blueprint, jsonify, g
from sqlalchemy import and_, or_

from models.announcement import Announcement
from models.semester import Semester
from models.task import Task
from utils.auth_context import login_required
from utils.clock import now

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")

RECENT_ANNOUNCEMENTS = 5


def _week_bounds(today):
    start = today - timedelta(days=today.weekday())  # Monday
    return start, start + timedelta(days=6)


def _announcements_for(user):
    audiences = [
        Announcement.audience == "all",
        and_(Announcement.audience == "single", Announcement.target_user_id == user.id),
    ]
    if "STUDENT" in user.role_names:
        audiences.append(Announcement.audience == "students")
    return (
        Announcement.query
        .filter(Announcement.sent_at.isnot(None), or_(*audiences))
        .order_by(Announcement.sent_at.desc(), Announcement.id.desc())
        .limit(RECENT_ANNOUNCEMENTS)
        .all()
    )


@dashboard_bp.get("/summary")
@login_required
def summary():
    user = g.user
    week_start, week_end = _week_bounds(now().date())

    semesters = (
        Semester.query
        .filter_by(user_id=user.id)
        .order_by(Semester.created_at.desc(), Semester.id.desc())
        .all()
    )

    # pending work due this week, plus anything undated
    tasks = (
        Task.query
        .filter(
            Task.user_id == user.id,
            Task.completed.is_(False),
            or_(Task.due_date.between(week_start, week_end), Task.due_date.is_(None)),
        )
        .order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.id.asc())
        .all()
    )

    announcements = [
        {"id": a.id, "title": a.title, "message": a.message, "audience": a.audience,
         "sent_at": a.sent_at.isoformat()}
        for a in _announcements_for(user)
    ]

    return jsonify(success=True, data={
        "user": user.to_dict(),
        "semesters": [s.to_dict(with_courses=True) for s in semesters],
        "tasks": [t.to_dict(with_relations=True) for t in tasks],
        "announcements": announcements,
        "week": {"start": week_start.isoformat(), "end": week_end.isoformat()},
    }), 200
