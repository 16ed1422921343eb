from flask import Blueprint, request, jsonify, g

from models import db
from models.semester import Semester
from models.course import Course
from models.assessment import Assessment, ASSESSMENT_TYPES, ASSESSMENT_STATUSES
from utils.audit import log_event
from utils.auth_context import login_required
from utils.validation import (
    choice,
    optional_date,
    optional_number,
    optional_str,
    required_str,
    validation_failed,
)

academics_bp = Blueprint("academics", __name__, url_prefix="/api")


def _not_found(what: str):
    return jsonify(success=False, message=f"{what} not found."), 404


def _own_semester(semester_id: int):
    return Semester.query.filter_by(id=semester_id, user_id=g.user.id).first()


def _own_course(course_id: int):
    course = db.session.get(Course, course_id)
    if course is None or not course.owned_by(g.user.id):
        return None
    return course


def _own_assessment(assessment_id: int):
    assessment = db.session.get(Assessment, assessment_id)
    if assessment is None or not assessment.owned_by(g.user.id):
        return None
    return assessment


def _collect(data, partial, fields):
    """
    Runs each (field, parser) pair over the payload. On updates only the keys
    present in the payload are parsed, so omitted fields keep their values.
    """
    errors, values = {}, {}
    for field, parse in fields:
        if partial and field not in data:
            continue
        values[field] = parse(data, field, errors)
    return values, errors


# ---- semesters ----

def _semester_fields():
    return (
        ("title", required_str),
        ("start_date", optional_date),
        ("end_date", optional_date),
        ("notes", lambda d, f, e: optional_str(d, f, e, max_len=None)),
    )


def _check_date_order(values, errors, current=None):
    start = values.get("start_date", current.start_date if current else None)
    end = values.get("end_date", current.end_date if current else None)
    if start and end and end < start and "end_date" not in errors:
        errors["end_date"] = ["The end date must be a date after or equal to start date."]


@academics_bp.get("/semesters")
@login_required
def list_semesters():
    rows = (
        Semester.query
        .filter_by(user_id=g.user.id)
        .order_by(Semester.created_at.desc(), Semester.id.desc())
        .all()
    )
    return jsonify(success=True, data=[s.to_dict() for s in rows]), 200


@academics_bp.get("/semesters/<int:semester_id>")
@login_required
def show_semester(semester_id: int):
    semester = _own_semester(semester_id)
    if not semester:
        return _not_found("Semester")
    return jsonify(success=True, data=semester.to_dict(with_courses=True)), 200


@academics_bp.post("/semesters")
@login_required
def create_semester():
    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, False, _semester_fields())
    _check_date_order(values, errors)
    if errors:
        return validation_failed(errors)

    semester = Semester(user_id=g.user.id, **values)
    db.session.add(semester)
    db.session.commit()

    log_event("SEMESTER_CREATE", user_id=g.user.id, entity="semester", entity_id=semester.id)
    return jsonify(success=True, message="Semester created successfully.", data=semester.to_dict()), 201


@academics_bp.put("/semesters/<int:semester_id>")
@login_required
def update_semester(semester_id: int):
    semester = _own_semester(semester_id)
    if not semester:
        return _not_found("Semester")

    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, True, _semester_fields())
    _check_date_order(values, errors, current=semester)
    if errors:
        return validation_failed(errors)

    for field, value in values.items():
        setattr(semester, field, value)
    db.session.commit()
    return jsonify(success=True, message="Semester updated successfully.", data=semester.to_dict()), 200


@academics_bp.delete("/semesters/<int:semester_id>")
@login_required
def delete_semester(semester_id: int):
    semester = _own_semester(semester_id)
    if not semester:
        return _not_found("Semester")

    db.session.delete(semester)
    db.session.commit()

    log_event("SEMESTER_DELETE", user_id=g.user.id, entity="semester", entity_id=semester_id)
    return jsonify(success=True, message="Semester deleted successfully."), 200


# ---- courses ----

def _course_fields():
    return (
        ("name", required_str),
        ("code", lambda d, f, e: optional_str(d, f, e, max_len=50)),
        ("instructor", optional_str),
        ("credit_hours", lambda d, f, e: optional_number(d, f, e, minimum=0, maximum=30, integer=True)),
        ("room", lambda d, f, e: optional_str(d, f, e, max_len=100)),
        ("color_tag", lambda d, f, e: optional_str(d, f, e, max_len=32)),
    )


@academics_bp.get("/semesters/<int:semester_id>/courses")
@login_required
def list_courses(semester_id: int):
    semester = _own_semester(semester_id)
    if not semester:
        return _not_found("Semester")

    rows = (
        Course.query
        .filter_by(semester_id=semester.id)
        .order_by(Course.created_at.desc(), Course.id.desc())
        .all()
    )
    return jsonify(success=True, data=[c.to_dict() for c in rows]), 200


@academics_bp.post("/semesters/<int:semester_id>/courses")
@login_required
def create_course(semester_id: int):
    semester = _own_semester(semester_id)
    if not semester:
        return _not_found("Semester")

    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, False, _course_fields())
    if errors:
        return validation_failed(errors)

    course = Course(semester_id=semester.id, **values)
    db.session.add(course)
    db.session.commit()

    log_event("COURSE_CREATE", user_id=g.user.id, entity="course", entity_id=course.id)
    return jsonify(success=True, message="Course created successfully.", data=course.to_dict()), 201


@academics_bp.put("/courses/<int:course_id>")
@login_required
def update_course(course_id: int):
    course = _own_course(course_id)
    if not course:
        return _not_found("Course")

    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, True, _course_fields())
    if errors:
        return validation_failed(errors)

    for field, value in values.items():
        setattr(course, field, value)
    db.session.commit()
    return jsonify(success=True, message="Course updated successfully.", data=course.to_dict()), 200


@academics_bp.delete("/courses/<int:course_id>")
@login_required
def delete_course(course_id: int):
    course = _own_course(course_id)
    if not course:
        return _not_found("Course")

    db.session.delete(course)
    db.session.commit()

    log_event("COURSE_DELETE", user_id=g.user.id, entity="course", entity_id=course_id)
    return jsonify(success=True, message="Course deleted successfully."), 200


# ---- assessments ----

def _assessment_fields():
    return (
        ("title", required_str),
        ("type", _assessment_type),
        ("grade_received", lambda d, f, e: optional_number(d, f, e, minimum=0)),
        ("grade_max", lambda d, f, e: optional_number(d, f, e, minimum=0)),
        ("due_date", optional_date),
        ("weight_percentage", lambda d, f, e: optional_number(d, f, e, minimum=0, maximum=100)),
        ("status", lambda d, f, e: choice(d, f, ASSESSMENT_STATUSES, e)),
    )


def _assessment_type(data, field, errors):
    if data.get(field) is None:
        errors[field] = [f"The {field} field is required."]
        return None
    return choice(data, field, ASSESSMENT_TYPES, errors)


@academics_bp.get("/courses/<int:course_id>/assessments")
@login_required
def list_assessments(course_id: int):
    course = _own_course(course_id)
    if not course:
        return _not_found("Course")

    # undated ones sort last
    rows = (
        Assessment.query
        .filter_by(course_id=course.id)
        .order_by(
            Assessment.due_date.is_(None),
            Assessment.due_date.desc(),
            Assessment.created_at.desc(),
            Assessment.id.desc(),
        )
        .all()
    )
    return jsonify(success=True, data=[a.to_dict() for a in rows]), 200


@academics_bp.post("/courses/<int:course_id>/assessments")
@login_required
def create_assessment(course_id: int):
    course = _own_course(course_id)
    if not course:
        return _not_found("Course")

    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, False, _assessment_fields())
    if errors:
        return validation_failed(errors)

    if values.get("status") is None:
        values["status"] = "not_started"
    assessment = Assessment(course_id=course.id, **values)
    db.session.add(assessment)
    db.session.commit()

    log_event("ASSESSMENT_CREATE", user_id=g.user.id, entity="assessment", entity_id=assessment.id)
    return jsonify(success=True, message="Assessment created successfully.", data=assessment.to_dict()), 201


@academics_bp.get("/assessments/<int:assessment_id>")
@login_required
def show_assessment(assessment_id: int):
    assessment = _own_assessment(assessment_id)
    if not assessment:
        return _not_found("Assessment")
    return jsonify(success=True, data=assessment.to_dict()), 200


@academics_bp.put("/assessments/<int:assessment_id>")
@login_required
def update_assessment(assessment_id: int):
    assessment = _own_assessment(assessment_id)
    if not assessment:
        return _not_found("Assessment")

    data = request.get_json(silent=True) or {}
    values, errors = _collect(data, True, _assessment_fields())
    if errors:
        return validation_failed(errors)

    # status is NOT NULL; an explicit null leaves it unchanged
    if values.get("status", "") is None:
        values.pop("status")
    for field, value in values.items():
        setattr(assessment, field, value)
    db.session.commit()
    return jsonify(success=True, message="Assessment updated successfully.", data=assessment.to_dict()), 200


@academics_bp.delete("/assessments/<int:assessment_id>")
@login_required
def delete_assessment(assessment_id: int):
    assessment = _own_assessment(assessment_id)
    if not assessment:
        return _not_found("Assessment")

    db.session.delete(assessment)
    db.session.commit()

    log_event("ASSESSMENT_DELETE", user_id=g.user.id, entity="assessment", entity_id=assessment_id)
    return jsonify(success=True, message="Assessment deleted successfully."), 200
