from flask import Blueprint, request, jsonify, g

from models import db
from models.goal import Goal
from models.task import Task
from utils.audit import log_event
from utils.auth_context import login_required
from utils.validation import (
    optional_bool,
    optional_date,
    optional_number,
    optional_str,
    required_str,
    validation_failed,
)

planner_bp = Blueprint("planner", __name__, url_prefix="/api")


def _not_found(what: str):
    return jsonify(success=False, message=f"{what} not found."), 404


def _bad_parent(message: str):
    return jsonify(success=False, message=message), 400


def _own_goal(goal_id):
    return Goal.query.filter_by(id=goal_id, user_id=g.user.id).first()


def _own_task(task_id):
    return Task.query.filter_by(id=task_id, user_id=g.user.id).first()


def _long_text(data, field, errors):
    return optional_str(data, field, errors, max_len=None)


def _optional_id(data, field, errors):
    return optional_number(data, field, errors, minimum=1, integer=True)


def _parent_error(parent_id, goal_id):
    """
    A parent must belong to the same user and sit in the same goal; a
    standalone task can only hang under another standalone task.
    Returns an error response, or None when the parent is acceptable.
    """
    if not _own_task(parent_id):
        return _not_found("Parent task")
    parent = Task.query.filter_by(id=parent_id, user_id=g.user.id, goal_id=goal_id).first()
    if parent:
        return None
    if goal_id:
        return _bad_parent("Parent task must belong to the same goal.")
    return _bad_parent("Parent task must be a standalone task.")


def _creates_cycle(task: Task, parent_id: int) -> bool:
    node = db.session.get(Task, parent_id)
    while node is not None:
        if node.id == task.id:
            return True
        node = node.parent
    return False


# ---- goals ----

@planner_bp.get("/goals")
@login_required
def list_goals():
    rows = (
        Goal.query
        .filter_by(user_id=g.user.id)
        .order_by(Goal.created_at.desc(), Goal.id.desc())
        .all()
    )
    return jsonify(success=True, data=[goal.to_dict(with_tasks=True) for goal in rows]), 200


@planner_bp.post("/goals")
@login_required
def create_goal():
    data = request.get_json(silent=True) or {}
    errors = {}
    title = required_str(data, "title", errors)
    description = _long_text(data, "description", errors)
    target_date = optional_date(data, "target_date", errors)
    if errors:
        return validation_failed(errors)

    goal = Goal(
        user_id=g.user.id,
        title=title,
        description=description,
        target_date=target_date,
        completed=False,
    )
    db.session.add(goal)
    db.session.commit()

    log_event("GOAL_CREATE", user_id=g.user.id, entity="goal", entity_id=goal.id)
    return jsonify(success=True, message="Goal created successfully.", data=goal.to_dict()), 201


@planner_bp.put("/goals/<int:goal_id>")
@login_required
def update_goal(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return _not_found("Goal")

    data = request.get_json(silent=True) or {}
    errors, values = {}, {}
    if "title" in data:
        values["title"] = required_str(data, "title", errors)
    if "description" in data:
        values["description"] = _long_text(data, "description", errors)
    if "target_date" in data:
        values["target_date"] = optional_date(data, "target_date", errors)
    completed = optional_bool(data, "completed", errors)
    if errors:
        return validation_failed(errors)

    for field, value in values.items():
        setattr(goal, field, value)
    if completed is not None:
        goal.completed = completed
    db.session.commit()
    return jsonify(success=True, message="Goal updated successfully.", data=goal.to_dict()), 200


@planner_bp.delete("/goals/<int:goal_id>")
@login_required
def delete_goal(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return _not_found("Goal")

    db.session.delete(goal)
    db.session.commit()

    log_event("GOAL_DELETE", user_id=g.user.id, entity="goal", entity_id=goal_id)
    return jsonify(success=True, message="Goal deleted successfully."), 200


@planner_bp.post("/goals/<int:goal_id>/complete")
@login_required
def complete_goal(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return _not_found("Goal")

    goal.completed = True
    db.session.commit()
    return jsonify(success=True, message="Goal marked as completed.", data=goal.to_dict()), 200


# ---- tasks ----

@planner_bp.get("/tasks")
@login_required
def list_tasks():
    q = Task.query.filter_by(user_id=g.user.id)

    if "goal_id" in request.args:
        goal_id = request.args.get("goal_id")
        if goal_id in ("", "null"):
            q = q.filter(Task.goal_id.is_(None))
        else:
            goal = _own_goal(int(goal_id)) if goal_id.isdigit() else None
            if not goal:
                return _not_found("Goal")
            q = q.filter(Task.goal_id == goal.id)

    rows = q.order_by(Task.created_at.desc(), Task.id.desc()).all()
    return jsonify(success=True, data=[t.to_dict(with_relations=True) for t in rows]), 200


def _read_task(data, errors):
    return {
        "title": required_str(data, "title", errors),
        "description": _long_text(data, "description", errors),
        "due_date": optional_date(data, "due_date", errors),
    }


@planner_bp.post("/tasks")
@login_required
def create_task():
    data = request.get_json(silent=True) or {}
    errors = {}
    values = _read_task(data, errors)
    goal_id = _optional_id(data, "goal_id", errors)
    parent_id = _optional_id(data, "parent_task_id", errors)
    if errors:
        return validation_failed(errors)

    if goal_id and not _own_goal(goal_id):
        return _not_found("Goal")
    if parent_id:
        failure = _parent_error(parent_id, goal_id)
        if failure:
            return failure

    task = Task(user_id=g.user.id, goal_id=goal_id, parent_task_id=parent_id, completed=False, **values)
    db.session.add(task)
    db.session.commit()

    log_event("TASK_CREATE", user_id=g.user.id, entity="task", entity_id=task.id)
    return jsonify(
        success=True,
        message="Task created successfully.",
        data=task.to_dict(with_relations=True),
    ), 201


@planner_bp.get("/goals/<int:goal_id>/tasks")
@login_required
def list_goal_tasks(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return _not_found("Goal")

    rows = (
        Task.query
        .filter_by(goal_id=goal.id)
        .order_by(Task.created_at.desc(), Task.id.desc())
        .all()
    )
    return jsonify(success=True, data=[t.to_dict() for t in rows]), 200


@planner_bp.post("/goals/<int:goal_id>/tasks")
@login_required
def create_goal_task(goal_id: int):
    goal = _own_goal(goal_id)
    if not goal:
        return _not_found("Goal")

    data = request.get_json(silent=True) or {}
    errors = {}
    values = _read_task(data, errors)
    parent_id = _optional_id(data, "parent_task_id", errors)
    if errors:
        return validation_failed(errors)

    if parent_id and not Task.query.filter_by(id=parent_id, user_id=g.user.id, goal_id=goal.id).first():
        return _not_found("Parent task")

    task = Task(user_id=g.user.id, goal_id=goal.id, parent_task_id=parent_id, completed=False, **values)
    db.session.add(task)
    db.session.commit()

    log_event("TASK_CREATE", user_id=g.user.id, entity="task", entity_id=task.id)
    return jsonify(success=True, message="Task created successfully.", data=task.to_dict()), 201


@planner_bp.put("/tasks/<int:task_id>")
@login_required
def update_task(task_id: int):
    task = _own_task(task_id)
    if not task:
        return _not_found("Task")

    data = request.get_json(silent=True) or {}
    errors, values = {}, {}
    if "title" in data:
        values["title"] = required_str(data, "title", errors)
    if "description" in data:
        values["description"] = _long_text(data, "description", errors)
    if "due_date" in data:
        values["due_date"] = optional_date(data, "due_date", errors)
    if "goal_id" in data:
        values["goal_id"] = _optional_id(data, "goal_id", errors)
    if "parent_task_id" in data:
        values["parent_task_id"] = _optional_id(data, "parent_task_id", errors)
    completed = optional_bool(data, "completed", errors)
    if errors:
        return validation_failed(errors)

    goal_id = values.get("goal_id", task.goal_id)
    if values.get("goal_id") and not _own_goal(values["goal_id"]):
        return _not_found("Goal")

    parent_id = values.get("parent_task_id")
    if parent_id:
        if parent_id == task.id or _creates_cycle(task, parent_id):
            return _bad_parent("A task cannot be nested under itself.")
        failure = _parent_error(parent_id, goal_id)
        if failure:
            return failure

    for field, value in values.items():
        setattr(task, field, value)
    if completed is not None:
        task.completed = completed
    db.session.commit()
    return jsonify(success=True, message="Task updated successfully.", data=task.to_dict()), 200


@planner_bp.post("/tasks/<int:task_id>/complete")
@login_required
def complete_task(task_id: int):
    task = _own_task(task_id)
    if not task:
        return _not_found("Task")

    task.completed = True
    db.session.commit()
    return jsonify(success=True, message="Task marked as completed.", data=task.to_dict()), 200


@planner_bp.delete("/tasks/<int:task_id>")
@login_required
def delete_task(task_id: int):
    task = _own_task(task_id)
    if not task:
        return _not_found("Task")

    db.session.delete(task)
    db.session.commit()

    log_event("TASK_DELETE", user_id=g.user.id, entity="task", entity_id=task_id)
    return jsonify(success=True, message="Task deleted successfully."), 200
