from models.db import db
from utils.clock import utc_now


class Task(db.Model):
    """A to-do item, standalone or under a goal, optionally nested under a parent task."""

    __tablename__ = "tasks"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    goal_id = db.Column(db.Integer, db.ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True)
    parent_task_id = db.Column(db.Integer, db.ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    due_date = db.Column(db.Date, nullable=True, index=True)
    completed = db.Column(db.Boolean, default=False, nullable=False)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    goal = db.relationship("Goal", back_populates="tasks")
    parent = db.relationship("Task", remote_side=[id], back_populates="children")
    # subtasks go with their parent
    children = db.relationship(
        "Task",
        back_populates="parent",
        cascade="all",
        passive_deletes=True,
        order_by="Task.created_at.desc()",
    )

    def summary(self):
        return {"id": self.id, "title": self.title, "completed": self.completed}

    def to_dict(self, with_relations=False):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "goal_id": self.goal_id,
            "parent_task_id": self.parent_task_id,
            "title": self.title,
            "description": self.description,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "completed": self.completed,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "children": [c.summary() for c in self.children],
        }
        if with_relations:
            data["goal"] = {"id": self.goal.id, "title": self.goal.title} if self.goal else None
            data["parent"] = self.parent.summary() if self.parent else None
        return data
