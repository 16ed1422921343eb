from models.db import db
from utils.clock import utc_now

ASSESSMENT_TYPES = ("quiz", "midterm", "final", "assignment", "project")
ASSESSMENT_STATUSES = ("not_started", "in_progress", "completed", "submitted", "graded")


class Assessment(db.Model):
    __tablename__ = "assessments"

    id = db.Column(db.Integer, primary_key=True)
    course_id = db.Column(db.Integer, db.ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # quiz | midterm | final | assignment | project
    grade_received = db.Column(db.Numeric(8, 2, asdecimal=False), nullable=True)
    grade_max = db.Column(db.Numeric(8, 2, asdecimal=False), nullable=True)
    due_date = db.Column(db.Date, nullable=True, index=True)
    weight_percentage = db.Column(db.Numeric(5, 2, asdecimal=False), nullable=True)
    status = db.Column(db.String(20), default="not_started", nullable=False)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    course = db.relationship("Course", back_populates="assessments")

    def owned_by(self, user_id: int) -> bool:
        return self.course is not None and self.course.owned_by(user_id)

    def to_dict(self):
        return {
            "id": self.id,
            "course_id": self.course_id,
            "title": self.title,
            "type": self.type,
            "grade_received": self.grade_received,
            "grade_max": self.grade_max,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "weight_percentage": self.weight_percentage,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
