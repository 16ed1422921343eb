from models.db import db
from utils.clock import utc_now


class Course(db.Model):
    __tablename__ = "courses"

    id = db.Column(db.Integer, primary_key=True)
    semester_id = db.Column(db.Integer, db.ForeignKey("semesters.id", ondelete="CASCADE"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(50), nullable=True)
    instructor = db.Column(db.String(255), nullable=True)
    credit_hours = db.Column(db.Integer, nullable=True)
    room = db.Column(db.String(100), nullable=True)
    color_tag = db.Column(db.String(32), nullable=True)  # UI colour, e.g. #3b82f6

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    semester = db.relationship("Semester", back_populates="courses")
    assessments = db.relationship(
        "Assessment",
        back_populates="course",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def owned_by(self, user_id: int) -> bool:
        return self.semester is not None and self.semester.user_id == user_id

    def to_dict(self):
        return {
            "id": self.id,
            "semester_id": self.semester_id,
            "name": self.name,
            "code": self.code,
            "instructor": self.instructor,
            "credit_hours": self.credit_hours,
            "room": self.room,
            "color_tag": self.color_tag,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
