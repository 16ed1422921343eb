from models.db import db
from utils.clock import utc_now


class Semester(db.Model):
    __tablename__ = "semesters"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    title = db.Column(db.String(255), nullable=False)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    courses = db.relationship(
        "Course",
        back_populates="semester",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Course.created_at.desc()",
    )

    def to_dict(self, with_courses=False):
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "notes": self.notes,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if with_courses:
            data["courses"] = [c.to_dict() for c in self.courses]
        return data
