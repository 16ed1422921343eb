from models.db import db
from utils.clock import utc_now

AUDIENCES = ("all", "students", "single")


class Announcement(db.Model):
    __tablename__ = "announcements"

    id = db.Column(db.Integer, primary_key=True)
    admin_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    title = db.Column(db.String(255), nullable=False)
    message = db.Column(db.Text, nullable=False)
    audience = db.Column(db.String(16), nullable=False)  # all | students | single
    target_user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    scheduled_at = db.Column(db.DateTime, nullable=True)
    sent_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    admin = db.relationship("User", foreign_keys=[admin_id])
    target_user = db.relationship("User", foreign_keys=[target_user_id])

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "audience": self.audience,
            "target_user_id": self.target_user_id,
            "admin": {"id": self.admin.id, "name": self.admin.name} if self.admin else None,
            "target_user": (
                {"id": self.target_user.id, "name": self.target_user.name, "email": self.target_user.email}
                if self.target_user else None
            ),
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "sent_at": self.sent_at.isoformat() if self.sent_at else None,
            "created_at": self.created_at.isoformat(),
        }
