import json

from models.db import db
from utils.clock import utc_now

LEVELS = ("info", "warning", "error", "critical")


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True, index=True)  # nullable for unauth events
    admin_id = db.Column(db.Integer, nullable=True, index=True)  # set for back-office actions
    action = db.Column(db.String(80), nullable=False, index=True)  # e.g. LOGIN_FAIL, SESSION_EXPIRED
    level = db.Column(db.String(16), default="info", nullable=False)
    message = db.Column(db.Text, nullable=True)
    entity = db.Column(db.String(80), nullable=True)   # e.g. user, announcement
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)

    def to_dict(self):
        return {
            "id": self.id,
            "created_at": self.timestamp.isoformat() if self.timestamp else None,
            "user_id": self.user_id,
            "admin_id": self.admin_id,
            "action": self.action,
            "level": self.level,
            "message": self.message,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "metadata": json.loads(self.metadata_json) if self.metadata_json else None,
        }
