from models.db import db
from utils.clock import utc_now

END_TIMEOUT = "timeout"
END_LOGOUT = "logout"
END_REVOKED = "revoked"
END_SUSPENDED = "suspended"
END_PASSWORD_RESET = "password_reset"


class UserSession(db.Model):
    """One tracked device session per issued access token."""

    __tablename__ = "user_sessions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # no FK: the row outlives its deleted access token
    token_id = db.Column(db.Integer, unique=True, nullable=False, index=True)

    device_name = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    last_activity_at = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    ended_at = db.Column(db.DateTime, nullable=True)
    ended_reason = db.Column(db.String(32), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def to_dict(self, current_token_id=None):
        return {
            "id": self.id,
            "device_name": self.device_name,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "last_activity": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "is_active": self.is_active,
            "is_current": current_token_id is not None and self.token_id == current_token_id,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "ended_reason": self.ended_reason,
            "created_at": self.created_at.isoformat(),
        }

    def __repr__(self) -> str:
        return f"UserSession(id={self.id}, user_id={self.user_id}, active={self.is_active})"
