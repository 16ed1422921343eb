from models.db import db
from utils.clock import utc_now


class PasswordResetToken(db.Model):
    __tablename__ = "password_reset_tokens"

    # one outstanding reset per email
    email = db.Column(db.String(255), primary_key=True)
    token_hash = db.Column(db.String(255), nullable=False)  # bcrypt
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
