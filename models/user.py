from models.db import db
from utils.clock import utc_now
from utils.roles import filter_role_names, primary_role

# association table for many-to-many User <-> Role
user_roles = db.Table(
    "user_roles",
    db.Column("user_id", db.Integer, db.ForeignKey("users.id"), primary_key=True),
    db.Column("role_id", db.Integer, db.ForeignKey("roles.id"), primary_key=True),
)

STATUS_ACTIVE = "active"
STATUS_SUSPENDED = "suspended"


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)

    avatar = db.Column(db.String(255), nullable=True)
    major = db.Column(db.String(255), nullable=True)
    university = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(20), default=STATUS_ACTIVE, nullable=False)  # active | suspended
    last_login = db.Column(db.DateTime, nullable=True)

    # Google sign-in linkage (OAuth tokens are not stored)
    google_id = db.Column(db.String(255), nullable=True, index=True)
    google_email = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    roles = db.relationship("Role", secondary=user_roles, back_populates="users")

    @property
    def role_names(self):
        return {r.name for r in self.roles}

    def is_admin(self) -> bool:
        # SUPER_ADMIN counts as admin
        return bool(self.role_names & {"ADMIN", "SUPER_ADMIN"})

    def is_super_admin(self) -> bool:
        return "SUPER_ADMIN" in self.role_names

    def is_active(self) -> bool:
        return self.status == STATUS_ACTIVE

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "avatar": self.avatar,
            "major": self.major,
            "university": self.university,
            "role": primary_role(self.roles),
            "roles": filter_role_names(self.roles),
            "status": self.status,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "google_connected": self.google_id is not None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


class Role(db.Model):
    __tablename__ = "roles"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)  # e.g. STUDENT, ADMIN, SUPER_ADMIN

    users = db.relationship("User", secondary=user_roles, back_populates="roles")
