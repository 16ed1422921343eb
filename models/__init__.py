from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .access_token import AccessToken
from .user_session import UserSession
from .announcement import Announcement
from .password_reset import PasswordResetToken
from .semester import Semester
from .course import Course
from .assessment import Assessment
from .goal import Goal
from .task import Task
