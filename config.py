import os

from dotenv import load_dotenv

from utils.clock import utc_now

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

load_dotenv(os.path.join(BASE_DIR, ".env"))


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as student_organizer.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "student_organizer.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Local/dev convenience; production schemas come from migrations
    CREATE_TABLES = os.getenv("CREATE_TABLES", "false").lower() == "true"

    # Frontend pages
    FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
    LOGIN_URL = os.getenv("LOGIN_URL", "https://studentorganizer.netlify.app/login.html")

    # Password policy
    MIN_PASSWORD_LENGTH = 8
    BCRYPT_ROUNDS = 12
    PASSWORD_RESET_TTL_MINUTES = 60

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"
    MAIL_SUBJECT_SUFFIX = " - Student Tracker"

    # Google sign-in
    GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
    GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
    GOOGLE_REDIRECT_URI = os.getenv("GOOGLE_REDIRECT_URI", "http://localhost:5002/api/auth/google/callback")

    # Source of "now" for session activity; swapped in tests
    CLOCK = staticmethod(utc_now)

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
    TESTING = False


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    CREATE_TABLES = True
    BCRYPT_ROUNDS = 4
    SMTP_HOST = None
    LOGIN_URL = "https://studentorganizer.test/login.html"
    FRONTEND_URL = "https://studentorganizer.test"
    GOOGLE_CLIENT_ID = "test-client-id"
    GOOGLE_CLIENT_SECRET = "test-client-secret"
