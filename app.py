import logging

import click
from flask import Flask, jsonify, request
from flask_migrate import Migrate
from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from config import Config
from models import db
from models.user import User
from routes import ALL_BLUEPRINTS
from utils.audit import log_event
from utils.auth_context import load_current_user
from utils.logging_conf import setup_logging
from utils.roles import ROLE_BY_API_NAME
from utils.seed import seed_roles, get_role

logger = logging.getLogger(__name__)


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    setup_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles at startup (safe & idempotent)
    with app.app_context():
        if app.config.get("CREATE_TABLES"):
            db.create_all()
        # before the first `flask db upgrade` there is nothing to seed
        if inspect(db.engine).has_table("roles"):
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        resp.headers["Cache-Control"] = "no-store"
        return resp

    register_error_handlers(app)
    register_cli(app)

    return app


def register_error_handlers(app):

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        """JSON instead of the default HTML error pages"""
        logger.warning(f"{e.code} {e.name}: {request.method} {request.path}")
        return jsonify(success=False, message=e.description or e.name), e.code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        logger.exception(f"Database Error: {str(e)}")
        return jsonify(success=False, message="Database error"), 500

    @app.errorhandler(Exception)
    def handle_general_error(e):
        db.session.rollback()
        logger.exception(f"Unexpected Error: {str(e)}")
        try:
            log_event(
                "API_ERROR",
                level="error",
                message=str(e)[:1000],
                metadata={"method": request.method, "path": request.path},
            )
        except SQLAlchemyError:
            db.session.rollback()
            logger.exception("Could not record API_ERROR audit entry")
        return jsonify(success=False, message="Server error"), 500


#-------------------------

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    @click.option("--role", type=click.Choice(["admin", "super_admin"]), default="admin")
    def make_admin(email, role):
        """Promote a user to admin (or super admin) by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        user.roles = [get_role(ROLE_BY_API_NAME[role])]
        db.session.commit()

        click.echo(f"{user.email} promoted to {role}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
