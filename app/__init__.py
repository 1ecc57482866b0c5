import os
import logging

import click
from flask import Flask, jsonify, send_from_directory
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash

from app.config import config_by_name
from app.extensions import db, migrate, login_manager, csrf, limiter
from app.services.errors import TRANSPORT, PermissionDenied, StoreError, ValidationError

logger = logging.getLogger(__name__)


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    csrf.init_app(app)
    limiter.init_app(app)

    # --- Import models so metadata (and Alembic) can discover them ---
    with app.app_context():
        from app import models  # noqa: F401

    # --- Register blueprints ---
    from app.blueprints.auth import auth_bp
    from app.blueprints.api import api_bp
    from app.blueprints.prospects import prospects_bp
    from app.blueprints.routes import routes_bp
    from app.blueprints.drivers import drivers_bp
    from app.blueprints.documents import documents_bp
    from app.blueprints.dashboards import dashboards_bp
    from app.blueprints.admin import admin_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(prospects_bp)
    app.register_blueprint(routes_bp)
    app.register_blueprint(drivers_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(dashboards_bp)
    app.register_blueprint(admin_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "ok"})

    # --- Local file serving (dev only) ---
    if app.debug:
        @app.route("/uploads/<path:filepath>")
        def serve_upload(filepath):
            """Serve uploaded files from instance/uploads in dev mode."""
            upload_dir = os.path.join(app.instance_path, "uploads")
            return send_from_directory(upload_dir, filepath)

    register_error_handlers(app)

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = (
            "camera=(), microphone=(), geolocation=(), payment=()"
        )
        # JSON only; uploaded files come from Supabase or /uploads
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; "
            "img-src 'self' https://*.supabase.co; "
            "frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        logging.basicConfig(level=logging.INFO)

    return app


def register_error_handlers(app):
    """Every error leaves the API as {"error": ...} JSON."""

    @app.errorhandler(ValidationError)
    def validation_error(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(StoreError)
    def store_error(e):
        logger.error(f"Store error ({e.code}): {e.message}")
        status = 503 if e.code == TRANSPORT else 400
        return jsonify(e.to_dict()), status

    @app.errorhandler(PermissionDenied)
    def permission_denied(e):
        return jsonify({"error": str(e) or "You do not have permission to do that."}), 403

    @app.errorhandler(HTTPException)
    def http_error(e):
        messages = {
            401: "Authentication required.",
            403: "You do not have permission to do that.",
            404: "Not found.",
            405: "Method not allowed.",
        }
        return jsonify({"error": messages.get(e.code, e.description)}), e.code

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Internal server error."}), 500


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("init-db")
    def init_db():
        """Create every table from the model metadata."""
        db.create_all()
        click.echo("Tables created.")

    @app.cli.command("seed-admin")
    @click.option("--email", default="admin@routes.local", help="Admin email")
    @click.option("--password", default="admin123", help="Admin password")
    def seed_admin(email, password):
        """Create an admin user (or promote an existing one).

        Usage:
            flask seed-admin
            flask seed-admin --email admin@example.com --password s3cret
        """
        from app.models.user import User
        from app.services.role_service import ADMIN, set_user_role

        email = email.lower().strip()
        user = User.query.filter_by(email=email).first()
        if user:
            click.echo(f"User already exists: {email}")
        else:
            user = User(
                email=email,
                password_hash=generate_password_hash(password),
                full_name="Admin",
            )
            db.session.add(user)
            db.session.commit()
            click.echo(f"Created user: {email}")

        set_user_role(user.id, ADMIN)
        click.echo(f"  Role:  {ADMIN}")

    @app.cli.command("seed-options")
    def seed_options():
        """Fill empty option tables and create the Unassigned route.

        Usage:
            flask seed-options
        """
        from app.services.option_service import seed_default_options
        from app.services.route_service import ensure_unassigned_route

        added = seed_default_options()
        route_id = ensure_unassigned_route()

        click.echo("")
        click.echo("=" * 60)
        click.echo("Options seeded")
        click.echo("=" * 60)
        for table, count in added.items():
            click.echo(f"  {table:<28} {count} added")
        click.echo(f"  Unassigned route id: {route_id}")
        click.echo("=" * 60)
