"""Auth blueprint — /auth/*

Email + password sessions (Flask-Login) for the JSON API.

Route Map:
  POST /auth/register   — Self sign-up; new accounts are viewers. Admin
                          override addresses come only from `flask seed-admin`
  POST /auth/login      — Start a session
  POST /auth/logout     — End the session
  GET  /auth/me         — Current user, role and permissions
  GET  /auth/csrf       — CSRF token for the X-CSRFToken header
"""

import logging

from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required, login_user, logout_user
from flask_wtf.csrf import generate_csrf
from werkzeug.security import check_password_hash, generate_password_hash

from app.extensions import db, limiter
from app.models.user import User
from app.services.errors import PermissionDenied
from app.services.role_service import is_override_email, permissions_for, resolve_role

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


def _form():
    """JSON body or form fields, whichever the client sent."""
    return request.get_json(silent=True) or request.form


def _user_dict(user):
    role = resolve_role(user)
    return {
        "id": user.id,
        "email": user.email,
        "full_name": user.full_name,
        "role": role,
        "permissions": permissions_for(role),
    }


# ──────────────────────────────────────────────
# POST /auth/register
# ──────────────────────────────────────────────

@auth_bp.route("/register", methods=["POST"])
@limiter.limit("10 per minute", methods=["POST"])
def register():
    """Create an account and log it in. No role row is written, so the
    account starts as a viewer until an admin promotes it."""
    data = _form()
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""
    full_name = (data.get("full_name") or "").strip()

    if is_override_email(email):
        logger.warning(f"Self sign-up refused for reserved address {email}")
        raise PermissionDenied("This address must be set up by an administrator.")

    errors = []
    if not email:
        errors.append("Email is required.")
    if not password:
        errors.append("Password is required.")
    elif len(password) < 8:
        errors.append("Password must be at least 8 characters.")
    if email and User.query.filter_by(email=email).first():
        errors.append("An account with this email already exists.")

    if errors:
        return jsonify({"error": " ".join(errors), "errors": errors}), 400

    user = User(
        email=email,
        password_hash=generate_password_hash(password),
        full_name=full_name or None,
    )
    db.session.add(user)
    db.session.commit()
    logger.info(f"User registered: {email}")

    login_user(user)
    return jsonify(_user_dict(user)), 201


# ──────────────────────────────────────────────
# POST /auth/login
# ──────────────────────────────────────────────

@auth_bp.route("/login", methods=["POST"])
@limiter.limit("15 per minute", methods=["POST"])
def login():
    data = _form()
    email = (data.get("email") or "").lower().strip()
    password = data.get("password") or ""
    remember = bool(data.get("remember"))

    if not email or not password:
        return jsonify({"error": "Email and password are required."}), 400

    user = User.query.filter_by(email=email).first()
    if user is None or not check_password_hash(user.password_hash, password):
        return jsonify({"error": "Invalid email or password."}), 401

    if not user.is_active:
        return jsonify({"error": "Your account has been deactivated."}), 403

    login_user(user, remember=remember)
    return jsonify(_user_dict(user))


# ──────────────────────────────────────────────
# POST /auth/logout
# ──────────────────────────────────────────────

@auth_bp.route("/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"success": True})


@auth_bp.route("/me")
@login_required
def me():
    return jsonify(_user_dict(current_user))


@auth_bp.route("/csrf")
def csrf_token():
    return jsonify({"csrf_token": generate_csrf()})
