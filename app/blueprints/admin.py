"""Admin blueprint — /admin/*

Option taxonomies, user roles and help copy. All routes protected by the
@admin_required decorator.

Route Map:
  GET    /admin/options/<table>                — Ordered options
  POST   /admin/options/<table>                — Add option (appended)
  PUT    /admin/options/<table>/<id>           — Rename / rank / slot-filler flag
  DELETE /admin/options/<table>/<id>           — Delete option
  POST   /admin/options/<table>/reorder        — Move one step up or down
  GET    /admin/users                          — Users with their roles
  PUT    /admin/users/<id>/role                — Set a user's role
  PUT    /admin/help/<page_id>                 — Save help copy
"""

from flask import Blueprint, jsonify, request

from app.decorators import admin_required
from app.extensions import db
from app.models.user import User
from app.services import option_service, store
from app.services.help_service import set_help
from app.services.role_service import resolve_role, set_user_role

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _form():
    return request.get_json(silent=True) or request.form.to_dict()


# ══════════════════════════════════════════════
#  OPTIONS
# ══════════════════════════════════════════════

@admin_bp.route("/options/<table>")
@admin_required
def option_list(table):
    return jsonify([store.serialize(o) for o in option_service.list_options(table)])


@admin_bp.route("/options/<table>", methods=["POST"])
@admin_required
def option_create(table):
    row = option_service.add_option(table, _form().get("name"))
    return jsonify(store.serialize(row)), 201


@admin_bp.route("/options/<table>/<int:option_id>", methods=["PUT"])
@admin_required
def option_update(table, option_id):
    data = _form()
    row = option_service.update_option(
        table,
        option_id,
        name=data.get("name"),
        sort_order=data.get("sort_order"),
        is_slot_filler=data.get("is_slot_filler"),
    )
    if row is None:
        return jsonify({"error": "Option not found."}), 404
    return jsonify(store.serialize(row))


@admin_bp.route("/options/<table>/<int:option_id>", methods=["DELETE"])
@admin_required
def option_delete(table, option_id):
    option_service.delete_option(table, option_id)
    return jsonify({"success": True})


@admin_bp.route("/options/<table>/reorder", methods=["POST"])
@admin_required
def option_reorder(table):
    data = _form()
    try:
        index = int(data.get("index"))
    except (TypeError, ValueError):
        return jsonify({"error": "An option index is required."}), 400
    direction = data.get("direction")
    if direction not in ("up", "down"):
        return jsonify({"error": "Direction must be 'up' or 'down'."}), 400
    return jsonify(option_service.reorder_options(table, index, direction))


# ══════════════════════════════════════════════
#  USERS
# ══════════════════════════════════════════════

@admin_bp.route("/users")
@admin_required
def user_list():
    users = User.query.order_by(User.email).all()
    return jsonify([
        {
            "id": u.id,
            "email": u.email,
            "full_name": u.full_name,
            "role": resolve_role(u),
            "created_at": u.created_at.isoformat() if u.created_at else None,
        }
        for u in users
    ])


@admin_bp.route("/users/<int:user_id>/role", methods=["PUT"])
@admin_required
def user_role(user_id):
    if db.session.get(User, user_id) is None:
        return jsonify({"error": "User not found."}), 404
    role = (_form().get("role") or "").strip().lower()
    if not role:
        return jsonify({"error": "A role is required."}), 400
    set_user_role(user_id, role)
    return jsonify({"user_id": user_id, "role": role})


# ══════════════════════════════════════════════
#  HELP
# ══════════════════════════════════════════════

@admin_bp.route("/help/<page_id>", methods=["PUT"])
@admin_required
def help_update(page_id):
    content = _form().get("content")
    set_help(page_id, content)
    return jsonify({"page_id": page_id, "content": content})
