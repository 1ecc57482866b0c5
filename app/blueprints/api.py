"""API blueprint — /api/*

Whole-application reads. Clients call /api/state after every successful
write instead of patching their local copy.

Route Map:
  GET  /api/state               — Every collection the UI renders
  GET  /api/help/<page_id>      — Help copy for one tab (all roles)
"""

from flask import Blueprint, g, jsonify
from flask_login import current_user, login_required

from app.services.help_service import get_help
from app.services.role_service import resolve_role
from app.services.state_service import load_state

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.route("/state")
@login_required
def state():
    g.role = resolve_role(current_user)
    return jsonify(load_state(g.role).to_dict())


@api_bp.route("/help/<page_id>")
@login_required
def help_page(page_id):
    return jsonify({"page_id": page_id, "content": get_help(page_id)})
