"""Routes blueprint — /routes/*

Staffing cards and the per-prospect route editor.

Route Map:
  GET  /routes                           — Route cards (search, prospect, status filters)
  GET  /routes/prospect/<id>             — Working copy of a prospect's routes
  PUT  /routes/prospect/<id>             — Save the working copy (step report)
  POST /routes/<id>/email                — E-mail route details
"""

from flask import Blueprint, g, jsonify, request

from app.decorators import tab_required, write_access_required
from app.services import route_service, store
from app.services.role_service import redact_financials

routes_bp = Blueprint("routes", __name__, url_prefix="/routes")


def _rows(collection):
    return [store.serialize(row) for row in store.list_rows(collection, order_by="id")]


@routes_bp.route("")
@tab_required("routes")
def route_list():
    cards = route_service.route_cards(
        _rows("prospect_routes"),
        _rows("prospects"),
        _rows("contacts"),
        _rows("prospect_route_drivers"),
        search=request.args.get("search", ""),
        prospect_filter=request.args.get("prospect", "All"),
        status_filter=request.args.get("status", "All"),
    )
    return jsonify(cards)


@routes_bp.route("/prospect/<int:prospect_id>")
@tab_required("routes")
def route_working_copy(prospect_id):
    if store.get_row("prospects", prospect_id) is None:
        return jsonify({"error": "Opportunity not found."}), 404
    routes = route_service.managed_routes(prospect_id)
    return jsonify(redact_financials(routes, g.role))


@routes_bp.route("/prospect/<int:prospect_id>", methods=["PUT"])
@tab_required("routes")
@write_access_required
def route_save(prospect_id):
    data = request.get_json(silent=True) or {}
    report = route_service.save_routes(prospect_id, data.get("routes") or [])
    status = 200 if report.ok else 400
    return jsonify(report.to_dict()), status


@routes_bp.route("/<int:route_id>/email", methods=["POST"])
@tab_required("routes")
def route_email(route_id):
    data = request.get_json(silent=True) or request.form
    subject = route_service.email_route_details(route_id, data.get("recipient"))
    return jsonify({"success": True, "subject": subject})
