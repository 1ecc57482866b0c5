"""Drivers blueprint — /drivers/*

Recruiting candidates and their route assignment.

Route Map:
  GET    /drivers                        — Listing (search, status, hide_inactive, sort)
  POST   /drivers                        — Create driver
  PUT    /drivers/<id>                   — Update driver (status rules replayed)
  DELETE /drivers/<id>                   — Delete driver
  POST   /drivers/<id>/assign            — Link to a route, status Assigned
  POST   /drivers/<id>/unassign          — Move to Unassigned, status Onboarded
  GET    /drivers/selectable             — Candidates for the route picker
  GET    /drivers/route-options          — Routes for the edit form
  POST   /drivers/<id>/email             — E-mail driver details
"""

from flask import Blueprint, jsonify, request

from app.decorators import delete_access_required, tab_required, write_access_required
from app.services import driver_service, route_service, store

drivers_bp = Blueprint("drivers", __name__, url_prefix="/drivers")


def _form():
    return request.get_json(silent=True) or request.form.to_dict()


def _rows(collection):
    return [store.serialize(row) for row in store.list_rows(collection, order_by="id")]


@drivers_bp.route("")
@tab_required("drivers")
def driver_list():
    rows = driver_service.driver_listing(
        _rows("prospect_route_drivers"),
        _rows("prospect_routes"),
        _rows("prospects"),
        search=request.args.get("search", ""),
        status=request.args.get("status", "All"),
        hide_inactive=request.args.get("hide_inactive", "").lower() in ("1", "true", "yes"),
        sort=request.args.get("sort", "created_at"),
        direction=request.args.get("direction", "descending"),
    )
    return jsonify(rows)


@drivers_bp.route("", methods=["POST"])
@tab_required("drivers")
@write_access_required
def driver_create():
    data = _form()
    data.pop("id", None)
    row = driver_service.save_driver(data)
    return jsonify(store.serialize(row)), 201


@drivers_bp.route("/<int:driver_id>", methods=["PUT"])
@tab_required("drivers")
@write_access_required
def driver_update(driver_id):
    data = _form()
    data["id"] = driver_id
    row = driver_service.save_driver(data)
    return jsonify(store.serialize(row))


@drivers_bp.route("/<int:driver_id>", methods=["DELETE"])
@tab_required("drivers")
@delete_access_required
def driver_delete(driver_id):
    driver_service.delete_driver(driver_id)
    return jsonify({"success": True})


# ─── Assignment ──────────────────────────────────────────────────

@drivers_bp.route("/<int:driver_id>/assign", methods=["POST"])
@tab_required("routes")
@write_access_required
def driver_assign(driver_id):
    data = _form()
    row = route_service.assign_driver(driver_id, data.get("route_id"))
    return jsonify(store.serialize(row))


@drivers_bp.route("/<int:driver_id>/unassign", methods=["POST"])
@tab_required("routes")
@write_access_required
def driver_unassign(driver_id):
    row = route_service.unassign_driver(driver_id)
    return jsonify(store.serialize(row))


@drivers_bp.route("/selectable")
@tab_required("routes")
def driver_selectable():
    drivers = _rows("prospect_route_drivers")
    unassigned_id = route_service.unassigned_route_id()
    return jsonify(route_service.selectable_drivers(drivers, unassigned_id))


@drivers_bp.route("/route-options")
@tab_required("drivers")
def driver_route_options():
    return jsonify(driver_service.route_options())


@drivers_bp.route("/<int:driver_id>/email", methods=["POST"])
@tab_required("drivers")
def driver_email(driver_id):
    subject = driver_service.email_driver_details(driver_id, _form().get("recipient"))
    return jsonify({"success": True, "subject": subject})
