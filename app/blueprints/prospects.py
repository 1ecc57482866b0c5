"""Prospects blueprint — /prospects/*

Opportunities and their contact timeline. Dispatchers have no access to
this tab at all; viewers read it with financial fields removed.

Route Map:
  GET    /prospects                       — Filtered, sorted listing
  POST   /prospects                       — Create prospect
  PUT    /prospects/<id>                  — Update prospect
  DELETE /prospects/<id>                  — Delete prospect (cascades)
  GET    /prospects/export.csv            — CSV of the current listing
  GET    /prospects/<id>/notes            — All contact notes, newest first
  GET    /prospects/<id>/changes          — Contact change history
  POST   /prospects/<id>/contacts         — Add contact
  PUT    /prospects/contacts/<id>         — Update contact
  DELETE /prospects/contacts/<id>         — Delete contact
"""

from flask import Blueprint, Response, g, jsonify, request

from app.decorators import delete_access_required, tab_required, write_access_required
from app.services import prospect_service, store
from app.services.export_service import EXPORT_FILENAME, opportunities_csv
from app.services.role_service import FINANCIAL_FIELDS, VIEWER, redact_financials

prospects_bp = Blueprint("prospects", __name__, url_prefix="/prospects")


def _form():
    return request.get_json(silent=True) or request.form.to_dict()


def _listing_filters():
    return {
        "status": request.args.get("status", "All"),
        "completed": request.args.get("completed", "All"),
        "search": request.args.get("search", ""),
        "sort": request.args.get("sort", prospect_service.DEFAULT_SORT),
    }


# ─── Prospects ───────────────────────────────────────────────────

@prospects_bp.route("")
@tab_required("prospects")
def prospect_list():
    entries = prospect_service.load_listing(**_listing_filters())
    return jsonify(redact_financials(entries, g.role))


@prospects_bp.route("", methods=["POST"])
@tab_required("prospects")
@write_access_required
def prospect_create():
    form = _form()
    form.pop("id", None)
    row = prospect_service.save_prospect(form)
    return jsonify(store.serialize(row)), 201


@prospects_bp.route("/<int:prospect_id>", methods=["PUT"])
@tab_required("prospects")
@write_access_required
def prospect_update(prospect_id):
    form = _form()
    form["id"] = prospect_id
    row = prospect_service.save_prospect(form)
    return jsonify(store.serialize(row))


@prospects_bp.route("/<int:prospect_id>", methods=["DELETE"])
@tab_required("prospects")
@delete_access_required
def prospect_delete(prospect_id):
    prospect_service.delete_prospect(prospect_id)
    return jsonify({"success": True})


@prospects_bp.route("/export.csv")
@tab_required("prospects")
def prospect_export():
    entries = prospect_service.load_listing(**_listing_filters())
    body = opportunities_csv(redact_financials(entries, g.role))
    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": f"attachment; filename={EXPORT_FILENAME}"},
    )


@prospects_bp.route("/<int:prospect_id>/notes")
@tab_required("prospects")
def prospect_notes(prospect_id):
    return jsonify({
        "prospect_id": prospect_id,
        "notes": prospect_service.prospect_notes(prospect_id),
    })


@prospects_bp.route("/<int:prospect_id>/changes")
@tab_required("prospects")
def prospect_changes(prospect_id):
    rows = [store.serialize(c) for c in prospect_service.change_history(prospect_id)]
    if g.role == VIEWER:
        rows = [r for r in rows if r["field_name"] not in FINANCIAL_FIELDS]
    return jsonify(rows)


# ─── Contacts ────────────────────────────────────────────────────

@prospects_bp.route("/<int:prospect_id>/contacts", methods=["POST"])
@tab_required("prospects")
@write_access_required
def contact_create(prospect_id):
    form = _form()
    form.pop("id", None)
    form["prospect_id"] = prospect_id
    row = prospect_service.save_contact(form)
    return jsonify(store.serialize(row)), 201


@prospects_bp.route("/contacts/<int:contact_id>", methods=["PUT"])
@tab_required("prospects")
@write_access_required
def contact_update(contact_id):
    existing = store.get_row("contacts", contact_id)
    if existing is None:
        return jsonify({"error": "Contact not found."}), 404
    form = _form()
    form["id"] = contact_id
    form.setdefault("prospect_id", existing.prospect_id)
    form.setdefault("contact_name", existing.contact_name)
    form.setdefault("contact_date", existing.contact_date)
    row = prospect_service.save_contact(form)
    return jsonify(store.serialize(row))


@prospects_bp.route("/contacts/<int:contact_id>", methods=["DELETE"])
@tab_required("prospects")
@delete_access_required
def contact_delete(contact_id):
    prospect_service.delete_contact(contact_id)
    return jsonify({"success": True})
