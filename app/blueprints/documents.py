"""Documents blueprint — /documents/*

Files attached to prospects. Uploads are multipart: the record fields as
form fields plus a `file` part.

Route Map:
  GET    /documents                — Listing (search, sort, direction)
  POST   /documents                — Upload a new document (file required)
  PUT    /documents/<id>           — Edit; a `file` part replaces the blob
  DELETE /documents/<id>           — Delete record and blob
"""

from flask import Blueprint, jsonify, request

from app.decorators import delete_access_required, tab_required, write_access_required
from app.services import document_service, store, storage_service

documents_bp = Blueprint("documents", __name__, url_prefix="/documents")


def _rows(collection, **kwargs):
    return [store.serialize(row) for row in store.list_rows(collection, **kwargs)]


def _document_dict(row):
    data = store.serialize(row)
    data["public_url"] = storage_service.public_url(row.storage_path)
    return data


@documents_bp.route("")
@tab_required("documents")
def document_list():
    rows = document_service.document_listing(
        _rows("documents", order_by="created_at", descending=True),
        _rows("prospects", order_by="name"),
        _rows("document_types"),
        search=request.args.get("search", ""),
        sort=request.args.get("sort", "created_at"),
        direction=request.args.get("direction", "descending"),
    )
    return jsonify(rows)


@documents_bp.route("", methods=["POST"])
@tab_required("documents")
@write_access_required
def document_create():
    row = document_service.save_document(request.form, request.files.get("file"))
    return jsonify(_document_dict(row)), 201


@documents_bp.route("/<int:document_id>", methods=["PUT"])
@tab_required("documents")
@write_access_required
def document_update(document_id):
    row = document_service.save_document(
        request.form, request.files.get("file"), document_id=document_id
    )
    return jsonify(_document_dict(row))


@documents_bp.route("/<int:document_id>", methods=["DELETE"])
@tab_required("documents")
@delete_access_required
def document_delete(document_id):
    document_service.delete_document(document_id)
    return jsonify({"success": True})
