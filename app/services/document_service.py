"""Document service — uploads attached to prospects.

New documents need a file. Edits may swap the file; the previous blob is
then removed on a best-effort basis.
"""

import logging

from app.services import store, storage_service
from app.services.errors import ValidationError

logger = logging.getLogger(__name__)

SORT_KEYS = (
    "created_at",
    "description",
    "file_name",
    "prospect_name",
    "document_type_name",
)


def _require_int(value, label):
    try:
        return int(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{label} is required.") from None


def save_document(form, file=None, document_id=None):
    """Create (file required) or update a document. Returns the row."""
    form = form or {}
    payload = {
        "prospect_id": _require_int(form.get("prospect_id"), "Opportunity"),
        "document_type_id": _require_int(form.get("document_type_id"), "Document type"),
        "description": (form.get("description") or "").strip(),
        "notes": form.get("notes") or None,
    }
    if not payload["description"]:
        raise ValidationError("Description is required.")

    existing = None
    if document_id:
        existing = store.get_row("documents", document_id)
        if existing is None:
            raise ValidationError("Document not found.")
    elif not (file and file.filename):
        raise ValidationError("File is required for new documents.")

    previous_path = existing.storage_path if existing else None
    if file and file.filename:
        uploaded = storage_service.upload_file(file)
        payload["storage_path"] = uploaded["storage_path"]
        payload["file_name"] = uploaded["file_name"]

    if existing is None:
        row = store.insert_rows("documents", payload)[0]
        logger.info(f"Document {row.id} uploaded: {row.file_name}")
        return row

    row = store.update_row("documents", document_id, payload)
    if previous_path and payload.get("storage_path"):
        storage_service.delete_file(previous_path)
    logger.info(f"Document {row.id} updated")
    return row


def delete_document(document_id):
    """Delete the record, then its blob (best-effort)."""
    row = store.get_row("documents", document_id)
    if row is None:
        raise ValidationError("Document not found.")
    storage_path = row.storage_path
    store.delete_rows("documents", document_id)
    storage_service.delete_file(storage_path)
    return storage_path


def document_listing(documents, prospects, document_types, search="",
                     sort="created_at", direction="descending"):
    """Documents with prospect and type names attached, filtered and sorted."""
    if sort not in SORT_KEYS:
        raise ValidationError(f"Unknown sort '{sort}'.")
    prospect_names = {p["id"]: p["name"] for p in prospects}
    type_names = {t["id"]: t["name"] for t in document_types}

    needle = (search or "").lower()
    rows = []
    for doc in documents:
        row = dict(doc)
        row["prospect_name"] = prospect_names.get(doc["prospect_id"], "Unknown Opportunity")
        row["document_type_name"] = type_names.get(doc["document_type_id"], "Unknown Type")
        row["public_url"] = storage_service.public_url(doc.get("storage_path"))
        if needle and not any(
            needle in (row.get(name) or "").lower()
            for name in ("description", "prospect_name", "file_name")
        ):
            continue
        rows.append(row)

    rows.sort(
        key=lambda r: str(r.get(sort) or ""),
        reverse=direction in ("descending", "desc"),
    )
    return rows
