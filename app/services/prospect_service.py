"""Prospect service — opportunities, their contact timeline, and the
field-level change history kept for contact edits.

A prospect's current state is its newest contact (by contact_date, then
created_at). Listing filters on status and completion look only at that
contact; a prospect with no contacts survives only unfiltered views.
"""

import logging

from app.models.contact import Contact, ContactChange
from app.services import store
from app.services.errors import ValidationError
from app.services.metrics import display_value, parse_date, parse_number
from app.services.status import apply_contact_status

logger = logging.getLogger(__name__)

PROSPECT_FIELDS = (
    "name",
    "contact_name",
    "address",
    "city",
    "state",
    "zip_code",
    "phone_number",
    "email",
)

# Edits to these contact fields are recorded in contact_changes.
TRACKED_CONTACT_FIELDS = (
    "status",
    "forecast",
    "actual",
    "probability",
    "gross_margin",
    "final_gross_margin",
    "expected_closing",
    "actual_close_date",
    "quote_due_date",
    "date_quote_submitted",
    "start_date",
    "actual_start_date",
)

# Blank means "not yet known" for these; other numbers default to 0.
NULLABLE_NUMBERS = ("actual", "final_gross_margin")
ZERO_NUMBERS = ("forecast", "probability", "gross_margin")

DATE_FIELDS = {
    "contact_date",
    "expected_closing",
    "actual_close_date",
    "quote_due_date",
    "date_quote_submitted",
    "start_date",
    "actual_start_date",
}

SORT_KEYS = ("name", "contact_date", "expected_closing", "forecast", "status")
DEFAULT_SORT = "contact_date_desc"


# ─── Prospects ─────────────────────────────────────────────

def save_prospect(form):
    """Create or update a prospect. Blank optional fields become None."""
    form = form or {}
    name = (form.get("name") or "").strip()
    if not name:
        raise ValidationError("Opportunity name is required.")
    payload = {key: form.get(key) or None for key in PROSPECT_FIELDS}
    payload["name"] = name

    prospect_id = form.get("id")
    if prospect_id:
        row = store.update_row("prospects", prospect_id, payload)
        if row is None:
            raise ValidationError("Opportunity not found.")
        logger.info(f"Prospect {row.id} updated")
        return row
    row = store.insert_rows("prospects", payload)[0]
    logger.info(f"Prospect {row.id} created: {row.name}")
    return row


def delete_prospect(prospect_id):
    """Delete a prospect with its contacts, documents, routes and history."""
    deleted = store.delete_rows("prospects", prospect_id)
    if not deleted:
        raise ValidationError("Opportunity not found.")
    return deleted


# ─── Contacts ──────────────────────────────────────────────

def contact_payload(form):
    """Normalise a submitted contact form."""
    payload = {k: v for k, v in (form or {}).items() if k not in ("id", "created_at")}
    for name in NULLABLE_NUMBERS:
        if name in payload:
            payload[name] = parse_number(payload[name])
    for name in ZERO_NUMBERS:
        if name in payload:
            num = parse_number(payload[name])
            payload[name] = 0 if num is None else num
    if "status" in payload:
        apply_contact_status(payload, payload["status"])
    return payload


def _tracked_value(value):
    if value is None or value == "":
        return None
    return display_value(value)


def _normalised(name, value):
    """Comparable form of a tracked field value."""
    if value in (None, ""):
        return None
    if name in DATE_FIELDS:
        parsed = parse_date(value)
        return parsed.date() if parsed else None
    if name == "status":
        return value
    return parse_number(value)


def save_contact(form):
    """Create or update a contact and record tracked field changes."""
    form = form or {}
    if not form.get("prospect_id"):
        raise ValidationError("A contact must belong to an opportunity.")
    if not (form.get("contact_name") or "").strip():
        raise ValidationError("Contact name is required.")
    if not form.get("contact_date"):
        raise ValidationError("Contact date is required.")

    payload = contact_payload(form)
    contact_id = form.get("id")
    if not contact_id:
        row = store.insert_rows("contacts", payload)[0]
        logger.info(f"Contact {row.id} created for prospect {row.prospect_id}")
        return row

    existing = store.get_row("contacts", contact_id)
    if existing is None:
        raise ValidationError("Contact not found.")
    before = {name: getattr(existing, name) for name in TRACKED_CONTACT_FIELDS}

    row = store.update_row("contacts", contact_id, payload)

    changes = []
    for name in TRACKED_CONTACT_FIELDS:
        if name not in payload:
            continue
        old, new = before[name], getattr(row, name)
        if _normalised(name, old) == _normalised(name, new):
            continue
        changes.append({
            "prospect_id": row.prospect_id,
            "contact_id": row.id,
            "field_name": name,
            "old_value": _tracked_value(old),
            "new_value": _tracked_value(new),
        })
    if changes:
        store.insert_rows("contact_changes", changes)
        logger.info(f"Contact {row.id}: {len(changes)} change(s) recorded")
    return row


def delete_contact(contact_id):
    deleted = store.delete_rows("contacts", contact_id)
    if not deleted:
        raise ValidationError("Contact not found.")
    return deleted


# ─── Listing ───────────────────────────────────────────────

def _contact_sort_key(contact):
    contact_date = parse_date(contact.get("contact_date"))
    created = parse_date(contact.get("created_at"))
    return (contact_date.timestamp() if contact_date else 0,
            created.timestamp() if created else 0)


def newest_first(contacts):
    return sorted(contacts, key=_contact_sort_key, reverse=True)


def latest_contact(contacts):
    """Newest contact of a list (by contact_date, then created_at), or None."""
    ordered = newest_first(contacts)
    return ordered[0] if ordered else None


def group_contacts(prospects, contacts):
    """[{prospect, contacts}] per prospect, contacts newest first."""
    by_prospect = {}
    for contact in contacts:
        by_prospect.setdefault(contact["prospect_id"], []).append(contact)
    return [
        {"prospect": p, "contacts": newest_first(by_prospect.get(p["id"], []))}
        for p in prospects
    ]


def _matches_filters(entry, status, completed):
    contacts = entry["contacts"]
    if not contacts:
        return status in (None, "", "All") and completed in (None, "", "All")
    latest = contacts[0]
    if status not in (None, "", "All") and latest.get("status") != status:
        return False
    if completed not in (None, "", "All"):
        if str(bool(latest.get("completed"))).lower() != str(completed).lower():
            return False
    return True


def _matches_search(entry, needle):
    if not needle:
        return True
    if needle in (entry["prospect"].get("name") or "").lower():
        return True
    return any(
        needle in (c.get("contact_name") or "").lower()
        or needle in (c.get("notes") or "").lower()
        for c in entry["contacts"]
    )


def _sort_value(contact, key):
    if key in ("contact_date", "expected_closing"):
        parsed = parse_date(contact.get(key))
        return parsed.timestamp() if parsed else 0
    if key == "forecast":
        return parse_number(contact.get("forecast")) or 0
    return (contact.get("status") or "").lower()


def split_sort(sort):
    sort = sort or DEFAULT_SORT
    key, _, direction = sort.rpartition("_")
    if key not in SORT_KEYS or direction not in ("asc", "desc"):
        raise ValidationError(f"Unknown sort '{sort}'.")
    return key, direction


def prospect_listing(prospects, contacts, status="All", completed="All", search="",
                     sort=DEFAULT_SORT):
    """Filtered and sorted prospects, each with its contacts newest first.

    Prospects without contacts always sort after those with contacts,
    except when sorting by name.
    """
    key, direction = split_sort(sort)
    needle = (search or "").lower()
    entries = [
        entry for entry in group_contacts(prospects, contacts)
        if _matches_filters(entry, status, completed) and _matches_search(entry, needle)
    ]
    reverse = direction == "desc"

    if key == "name":
        return sorted(
            entries,
            key=lambda e: (e["prospect"].get("name") or "").lower(),
            reverse=reverse,
        )
    with_contacts = [e for e in entries if e["contacts"]]
    without = [e for e in entries if not e["contacts"]]
    with_contacts.sort(key=lambda e: _sort_value(e["contacts"][0], key), reverse=reverse)
    return with_contacts + without


def load_listing(**filters):
    prospects = [store.serialize(p) for p in store.list_rows("prospects", order_by="name")]
    contacts = [store.serialize(c) for c in store.list_rows("contacts")]
    changed = {
        row.prospect_id
        for row in ContactChange.query.with_entities(ContactChange.prospect_id).distinct()
    }
    entries = prospect_listing(prospects, contacts, **filters)
    for entry in entries:
        entry["has_change_history"] = entry["prospect"]["id"] in changed
    return entries


# ─── Notes and history ─────────────────────────────────────

def prospect_notes(prospect_id):
    """Every contact note of a prospect as "<date> (<name>): <note>" blocks."""
    contacts = (
        Contact.query.filter_by(prospect_id=prospect_id)
        .filter(Contact.notes.isnot(None), Contact.notes != "")
        .order_by(Contact.contact_date.desc(), Contact.id.desc())
        .all()
    )
    return "\n\n".join(
        f"{display_value(c.contact_date)} ({c.contact_name}): {c.notes}" for c in contacts
    )


def change_history(prospect_id):
    """Contact changes for a prospect, newest first."""
    return (
        ContactChange.query.filter_by(prospect_id=prospect_id)
        .order_by(ContactChange.created_at.desc(), ContactChange.id.desc())
        .all()
    )
