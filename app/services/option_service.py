"""Option manager — ordered CRUD over the eleven dropdown taxonomies.

Ranks stay contiguous: an insert appends at max + 1, and every reorder
rewrites the whole list as 1..N. Deletes do not check whether records
still reference the option by name.
"""

import logging

from app.extensions import db
from app.models.options import OPTION_MODELS
from app.services import store
from app.services.errors import ValidationError

logger = logging.getLogger(__name__)

OPTION_TABLES = tuple(OPTION_MODELS)
SLOT_FILLER_TABLE = "driver_status_options"

DEFAULT_OPTIONS = {
    "status_options": ["Discovery", "Proposal", "Negotiation", "On Hold", "Won", "Lost"],
    "contact_via_options": ["Phone", "Email", "In Person", "Video Call"],
    "document_types": ["Proposal", "Contract", "Rate Sheet", "Other"],
    "source_options": ["Referral", "Website", "Cold Call", "Trade Show"],
    "driver_source_options": ["Indeed", "Referral", "Facebook", "Walk-in"],
    "driver_status_options": [
        "Recruiting",
        "Verifications",
        "Compliant",
        "Onboarded",
        "Assigned",
        "Unassigned",
        "Terminated",
        "Rejected",
    ],
    "recruiter_options": [],
    "reason_terminated_options": ["No Show", "Performance", "Resigned"],
    "reason_rejected_options": ["Failed Background Check", "Failed Drug Test", "No Response"],
    "vehicle_type_options": ["Sedan", "Minivan", "Cargo Van", "Box Truck"],
    "route_email_recipients": [],
}

SLOT_FILLER_STATUSES = {"Onboarded", "Assigned"}


def _check_table(table):
    if table not in OPTION_MODELS:
        raise ValidationError(f"Unknown option table '{table}'.")
    return OPTION_MODELS[table]


def list_options(table):
    _check_table(table)
    return store.list_rows(table, order_by="sort_order")


def next_sort_order(table):
    model = _check_table(table)
    current = db.session.query(db.func.max(model.sort_order)).scalar()
    return current + 1 if current is not None else 1


def add_option(table, name):
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required.")
    row = {"name": name, "sort_order": next_sort_order(table)}
    created = store.insert_rows(table, row)[0]
    logger.info(f"Option added to {table}: {name}")
    return created


def update_option(table, option_id, name=None, sort_order=None, is_slot_filler=None):
    _check_table(table)
    patch = {}
    if name is not None:
        name = name.strip()
        if not name:
            raise ValidationError("Name is required.")
        patch["name"] = name
    if sort_order is not None:
        patch["sort_order"] = sort_order
    if is_slot_filler is not None and table == SLOT_FILLER_TABLE:
        patch["is_slot_filler"] = store.as_bool(is_slot_filler)
    return store.update_row(table, option_id, patch)


def delete_option(table, option_id):
    _check_table(table)
    return store.delete_rows(table, option_id)


def reorder(options, index, direction):
    """Swap the option at `index` with its neighbour and renumber 1..N.

    direction is "up" (-1) or "down" (+1). Moves off either end leave the
    order unchanged but still renumber. Returns new dicts.
    """
    items = [dict(opt) for opt in options]
    step = {"up": -1, "down": 1}.get(direction, direction)
    target = index + step if isinstance(step, int) else None
    if target is not None and 0 <= index < len(items) and 0 <= target < len(items):
        items[index], items[target] = items[target], items[index]
    for rank, item in enumerate(items, start=1):
        item["sort_order"] = rank
    return items


def reorder_options(table, index, direction):
    """Persist a one-step move; every row is rewritten with its new rank."""
    rows = [store.serialize(row) for row in list_options(table)]
    ordered = reorder(rows, index, direction)
    for item in ordered:
        patch = {"name": item["name"], "sort_order": item["sort_order"]}
        if table == SLOT_FILLER_TABLE:
            patch["is_slot_filler"] = item.get("is_slot_filler", False)
        store.update_row(table, item["id"], patch)
    return ordered


def seed_default_options():
    """Fill empty option tables with defaults. Returns {table: rows added}."""
    added = {}
    for table, names in DEFAULT_OPTIONS.items():
        model = OPTION_MODELS[table]
        if model.query.count():
            continue
        rows = []
        for rank, name in enumerate(names, start=1):
            row = {"name": name, "sort_order": rank}
            if table == SLOT_FILLER_TABLE:
                row["is_slot_filler"] = name in SLOT_FILLER_STATUSES
            rows.append(row)
        if rows:
            store.insert_rows(table, rows)
        added[table] = len(rows)
    return added
