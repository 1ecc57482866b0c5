"""Store — collection-level CRUD over the SQLAlchemy models.

Every write is one independent unit: it commits on success, or rolls back
that unit alone and raises StoreError. Callers that run several writes in
a row (the route save, for one) get no cross-step atomicity.

Payload hygiene applied to every write:
  - unknown keys and system fields (id, created_at) are dropped
  - "" becomes None
  - foreign keys are coerced to int (or None when unparseable)
  - ISO strings are parsed for Date columns, numeric strings for numbers
"""

import logging
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, Numeric

from app.extensions import db
from app.models import (
    OPTION_MODELS,
    Contact,
    ContactChange,
    Document,
    HelpContent,
    Prospect,
    ProspectRoute,
    ProspectRouteDriver,
    UserRole,
)
from app.services.errors import translate
from app.services.metrics import parse_date, parse_number

logger = logging.getLogger(__name__)

COLLECTIONS = {
    "prospects": Prospect,
    "contacts": Contact,
    "contact_changes": ContactChange,
    "documents": Document,
    "prospect_routes": ProspectRoute,
    "prospect_route_drivers": ProspectRouteDriver,
    "help_content": HelpContent,
    "user_roles": UserRole,
    **OPTION_MODELS,
}

SYSTEM_FIELDS = {"id", "created_at"}


def model_for(collection):
    try:
        return COLLECTIONS[collection]
    except KeyError:
        raise ValueError(f"Unknown collection '{collection}'.") from None


def as_bool(value):
    """Truthiness of a JSON or form-encoded flag ("false" is False)."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _coerce(column, value):
    if value == "":
        return None
    if value is None:
        return None
    if column.foreign_keys:
        try:
            return int(str(value))
        except ValueError:
            return None
    col_type = column.type
    if isinstance(col_type, Date) and not isinstance(col_type, DateTime):
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        parsed = parse_date(value)
        return parsed.date() if parsed else None
    if isinstance(col_type, Boolean):
        return as_bool(value)
    if isinstance(col_type, Integer):
        num = parse_number(value)
        return None if num is None else int(round(num))
    if isinstance(col_type, (Float, Numeric)):
        return parse_number(value)
    return value


def clean_payload(model, data):
    """Filter and coerce `data` for a write against `model`."""
    columns = model.__table__.columns
    payload = {}
    for key, value in (data or {}).items():
        if key in SYSTEM_FIELDS or key not in columns:
            continue
        payload[key] = _coerce(columns[key], value)
    return payload


def serialize(row):
    """JSON-safe dict of a row's column values."""
    if row is None:
        return None
    out = {}
    for column in row.__table__.columns:
        value = getattr(row, column.key)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        out[column.key] = value
    return out


# ─── Reads ─────────────────────────────────────────────────

def list_rows(collection, order_by=None, descending=False, **filters):
    model = model_for(collection)
    query = model.query.filter_by(**filters)
    if order_by is None and "sort_order" in model.__table__.columns:
        order_by = "sort_order"
    if order_by:
        column = getattr(model, order_by)
        query = query.order_by(column.desc() if descending else column.asc())
    if order_by != "id":
        query = query.order_by(model.id)
    try:
        return query.all()
    except Exception as e:
        raise translate(e, f"loading {collection}") from e


def get_row(collection, row_id):
    model = model_for(collection)
    try:
        return db.session.get(model, int(row_id))
    except (TypeError, ValueError):
        return None


def find_row(collection, **filters):
    return model_for(collection).query.filter_by(**filters).first()


# ─── Writes ────────────────────────────────────────────────

def _commit(action):
    try:
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        raise translate(e, action) from e


def insert_rows(collection, rows):
    """Insert one or more rows in a single commit. Returns the new rows."""
    model = model_for(collection)
    if isinstance(rows, dict):
        rows = [rows]
    created = [model(**clean_payload(model, data)) for data in rows]
    db.session.add_all(created)
    _commit(f"creating {collection}")
    logger.info(f"Inserted {len(created)} row(s) into {collection}")
    return created


def update_row(collection, row_id, patch):
    """Apply `patch` to one row. Returns the row, or None when no row matched."""
    row = get_row(collection, row_id)
    if row is None:
        return None
    for key, value in clean_payload(type(row), patch).items():
        setattr(row, key, value)
    _commit(f"updating {collection}")
    return row


def update_where(collection, patch, **filters):
    """Update every row matching `filters`. Returns the number of rows touched."""
    model = model_for(collection)
    rows = model.query.filter_by(**filters).all()
    values = clean_payload(model, patch)
    for row in rows:
        for key, value in values.items():
            setattr(row, key, value)
    _commit(f"updating {collection}")
    return len(rows)


def delete_rows(collection, ids):
    """Delete one id or an iterable of ids in a single commit."""
    model = model_for(collection)
    if isinstance(ids, (int, str)):
        ids = [ids]
    ids = [int(i) for i in ids]
    if not ids:
        return 0
    rows = model.query.filter(model.id.in_(ids)).all()
    for row in rows:
        db.session.delete(row)
    _commit(f"deleting {collection}")
    logger.info(f"Deleted {len(rows)} row(s) from {collection}")
    return len(rows)
