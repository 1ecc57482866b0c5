"""Driver service — save/delete, the Drivers tab listing, and the
"call now" e-mail.

Saving an existing driver replays the submitted form through a
DriverEditSession seeded with the stored row, so the compliance
auto-status, reason cleanup and status audit triple come out exactly as
they would from the edit form. days_to_fill and retention are recomputed
on every save and only exist once the driver has an onboarding date.
"""

import logging
from datetime import date

from app.models.route import ProspectRoute
from app.services import store
from app.services.email_service import send_email
from app.services.errors import ValidationError
from app.services.metrics import driver_days_to_fill, retention
from app.services.route_service import route_label, unassigned_route_id
from app.services.status import INACTIVE_DRIVER_STATUSES, DriverEditSession, DriverStatus

logger = logging.getLogger(__name__)

COLLECTION = "prospect_route_drivers"

# Form keys that are display-only or derived.
IGNORED_FIELDS = {"id", "created_at", "route_info", "routeInfo", "days_to_fill", "retention"}


def _driver_id(data):
    try:
        return int(data.get("id") or 0)
    except (TypeError, ValueError):
        return 0


def _coerce_route_id(value):
    if value in (None, ""):
        return None
    try:
        return int(str(value))
    except ValueError:
        return None


def with_derived_metrics(payload, now=None):
    """Set days_to_fill and retention; both None without date_onboarded."""
    if payload.get("date_onboarded"):
        payload["retention"] = retention(payload, now=now)
        if payload.get("date_added"):
            payload["days_to_fill"] = driver_days_to_fill(payload)
        else:
            payload["days_to_fill"] = None
    else:
        payload["days_to_fill"] = None
        payload["retention"] = None
    return payload


def save_driver(data, today=None):
    """Insert (id missing or <= 0) or update a driver. Returns the row."""
    today = today or date.today()
    form = {k: v for k, v in (data or {}).items() if k not in IGNORED_FIELDS}
    if "prospect_route_id" in form:
        form["prospect_route_id"] = _coerce_route_id(form["prospect_route_id"])

    driver_id = _driver_id(data or {})
    if driver_id > 0:
        existing = store.get_row(COLLECTION, driver_id)
        if existing is None:
            raise ValidationError("Driver not found.")
        session = DriverEditSession(store.serialize(existing))
        payload = session.apply(form, today)
    else:
        if not (form.get("driver_name") or "").strip():
            raise ValidationError("Driver name is required.")
        session = DriverEditSession({"status": DriverStatus.RECRUITING.value})
        payload = session.apply(form, today)

    payload = {k: v for k, v in payload.items() if k not in ("id", "created_at")}
    with_derived_metrics(payload)

    if driver_id > 0:
        row = store.update_row(COLLECTION, driver_id, payload)
        logger.info(f"Driver {driver_id} updated (status={row.status})")
    else:
        row = store.insert_rows(COLLECTION, payload)[0]
        logger.info(f"Driver {row.id} created: {row.driver_name}")
    return row


def delete_driver(driver_id):
    deleted = store.delete_rows(COLLECTION, driver_id)
    if not deleted:
        raise ValidationError("Driver not found.")
    return deleted


def _sort_value(driver, key, labels):
    if key == "route":
        return labels.get(driver["id"])
    return driver.get(key)


def driver_listing(drivers, routes, prospects, search="", status="All",
                   hide_inactive=False, sort="created_at", direction="descending"):
    """Drivers tab rows, each with its route label. Nulls always sort last."""
    unassigned_id = unassigned_route_id(routes)
    routes_by_id = {r["id"]: r for r in routes}
    prospects_by_id = {p["id"]: p for p in prospects}

    needle = (search or "").lower()
    rows = []
    for driver in drivers:
        if needle and not any(
            needle in (driver.get(name) or "").lower()
            for name in ("driver_name", "city", "state")
        ):
            continue
        if status not in (None, "", "All") and driver.get("status") != status:
            continue
        if hide_inactive and driver.get("status") in INACTIVE_DRIVER_STATUSES:
            continue
        row = dict(driver)
        row["route"] = route_label(
            driver.get("prospect_route_id"), routes_by_id, prospects_by_id, unassigned_id
        )
        rows.append(row)

    labels = {row["id"]: row["route"] for row in rows}
    present = [r for r in rows if _sort_value(r, sort, labels) is not None]
    missing = [r for r in rows if _sort_value(r, sort, labels) is None]
    present.sort(
        key=lambda r: _sort_value(r, sort, labels),
        reverse=direction in ("descending", "desc"),
    )
    return present + missing


def driver_email(driver, route_name):
    subject = f"CALL NOW! Driver Details: {driver.get('driver_name') or 'New Driver'}"
    address = ", ".join(
        part for part in (driver.get(k) for k in ("address", "city", "state", "zipcode")) if part
    )
    body = "\n".join([
        f"Driver Name: {driver.get('driver_name') or 'N/A'}",
        f"Phone: {driver.get('phone_number') or 'N/A'}",
        f"Email: {driver.get('email') or 'N/A'}",
        f"Status: {driver.get('status') or 'N/A'}",
        f"Source: {driver.get('source') or 'N/A'}",
        f"Address: {address or 'N/A'}",
        f"Vehicle Type: {driver.get('vehicle_type') or 'N/A'}",
        f"Assigned Route: {route_name}",
        f"Notes: {driver.get('notes') or ''}",
    ])
    return subject, body


def email_driver_details(driver_id, recipient):
    if not recipient:
        raise ValidationError("Choose a recipient first.")
    row = store.get_row(COLLECTION, driver_id)
    if row is None:
        raise ValidationError("Driver not found.")

    route_name = "Unassigned"
    route = row.route
    if route is not None and route.route_id_name != "Unassigned":
        route_name = route_label(
            route.id,
            {route.id: store.serialize(route)},
            {route.prospect_id: {"name": route.prospect.name}},
        )
    subject, body = driver_email(store.serialize(row), route_name)
    send_email(recipient, subject, body)
    logger.info(f"Driver {driver_id} details queued for {recipient}")
    return subject


def route_options():
    """Routes a driver can be linked to from the edit form, sentinel excluded."""
    options = []
    for route in ProspectRoute.query.all():
        if route.is_unassigned_bucket:
            continue
        prospect_name = route.prospect.name if route.prospect else "Unknown Opportunity"
        options.append({"id": route.id, "name": f"{prospect_name} - {route.route_id_name}"})
    return sorted(options, key=lambda o: o["name"].lower())
