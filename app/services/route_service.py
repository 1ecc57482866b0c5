"""Route service — staffing cards, the per-prospect route editor, and
driver assignment.

The editor works on a deep copy of one prospect's routes (with their
drivers nested). Saving diffs that copy against what is stored:

  - negative (temporary) ids are creates
  - positive ids present on both sides are updates
  - positive ids missing locally are deletes

Drivers on a route being deleted are moved to the "Unassigned" route
first. The steps run one after another with no wrapping transaction, and
the save stops at the first failure. Whatever already succeeded stays
committed; the returned report says which step broke.
"""

import logging
from dataclasses import dataclass, field

from app.models.route import UNASSIGNED_ROUTE_NAME, ProspectRouteDriver
from app.services import store
from app.services.email_service import send_email
from app.services.errors import StoreError, ValidationError
from app.services.metrics import pct_commission, route_days_to_fill
from app.services.status import INACTIVE_DRIVER_STATUSES, DriverStatus

logger = logging.getLogger(__name__)

# Keys that live on the working copy but never reach the routes table.
LOCAL_ONLY_FIELDS = ("id", "drivers", "created_at", "pct_commission", "days_to_fill")

SELECTABLE_STATUSES = {
    DriverStatus.RECRUITING.value,
    DriverStatus.VERIFICATIONS.value,
    DriverStatus.COMPLIANT.value,
    DriverStatus.UNASSIGNED.value,
    DriverStatus.ONBOARDED.value,
}


def _get(obj, name, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def _iso(value, default="N/A"):
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value or default


def unassigned_route_id(routes=None):
    """Id of the sentinel "Unassigned" route, or None if the data set has none."""
    if routes is None:
        row = store.find_row("prospect_routes", route_id_name=UNASSIGNED_ROUTE_NAME)
        return row.id if row else None
    for route in routes:
        if _get(route, "route_id_name") == UNASSIGNED_ROUTE_NAME:
            return _get(route, "id")
    return None


def route_fill(route, drivers):
    """(filled, open) for a route. Terminated and Rejected drivers don't count."""
    route_id = _get(route, "id")
    filled = sum(
        1 for d in drivers
        if _get(d, "prospect_route_id") == route_id
        and _get(d, "status") not in INACTIVE_DRIVER_STATUSES
    )
    needed = _get(route, "drivers_needed") or 0
    return filled, max(0, needed - filled)


def route_label(route_id, routes_by_id, prospects_by_id, unassigned_id=None):
    """"<prospect> - <route>" for a driver's link; "Unassigned" for none/sentinel."""
    if not route_id or (unassigned_id and route_id == unassigned_id):
        return "Unassigned"
    route = routes_by_id.get(route_id)
    if route is None:
        return "Unknown"
    prospect = prospects_by_id.get(_get(route, "prospect_id"))
    prospect_name = _get(prospect, "name") if prospect else "Unknown Opportunity"
    return f"{prospect_name} - {_get(route, 'route_id_name')}"


def _latest_status(contacts):
    if not contacts:
        return "New"
    ordered = sorted(
        contacts,
        key=lambda c: str(_get(c, "contact_date") or "1970-01-01"),
        reverse=True,
    )
    return _get(ordered[0], "status")


def route_cards(routes, prospects, contacts, drivers, search="", prospect_filter="All",
                status_filter="All"):
    """Staffing cards for every real route, sorted by prospect name."""
    prospects_by_id = {_get(p, "id"): p for p in prospects}
    contacts_by_prospect = {}
    for contact in contacts:
        contacts_by_prospect.setdefault(_get(contact, "prospect_id"), []).append(contact)

    cards = []
    for route in routes:
        if _get(route, "route_id_name") == UNASSIGNED_ROUTE_NAME:
            continue
        prospect = prospects_by_id.get(_get(route, "prospect_id"))
        if prospect is None:
            prospect_name, status = "Unknown Opportunity", "Unknown"
        else:
            prospect_name = _get(prospect, "name")
            status = _latest_status(contacts_by_prospect.get(_get(prospect, "id")))
        filled, open_slots = route_fill(route, drivers)

        date_label, date_value = "Expected Start Date", _get(route, "date_assigned")
        if _get(route, "date_filled"):
            date_label, date_value = "Start Date", _get(route, "date_filled")

        cards.append({
            "id": _get(route, "id"),
            "prospect_id": _get(route, "prospect_id"),
            "prospect_name": prospect_name,
            "route_name": _get(route, "route_id_name"),
            "status": status,
            "drivers_needed": _get(route, "drivers_needed") or 0,
            "filled": filled,
            "open": open_slots,
            "date_label": date_label,
            "date_value": _iso(date_value),
        })
    cards.sort(key=lambda c: (c["prospect_name"] or "").lower())

    needle = (search or "").lower()
    return [
        card for card in cards
        if (not needle
            or needle in (card["prospect_name"] or "").lower()
            or needle in (card["route_name"] or "").lower())
        and (prospect_filter in (None, "", "All") or card["prospect_name"] == prospect_filter)
        and (status_filter in (None, "", "All") or card["status"] == status_filter)
    ]


# ─── Route editor (working copy) ───────────────────────────

def route_dict(route, drivers=()):
    data = store.serialize(route) if not isinstance(route, dict) else dict(route)
    data["pct_commission"] = pct_commission(data)
    data["days_to_fill"] = route_days_to_fill(data)
    data["drivers"] = [
        store.serialize(d) if not isinstance(d, dict) else dict(d)
        for d in drivers
        if _get(d, "prospect_route_id") == data["id"]
    ]
    return data


def managed_routes(prospect_id):
    """Deep working copy of a prospect's routes with their drivers nested."""
    routes = store.list_rows("prospect_routes", order_by="id", prospect_id=prospect_id)
    route_ids = [r.id for r in routes]
    drivers = []
    if route_ids:
        drivers = ProspectRouteDriver.query.filter(
            ProspectRouteDriver.prospect_route_id.in_(route_ids)
        ).all()
    return [route_dict(route, drivers) for route in routes]


@dataclass
class RouteSavePlan:
    creates: list = field(default_factory=list)
    updates: list = field(default_factory=list)
    deletes: list = field(default_factory=list)
    unassign_driver_ids: list = field(default_factory=list)


@dataclass
class StepResult:
    step: str
    ok: bool
    target: object = None
    error: str = None


@dataclass
class RouteSaveReport:
    steps: list = field(default_factory=list)

    @property
    def ok(self):
        return all(step.ok for step in self.steps)

    @property
    def failed_step(self):
        for step in self.steps:
            if not step.ok:
                return step
        return None

    def to_dict(self):
        failed = self.failed_step
        return {
            "ok": self.ok,
            "error": failed.error if failed else None,
            "steps": [
                {"step": s.step, "ok": s.ok, "target": s.target, "error": s.error}
                for s in self.steps
            ],
        }


def _route_payload(route, prospect_id=None):
    payload = {k: v for k, v in dict(route).items() if k not in LOCAL_ONLY_FIELDS}
    if prospect_id is not None:
        payload["prospect_id"] = prospect_id
    return payload


def _local_id(route):
    try:
        return int(_get(route, "id") or 0)
    except (TypeError, ValueError):
        return 0


def plan_route_save(original_routes, local_routes, drivers, prospect_id=None):
    """Diff the working copy against the stored routes. Pure.

    Positive ids must belong to `original_routes`; anything else is
    another prospect's route and is refused.
    """
    plan = RouteSavePlan()
    stored = {_get(r, "id") for r in original_routes}
    kept = set()
    for route in local_routes:
        route_id = _local_id(route)
        if route_id > 0:
            if route_id not in stored:
                raise ValidationError(f"Route {route_id} does not belong to this opportunity.")
            kept.add(route_id)
            plan.updates.append((route_id, _route_payload(route, prospect_id)))
        else:
            plan.creates.append(_route_payload(route, prospect_id))

    plan.deletes = [
        _get(r, "id") for r in original_routes if _get(r, "id") not in kept
    ]
    doomed = set(plan.deletes)
    plan.unassign_driver_ids = [
        _get(d, "id") for d in drivers if _get(d, "prospect_route_id") in doomed
    ]
    return plan


def execute_route_save(plan):
    """Run the plan step by step; stop at the first failure."""
    report = RouteSaveReport()

    def run(step, target, fn, *args):
        try:
            fn(*args)
        except (StoreError, ValidationError) as e:
            report.steps.append(StepResult(step, False, target, str(e)))
            logger.warning(f"Route save stopped at {step} ({target}): {e}")
            return False
        report.steps.append(StepResult(step, True, target))
        return True

    for driver_id in plan.unassign_driver_ids:
        if not run("unassign_driver", driver_id, unassign_driver, driver_id):
            return report
    if plan.creates:
        if not run("create_routes", len(plan.creates), store.insert_rows,
                   "prospect_routes", plan.creates):
            return report
    for route_id, payload in plan.updates:
        if not run("update_route", route_id, store.update_row,
                   "prospect_routes", route_id, payload):
            return report
    if plan.deletes:
        run("delete_routes", list(plan.deletes), store.delete_rows,
            "prospect_routes", plan.deletes)
    return report


def save_routes(prospect_id, local_routes):
    """Plan and run a save of one prospect's working copy."""
    if store.get_row("prospects", prospect_id) is None:
        raise ValidationError("Opportunity not found.")
    original = store.list_rows("prospect_routes", order_by="id", prospect_id=prospect_id)
    original_ids = [r.id for r in original]
    drivers = ProspectRouteDriver.query.filter(
        ProspectRouteDriver.prospect_route_id.in_(original_ids)
    ).all() if original_ids else []

    plan = plan_route_save(original, local_routes or [], drivers, prospect_id)
    report = execute_route_save(plan)
    logger.info(
        f"Routes saved for prospect {prospect_id}: {len(plan.creates)} created, "
        f"{len(plan.updates)} updated, {len(plan.deletes)} deleted, ok={report.ok}"
    )
    return report


# ─── Assignment ────────────────────────────────────────────

def assign_driver(driver_id, route_id):
    """Link a driver to a route; status always becomes Assigned."""
    if not route_id:
        raise ValidationError("A route is required to assign a driver.")
    driver = store.update_row(
        "prospect_route_drivers",
        driver_id,
        {"prospect_route_id": route_id, "status": DriverStatus.ASSIGNED.value},
    )
    if driver is None:
        raise ValidationError("Driver not found.")
    return driver


def unassign_driver(driver_id):
    """Move a driver to the Unassigned route with status Onboarded."""
    if not driver_id:
        raise ValidationError("Cannot unassign: Driver ID is missing or invalid.")
    driver = store.update_row(
        "prospect_route_drivers",
        driver_id,
        {
            "prospect_route_id": unassigned_route_id(),
            "status": DriverStatus.ONBOARDED.value,
        },
    )
    if driver is None:
        raise ValidationError("Driver not found.")
    return driver


def selectable_drivers(drivers, unassigned_id):
    """Drivers the assignment picker offers."""
    out = []
    for driver in drivers:
        status = _get(driver, "status")
        if status in SELECTABLE_STATUSES:
            out.append(driver)
        elif (status == DriverStatus.ASSIGNED.value
              and _get(driver, "prospect_route_id") == unassigned_id):
            out.append(driver)
    return out


# ─── E-mail ────────────────────────────────────────────────

def route_email(route, prospect_name):
    """Subject and body summarising one route."""
    location = ", ".join(p for p in (_get(route, "city"), _get(route, "state")) if p) or "N/A"
    assigned = _get(route, "date_assigned")
    subject = f"Route Details: {prospect_name} - {_get(route, 'route_id_name')}"
    body = "\n".join([
        f"Route Name: {_get(route, 'route_id_name')}",
        f"Opportunity: {prospect_name}",
        f"Location: {location}",
        f"Drivers Needed: {_get(route, 'drivers_needed') or 0}",
        f"Vehicle Type: {_get(route, 'vehicle_type') or 'N/A'}",
        f"Distance: {_get(route, 'distance') or '0'} miles",
        f"Price: ${_get(route, 'price') or '0'}",
        f"Commission: ${_get(route, 'commission') or '0'}",
        f"Working Hours: {_get(route, 'start_time') or ''} - {_get(route, 'end_time') or ''}",
        f"Date Assigned: {_iso(assigned)}",
    ])
    return subject, body


def email_route_details(route_id, recipient):
    if not recipient:
        raise ValidationError("Choose a recipient first.")
    route = store.get_row("prospect_routes", route_id)
    if route is None:
        raise ValidationError("Route not found.")
    subject, body = route_email(route, route.prospect.name if route.prospect else "Unknown")
    send_email(recipient, subject, body)
    logger.info(f"Route {route_id} details queued for {recipient}")
    return subject


def ensure_unassigned_route():
    """Create the "Unassigned" prospect and route when missing. Returns the route id."""
    existing = unassigned_route_id()
    if existing:
        return existing
    prospect = store.find_row("prospects", name=UNASSIGNED_ROUTE_NAME)
    if prospect is None:
        prospect = store.insert_rows("prospects", {"name": UNASSIGNED_ROUTE_NAME})[0]
    route = store.insert_rows(
        "prospect_routes",
        {"prospect_id": prospect.id, "route_id_name": UNASSIGNED_ROUTE_NAME, "drivers_needed": 0},
    )[0]
    logger.info(f"Created the {UNASSIGNED_ROUTE_NAME} route (id {route.id})")
    return route.id
