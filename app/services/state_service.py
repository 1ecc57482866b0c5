"""Application state snapshot — every collection the UI renders, in one read.

Clients refresh after each successful write by re-fetching this snapshot.
Viewers get it with financial fields removed.
"""

from dataclasses import asdict, dataclass, field

from app.models.options import OPTION_MODELS
from app.services import store
from app.services.help_service import all_help
from app.services.metrics import pct_commission
from app.services.role_service import (
    FINANCIAL_FIELDS,
    VIEWER,
    permissions_for,
    redact_financials,
)
from app.services.route_service import unassigned_route_id


@dataclass
class AppState:
    role: str
    permissions: dict
    prospects: list = field(default_factory=list)
    contacts: list = field(default_factory=list)
    documents: list = field(default_factory=list)
    prospect_routes: list = field(default_factory=list)
    prospect_route_drivers: list = field(default_factory=list)
    contact_changes: list = field(default_factory=list)
    options: dict = field(default_factory=dict)
    help_content: dict = field(default_factory=dict)
    unassigned_route_id: int = None

    def to_dict(self):
        data = asdict(self)
        for name in ("prospects", "contacts", "documents", "prospect_routes",
                     "prospect_route_drivers"):
            data[name] = redact_financials(data[name], self.role)
        if self.role == VIEWER:
            data["contact_changes"] = [
                row for row in data["contact_changes"]
                if row.get("field_name") not in FINANCIAL_FIELDS
            ]
        return data


def _rows(collection, **kwargs):
    return [store.serialize(row) for row in store.list_rows(collection, **kwargs)]


def load_state(role):
    routes = _rows("prospect_routes", order_by="id")
    for route in routes:
        route["pct_commission"] = pct_commission(route)

    return AppState(
        role=role,
        permissions=permissions_for(role),
        prospects=_rows("prospects", order_by="name"),
        contacts=_rows("contacts", order_by="contact_date", descending=True),
        documents=_rows("documents", order_by="created_at", descending=True),
        prospect_routes=routes,
        prospect_route_drivers=_rows("prospect_route_drivers", order_by="id"),
        contact_changes=_rows("contact_changes", order_by="created_at", descending=True),
        options={table: _rows(table, order_by="sort_order") for table in OPTION_MODELS},
        help_content=all_help(),
        unassigned_route_id=unassigned_route_id(routes),
    )
