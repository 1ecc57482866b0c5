"""Route staffing models.

ProspectRoute is a staffing slot for a prospect with a driver-count target.
ProspectRouteDriver is a recruiting candidate, optionally linked to a route.
Each data set keeps one route named "Unassigned" as the bucket for drivers
without a real route.
"""

from app.extensions import db

UNASSIGNED_ROUTE_NAME = "Unassigned"


class ProspectRoute(db.Model):
    __tablename__ = "prospect_routes"

    id = db.Column(db.Integer, primary_key=True)
    prospect_id = db.Column(
        db.Integer,
        db.ForeignKey("prospects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    route_id_name = db.Column(db.String(255), nullable=False)
    drivers_needed = db.Column(db.Integer, nullable=False, default=0)
    date_assigned = db.Column(db.Date, nullable=True)
    date_filled = db.Column(db.Date, nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    distance = db.Column(db.Float, nullable=True)  # miles
    price = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    commission = db.Column(db.Numeric(12, 2, asdecimal=False), nullable=True)
    vehicle_type = db.Column(db.String(120), nullable=True)
    start_time = db.Column(db.String(20), nullable=True)  # HH:MM
    end_time = db.Column(db.String(20), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    # --- Relationships ---
    prospect = db.relationship("Prospect", back_populates="routes")
    # No delete cascade: removing a route nulls its drivers' link.
    drivers = db.relationship(
        "ProspectRouteDriver", back_populates="route", lazy="dynamic"
    )

    @property
    def is_unassigned_bucket(self):
        return self.route_id_name == UNASSIGNED_ROUTE_NAME

    def __repr__(self):
        return f"<ProspectRoute {self.route_id_name}>"


class ProspectRouteDriver(db.Model):
    __tablename__ = "prospect_route_drivers"

    id = db.Column(db.Integer, primary_key=True)
    prospect_route_id = db.Column(
        db.Integer,
        db.ForeignKey("prospect_routes.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    driver_name = db.Column(db.String(255), nullable=True)
    driver_number = db.Column(db.String(50), nullable=True)
    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(50), nullable=True)
    zipcode = db.Column(db.String(20), nullable=True)
    phone_number = db.Column(db.String(50), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(120), nullable=True)
    status = db.Column(db.String(120), nullable=False, default="Recruiting")
    recruited_by = db.Column(db.String(120), nullable=True)
    vehicle_type = db.Column(db.String(120), nullable=True)

    # --- Dates ---
    date_added = db.Column(db.Date, nullable=True)
    date_hired = db.Column(db.Date, nullable=True)
    date_onboarded = db.Column(db.Date, nullable=True)
    date_terminated = db.Column(db.Date, nullable=True)

    # --- Derived on save ---
    days_to_fill = db.Column(db.Integer, nullable=True)
    retention = db.Column(db.Integer, nullable=True)

    # --- Compliance ---
    paperwork_in = db.Column(db.String(3), nullable=True)  # Yes | No
    drug_bg_check = db.Column(db.String(3), nullable=True)  # Yes | No
    reason_terminated = db.Column(db.String(255), nullable=True)
    reason_rejected = db.Column(db.String(255), nullable=True)

    # --- Status audit triple ---
    status_changed_from = db.Column(db.String(120), nullable=True)
    status_changed_to = db.Column(db.String(120), nullable=True)
    status_change_date = db.Column(db.Date, nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )

    route = db.relationship("ProspectRoute", back_populates="drivers")

    def __repr__(self):
        return f"<ProspectRouteDriver {self.driver_name} ({self.status})>"
