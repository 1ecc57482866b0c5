"""Shared test fixtures for the Routes & Drivers test suite.

Provides:
- app: Flask app configured for testing (in-memory SQLite, CSRF off)
- client: Flask test client
- db_session: clean database per test (tables created/dropped)
- seed_data: one user per role, default options, the Unassigned route,
  a prospect with contacts, a route and two drivers
- login: helper that logs the test client in as a given email
"""

from datetime import date

import pytest
from werkzeug.security import generate_password_hash

from app import create_app
from app.extensions import db as _db
from app.models.contact import Contact
from app.models.prospect import Prospect
from app.models.route import ProspectRoute, ProspectRouteDriver
from app.models.user import User, UserRole
from app.services.option_service import seed_default_options
from app.services.route_service import ensure_unassigned_route

PASSWORD = "password123"

USERS = {
    "admin": "admin@routes.local",
    "editor": "editor@routes.local",
    "dispatcher": "dispatcher@routes.local",
    "viewer": "viewer@routes.local",
}

# Listed in TestConfig.ADMIN_OVERRIDE_EMAILS; stored role is viewer.
OWNER_EMAIL = "owner@routes.local"


@pytest.fixture(scope="session")
def app():
    """Create the Flask application configured for testing."""
    app = create_app("testing")
    yield app


@pytest.fixture(autouse=True)
def db_session(app):
    """Create all tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield _db.session
        _db.session.rollback()
        _db.drop_all()


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def login(client):
    """Return a function that logs the client in as `email`."""

    def _login(email, password=PASSWORD):
        return client.post("/auth/login", json={"email": email, "password": password})

    return _login


def make_user(email, role=None):
    user = User(
        email=email,
        password_hash=generate_password_hash(PASSWORD),
        full_name=email.split("@")[0].title(),
    )
    _db.session.add(user)
    _db.session.flush()
    if role:
        _db.session.add(UserRole(user_id=user.id, role=role))
    return user


@pytest.fixture
def seed_data(app, db_session):
    """Seed users, options and a small pipeline.

    Returns plain ids so tests can use them across request contexts.
    """
    users = {}
    for role, email in USERS.items():
        # Viewers have no role row.
        users[role] = make_user(email, None if role == "viewer" else role)
    owner = make_user(OWNER_EMAIL, "viewer")
    _db.session.commit()

    seed_default_options()
    unassigned_id = ensure_unassigned_route()

    # --- Prospect with two contacts ---
    prospect = Prospect(name="Acme Logistics", contact_name="Ann Acme", city="Dallas")
    _db.session.add(prospect)
    _db.session.flush()

    first = Contact(
        prospect_id=prospect.id,
        contact_name="Ann Acme",
        contact_date=date(2024, 1, 10),
        status="Discovery",
        forecast=10000,
        probability=20,
        gross_margin=30,
        notes="Intro call",
    )
    latest = Contact(
        prospect_id=prospect.id,
        contact_name="Ann Acme",
        contact_date=date(2024, 2, 15),
        status="Proposal",
        forecast=12000,
        probability=50,
        gross_margin=35,
        expected_closing=date(2024, 6, 30),
        notes="Sent proposal",
    )
    _db.session.add_all([first, latest])

    # --- Prospect without contacts ---
    empty = Prospect(name="Zeta Freight")
    _db.session.add(empty)
    _db.session.flush()

    # --- Route with drivers ---
    route = ProspectRoute(
        prospect_id=prospect.id,
        route_id_name="R-100",
        drivers_needed=3,
        date_assigned=date(2024, 3, 1),
        city="Dallas",
        state="TX",
        price=1000,
        commission=150,
    )
    _db.session.add(route)
    _db.session.flush()

    assigned = ProspectRouteDriver(
        prospect_route_id=route.id,
        driver_name="Dan Driver",
        status="Assigned",
        city="Dallas",
        state="TX",
        date_added=date(2024, 1, 1),
        date_onboarded=date(2024, 1, 11),
    )
    terminated = ProspectRouteDriver(
        prospect_route_id=route.id,
        driver_name="Terry Gone",
        status="Terminated",
        city="Austin",
        state="TX",
    )
    recruit = ProspectRouteDriver(
        prospect_route_id=None,
        driver_name="Rita Recruit",
        status="Recruiting",
        city="Houston",
        state="TX",
    )
    _db.session.add_all([assigned, terminated, recruit])
    _db.session.commit()

    return {
        "user_ids": {role: user.id for role, user in users.items()},
        "owner_id": owner.id,
        "unassigned_route_id": unassigned_id,
        "prospect_id": prospect.id,
        "empty_prospect_id": empty.id,
        "first_contact_id": first.id,
        "latest_contact_id": latest.id,
        "route_id": route.id,
        "assigned_driver_id": assigned.id,
        "terminated_driver_id": terminated.id,
        "recruit_driver_id": recruit.id,
    }
