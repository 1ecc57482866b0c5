"""Local development entry point for the routes and drivers API.

Usage:
    python run.py
    ROUTEDESK_PORT=8000 python run.py

Creates any missing tables and the Unassigned route, then fills empty
option lists so a fresh SQLite database is usable straight away.
Use `flask seed-admin` to create the first admin.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from app import create_app
from app.extensions import db
from app.services.option_service import seed_default_options
from app.services.route_service import ensure_unassigned_route

logger = logging.getLogger(__name__)

app = create_app()

with app.app_context():
    db.create_all()
    ensure_unassigned_route()
    added = {table: count for table, count in seed_default_options().items() if count}
    if added:
        logger.info(f"Seeded default options: {added}")

if __name__ == "__main__":
    app.run(
        debug=True,
        host=os.environ.get("ROUTEDESK_HOST", "127.0.0.1"),
        port=int(os.environ.get("ROUTEDESK_PORT", "5001")),
    )
