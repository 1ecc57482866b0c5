"""Tests for route staffing — cards, batch save and assignment.

Covers:
- Fill counts exclude Terminated / Rejected drivers
- Route cards (sentinel hidden, latest status, date label)
- Save plan diff by id sign
- Saga execution order and stop-at-first-failure
- Assign / unassign side effects
- Selector candidates
- Route endpoints and e-mail
"""

from unittest.mock import patch

import pytest

from app.models.route import ProspectRoute, ProspectRouteDriver
from app.services import route_service, store
from app.services.errors import StoreError, ValidationError
from app.services.route_service import (
    RouteSavePlan,
    execute_route_save,
    plan_route_save,
    route_fill,
    selectable_drivers,
)


class TestRouteFill:

    def test_inactive_drivers_do_not_fill(self):
        route = {"id": 1, "drivers_needed": 3}
        drivers = [
            {"prospect_route_id": 1, "status": "Assigned"},
            {"prospect_route_id": 1, "status": "Terminated"},
            {"prospect_route_id": 1, "status": "Rejected"},
            {"prospect_route_id": 2, "status": "Assigned"},
        ]
        assert route_fill(route, drivers) == (1, 2)

    def test_open_never_negative(self):
        route = {"id": 1, "drivers_needed": 1}
        drivers = [{"prospect_route_id": 1, "status": "Assigned"}] * 3
        assert route_fill(route, drivers) == (3, 0)


class TestRouteCards:

    def test_cards(self):
        routes = [
            {"id": 1, "prospect_id": 1, "route_id_name": "Unassigned", "drivers_needed": 0},
            {"id": 2, "prospect_id": 3, "route_id_name": "Z-1", "drivers_needed": 2,
             "date_assigned": "2024-03-01", "date_filled": None},
            {"id": 3, "prospect_id": 2, "route_id_name": "A-1", "drivers_needed": 1,
             "date_assigned": "2024-03-01", "date_filled": "2024-03-09"},
        ]
        prospects = [{"id": 1, "name": "Unassigned"}, {"id": 2, "name": "Beta"},
                     {"id": 3, "name": "Alpha"}]
        contacts = [
            {"prospect_id": 2, "contact_date": "2024-01-01", "status": "Discovery"},
            {"prospect_id": 2, "contact_date": "2024-02-01", "status": "Won"},
        ]
        drivers = [{"prospect_route_id": 3, "status": "Assigned"}]

        cards = route_service.route_cards(routes, prospects, contacts, drivers)
        assert [c["prospect_name"] for c in cards] == ["Alpha", "Beta"]
        alpha, beta = cards
        assert alpha["status"] == "New"
        assert alpha["date_label"] == "Expected Start Date"
        assert beta["status"] == "Won"
        assert beta["date_label"] == "Start Date"
        assert (beta["filled"], beta["open"]) == (1, 0)

    def test_card_filters(self):
        routes = [{"id": 2, "prospect_id": 2, "route_id_name": "North", "drivers_needed": 1}]
        prospects = [{"id": 2, "name": "Beta"}]
        cards = route_service.route_cards(routes, prospects, [], [], search="south")
        assert cards == []
        cards = route_service.route_cards(routes, prospects, [], [], search="nor")
        assert len(cards) == 1


class TestPlanRouteSave:

    def test_diff_by_id_sign(self):
        original = [
            {"id": 1, "route_id_name": "Keep", "prospect_id": 5},
            {"id": 2, "route_id_name": "Drop", "prospect_id": 5},
        ]
        local = [
            {"id": 1, "route_id_name": "Keep (renamed)", "prospect_id": 5, "drivers": [],
             "pct_commission": 10},
            {"id": -1, "route_id_name": "Brand new", "drivers": []},
        ]
        drivers = [
            {"id": 10, "prospect_route_id": 2},
            {"id": 11, "prospect_route_id": 2},
            {"id": 12, "prospect_route_id": 1},
        ]
        plan = plan_route_save(original, local, drivers, prospect_id=5)

        assert len(plan.creates) == 1
        assert plan.creates[0] == {"route_id_name": "Brand new", "prospect_id": 5}
        assert plan.updates == [(1, {"route_id_name": "Keep (renamed)", "prospect_id": 5})]
        assert plan.deletes == [2]
        assert plan.unassign_driver_ids == [10, 11]

    def test_unchanged_working_copy_updates_only(self):
        original = [{"id": 1, "route_id_name": "A"}]
        plan = plan_route_save(original, original, [])
        assert plan.creates == [] and plan.deletes == []
        assert len(plan.updates) == 1

    def test_foreign_route_id_refused(self):
        original = [{"id": 1, "route_id_name": "Mine", "prospect_id": 5}]
        local = [{"id": 7, "route_id_name": "Someone else's", "prospect_id": 9}]
        with pytest.raises(ValidationError):
            plan_route_save(original, local, [], prospect_id=5)

    def test_update_always_targets_saved_prospect(self):
        original = [{"id": 1, "route_id_name": "Mine", "prospect_id": 5}]
        local = [{"id": 1, "route_id_name": "Mine", "prospect_id": 9}]
        plan = plan_route_save(original, local, [], prospect_id=5)
        assert plan.updates == [(1, {"route_id_name": "Mine", "prospect_id": 5})]


class TestExecuteRouteSave:

    def _plan(self):
        return RouteSavePlan(
            creates=[{"route_id_name": "New", "prospect_id": 5}],
            updates=[(1, {"route_id_name": "Keep"})],
            deletes=[2],
            unassign_driver_ids=[10, 11],
        )

    def test_step_order(self):
        calls = []
        with patch.object(route_service, "unassign_driver",
                          side_effect=lambda i: calls.append(("unassign", i))), \
             patch.object(route_service.store, "insert_rows",
                          side_effect=lambda c, rows: calls.append(("create", len(rows)))), \
             patch.object(route_service.store, "update_row",
                          side_effect=lambda c, i, p: calls.append(("update", i))), \
             patch.object(route_service.store, "delete_rows",
                          side_effect=lambda c, ids: calls.append(("delete", list(ids)))):
            report = execute_route_save(self._plan())

        assert report.ok
        assert calls == [
            ("unassign", 10), ("unassign", 11), ("create", 1), ("update", 1), ("delete", [2]),
        ]

    def test_stops_at_first_failure(self):
        calls = []

        def failing_update(collection, route_id, payload):
            raise StoreError("Error updating prospect_routes: boom")

        with patch.object(route_service, "unassign_driver",
                          side_effect=lambda i: calls.append(("unassign", i))), \
             patch.object(route_service.store, "insert_rows",
                          side_effect=lambda c, rows: calls.append(("create", len(rows)))), \
             patch.object(route_service.store, "update_row", side_effect=failing_update), \
             patch.object(route_service.store, "delete_rows",
                          side_effect=lambda c, ids: calls.append(("delete", ids))):
            report = execute_route_save(self._plan())

        assert not report.ok
        assert report.failed_step.step == "update_route"
        assert ("delete", [2]) not in calls
        assert ("create", 1) in calls
        assert report.to_dict()["error"] == "Error updating prospect_routes: boom"


class TestAssignment:

    def test_assign_sets_status(self, seed_data):
        driver = route_service.assign_driver(seed_data["recruit_driver_id"], seed_data["route_id"])
        assert driver.status == "Assigned"
        assert driver.prospect_route_id == seed_data["route_id"]

    def test_assign_requires_route(self, seed_data):
        with pytest.raises(ValidationError, match="route is required"):
            route_service.assign_driver(seed_data["recruit_driver_id"], None)

    def test_unassign_moves_to_sentinel(self, seed_data):
        driver = route_service.unassign_driver(seed_data["assigned_driver_id"])
        assert driver.status == "Onboarded"
        assert driver.prospect_route_id == seed_data["unassigned_route_id"]

    def test_selectable_drivers(self):
        drivers = [
            {"id": 1, "status": "Recruiting", "prospect_route_id": None},
            {"id": 2, "status": "Assigned", "prospect_route_id": 9},
            {"id": 3, "status": "Assigned", "prospect_route_id": 4},
            {"id": 4, "status": "Terminated", "prospect_route_id": None},
            {"id": 5, "status": "Onboarded", "prospect_route_id": 4},
        ]
        picked = selectable_drivers(drivers, unassigned_id=9)
        assert [d["id"] for d in picked] == [1, 2, 5]


class TestSaveRoutes:

    def test_save_routes_end_to_end(self, seed_data):
        prospect_id = seed_data["prospect_id"]
        working = route_service.managed_routes(prospect_id)
        assert len(working) == 1
        assert working[0]["pct_commission"] == pytest.approx(15)
        assert len(working[0]["drivers"]) == 2

        # Delete the existing route, add a new one.
        report = route_service.save_routes(
            prospect_id, [{"id": -1, "route_id_name": "R-200", "drivers_needed": 2}]
        )
        assert report.ok
        names = [r.route_id_name for r in ProspectRoute.query.filter_by(prospect_id=prospect_id)]
        assert names == ["R-200"]

        moved = store.get_row("prospect_route_drivers", seed_data["assigned_driver_id"])
        assert moved.prospect_route_id == seed_data["unassigned_route_id"]
        assert moved.status == "Onboarded"

    def test_drivers_survive_route_delete(self, seed_data):
        route_service.save_routes(seed_data["prospect_id"], [])
        assert ProspectRouteDriver.query.count() == 3


class TestRouteEndpoints:

    def test_cards_endpoint(self, client, seed_data, login):
        login("dispatcher@routes.local")
        resp = client.get("/routes")
        assert resp.status_code == 200
        cards = resp.get_json()
        assert [c["route_name"] for c in cards] == ["R-100"]
        assert cards[0]["filled"] == 1
        assert cards[0]["open"] == 2
        assert cards[0]["status"] == "Proposal"

    def test_working_copy_redacted_for_viewer(self, client, seed_data, login):
        login("viewer@routes.local")
        resp = client.get(f"/routes/prospect/{seed_data['prospect_id']}")
        route = resp.get_json()[0]
        assert "price" not in route
        assert "pct_commission" not in route
        assert route["route_id_name"] == "R-100"

    def test_save_endpoint(self, client, seed_data, login):
        login("dispatcher@routes.local")
        route_id = seed_data["route_id"]
        resp = client.put(
            f"/routes/prospect/{seed_data['prospect_id']}",
            json={"routes": [
                {"id": route_id, "route_id_name": "R-100", "drivers_needed": 5,
                 "drivers": [], "days_to_fill": 3},
                {"id": -1, "route_id_name": "R-101", "drivers_needed": 1},
            ]},
        )
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["ok"] is True
        assert [s["step"] for s in body["steps"]] == ["create_routes", "update_route"]
        assert store.get_row("prospect_routes", route_id).drivers_needed == 5

    def test_cannot_take_over_another_prospects_route(self, client, seed_data, login):
        login("editor@routes.local")
        route_id = seed_data["route_id"]
        resp = client.put(
            f"/routes/prospect/{seed_data['empty_prospect_id']}",
            json={"routes": [{"id": route_id, "route_id_name": "Renamed"}]},
        )
        assert resp.status_code == 400
        route = store.get_row("prospect_routes", route_id)
        assert route.route_id_name == "R-100"
        assert route.prospect_id == seed_data["prospect_id"]

    def test_viewer_cannot_save(self, client, seed_data, login):
        login("viewer@routes.local")
        resp = client.put(f"/routes/prospect/{seed_data['prospect_id']}", json={"routes": []})
        assert resp.status_code == 403

    def test_email_route(self, client, seed_data, login):
        login("editor@routes.local")
        with patch("app.services.route_service.send_email") as mock_send:
            resp = client.post(
                f"/routes/{seed_data['route_id']}/email",
                json={"recipient": "ops@example.com"},
            )
        assert resp.status_code == 200
        to, subject, body = mock_send.call_args[0]
        assert to == "ops@example.com"
        assert subject == "Route Details: Acme Logistics - R-100"
        assert "Drivers Needed: 3" in body

    def test_email_route_needs_recipient(self, client, seed_data, login):
        login("editor@routes.local")
        resp = client.post(f"/routes/{seed_data['route_id']}/email", json={})
        assert resp.status_code == 400
