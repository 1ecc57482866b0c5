"""Tests for the admin blueprint, help copy and the state snapshot.

Covers:
- User listing with effective roles
- Role assignment (insert when missing, update otherwise)
- Invalid roles rejected by the database CHECK with a hint
- Help content read (all roles) and write (admin only)
- /api/state contents and viewer redaction
"""

import pytest

from app.models.user import UserRole
from app.services.help_service import EMPTY_HELP


class TestUsers:

    def test_list_users(self, client, seed_data, login):
        login("admin@routes.local")
        resp = client.get("/admin/users")
        assert resp.status_code == 200
        roles = {u["email"]: u["role"] for u in resp.get_json()}
        assert roles["viewer@routes.local"] == "viewer"
        assert roles["dispatcher@routes.local"] == "dispatcher"
        assert roles["owner@routes.local"] == "admin"

    def test_promote_viewer_inserts_role_row(self, client, seed_data, login):
        viewer_id = seed_data["user_ids"]["viewer"]
        login("admin@routes.local")
        resp = client.put(f"/admin/users/{viewer_id}/role", json={"role": "Editor"})
        assert resp.status_code == 200
        assert resp.get_json()["role"] == "editor"
        assert UserRole.query.filter_by(user_id=viewer_id).one().role == "editor"

    def test_change_existing_role(self, client, seed_data, login):
        editor_id = seed_data["user_ids"]["editor"]
        login("admin@routes.local")
        client.put(f"/admin/users/{editor_id}/role", json={"role": "dispatcher"})
        assert UserRole.query.filter_by(user_id=editor_id).count() == 1

        resp = login("editor@routes.local")
        assert resp.get_json()["role"] == "dispatcher"

    def test_invalid_role_rejected(self, client, seed_data, login):
        editor_id = seed_data["user_ids"]["editor"]
        login("admin@routes.local")
        resp = client.put(f"/admin/users/{editor_id}/role", json={"role": "superuser"})
        assert resp.status_code == 400
        body = resp.get_json()
        assert body["code"] == "23514"
        assert "admin, editor, viewer, dispatcher" in body["hint"]
        assert UserRole.query.filter_by(user_id=editor_id).one().role == "editor"

    def test_missing_user(self, client, seed_data, login):
        login("admin@routes.local")
        resp = client.put("/admin/users/9999/role", json={"role": "editor"})
        assert resp.status_code == 404

    def test_empty_role(self, client, seed_data, login):
        login("admin@routes.local")
        resp = client.put(f"/admin/users/{seed_data['user_ids']['editor']}/role", json={})
        assert resp.status_code == 400

    def test_owner_override_reaches_admin_pages(self, client, seed_data, login):
        login("owner@routes.local")
        assert client.get("/admin/users").status_code == 200

    @pytest.mark.parametrize("email", [
        "editor@routes.local", "dispatcher@routes.local", "viewer@routes.local",
    ])
    def test_non_admins_rejected(self, client, seed_data, login, email):
        login(email)
        assert client.get("/admin/users").status_code == 403


class TestHelp:

    def test_default_help(self, client, seed_data, login):
        login("viewer@routes.local")
        resp = client.get("/api/help/routes")
        assert resp.status_code == 200
        assert resp.get_json()["content"] == EMPTY_HELP

    def test_admin_writes_help(self, client, seed_data, login):
        login("admin@routes.local")
        resp = client.put("/admin/help/routes", json={"content": "<p>Drag drivers.</p>"})
        assert resp.status_code == 200
        client.put("/admin/help/routes", json={"content": "<p>Updated.</p>"})

        login("viewer@routes.local")
        assert client.get("/api/help/routes").get_json()["content"] == "<p>Updated.</p>"

    def test_unknown_page(self, client, seed_data, login):
        login("admin@routes.local")
        resp = client.put("/admin/help/nowhere", json={"content": "x"})
        assert resp.status_code == 400

    def test_editor_cannot_write_help(self, client, seed_data, login):
        login("editor@routes.local")
        resp = client.put("/admin/help/routes", json={"content": "x"})
        assert resp.status_code == 403


class TestState:

    def test_editor_state(self, client, seed_data, login):
        login("editor@routes.local")
        resp = client.get("/api/state")
        assert resp.status_code == 200
        state = resp.get_json()

        assert state["role"] == "editor"
        assert state["unassigned_route_id"] == seed_data["unassigned_route_id"]
        assert len(state["prospect_route_drivers"]) == 3
        assert [o["name"] for o in state["options"]["status_options"]][:2] == [
            "Discovery", "Proposal",
        ]
        routes = {r["route_id_name"]: r for r in state["prospect_routes"]}
        assert routes["R-100"]["pct_commission"] == pytest.approx(15)
        assert {c["forecast"] for c in state["contacts"]} == {10000, 12000}

    def test_viewer_state_is_redacted(self, client, seed_data, login):
        login("viewer@routes.local")
        state = client.get("/api/state").get_json()

        assert state["permissions"]["can_write"] is False
        assert state["permissions"]["show_financials"] is False
        assert "admin" not in state["permissions"]["tabs"]
        assert all("forecast" not in c for c in state["contacts"])
        assert all("price" not in r for r in state["prospect_routes"])

    def test_dispatcher_tabs(self, client, seed_data, login):
        login("dispatcher@routes.local")
        tabs = client.get("/api/state").get_json()["permissions"]["tabs"]
        assert "prospects" not in tabs
        assert "routes" in tabs and "drivers" in tabs
