"""Security tests — headers, JSON errors and role boundaries.

Tests:
- Security headers are present on responses
- Errors always come back as JSON
- Role boundaries on write and delete endpoints
- Rate limiting configuration
"""

import pytest
from flask_limiter import Limiter

from app.extensions import limiter


class TestSecurityHeaders:
    """Verify security headers are present on responses."""

    def test_x_content_type_options(self, app, client):
        """X-Content-Type-Options: nosniff should be set."""
        response = client.get("/health")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"

    def test_x_frame_options(self, app, client):
        """X-Frame-Options: DENY should be set."""
        response = client.get("/health")
        assert response.headers.get("X-Frame-Options") == "DENY"

    def test_referrer_policy(self, app, client):
        response = client.get("/health")
        assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"

    def test_permissions_policy(self, app, client):
        """Permissions-Policy should restrict browser features."""
        pp = client.get("/health").headers.get("Permissions-Policy")
        assert pp is not None
        assert "camera=()" in pp
        assert "microphone=()" in pp

    def test_csp_header(self, app, client):
        """The API serves no scripts; only storage images are allowed."""
        csp = client.get("/health").headers.get("Content-Security-Policy")
        assert "default-src 'none'" in csp
        assert "supabase.co" in csp
        assert "frame-ancestors 'none'" in csp

    def test_no_hsts_in_debug(self, app, client):
        """HSTS should NOT be set in debug/test mode."""
        response = client.get("/health")
        assert response.headers.get("Strict-Transport-Security") is None

    def test_headers_on_error_pages(self, app, client):
        """Security headers should be present even on 404 pages."""
        response = client.get("/nonexistent-page")
        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("X-Frame-Options") == "DENY"


class TestJsonErrors:
    """Every failure leaves the API as {"error": ...}."""

    def test_not_found(self, client):
        response = client.get("/nonexistent-page")
        assert response.status_code == 404
        assert response.get_json() == {"error": "Not found."}

    def test_method_not_allowed(self, client):
        response = client.delete("/health")
        assert response.status_code == 405
        assert response.get_json()["error"] == "Method not allowed."

    def test_forbidden_is_json(self, client, seed_data, login):
        login("viewer@routes.local")
        response = client.post("/drivers", json={"driver_name": "x"})
        assert response.status_code == 403
        assert response.get_json()["error"] == "You do not have permission to do that."

    def test_health(self, client):
        assert client.get("/health").get_json() == {"status": "ok"}


class TestRoleBoundaries:
    """Each role reaches exactly the commands it is allowed."""

    @pytest.mark.parametrize("email,expected", [
        ("admin@routes.local", 200),
        ("editor@routes.local", 403),
        ("dispatcher@routes.local", 403),
        ("viewer@routes.local", 403),
    ])
    def test_delete_driver(self, client, seed_data, login, email, expected):
        login(email)
        response = client.delete(f"/drivers/{seed_data['recruit_driver_id']}")
        assert response.status_code == expected

    @pytest.mark.parametrize("email,expected", [
        ("admin@routes.local", 200),
        ("editor@routes.local", 200),
        ("dispatcher@routes.local", 200),
        ("viewer@routes.local", 403),
    ])
    def test_edit_driver(self, client, seed_data, login, email, expected):
        login(email)
        response = client.put(
            f"/drivers/{seed_data['recruit_driver_id']}", json={"notes": "called"}
        )
        assert response.status_code == expected

    def test_dispatcher_cannot_reach_prospect_writes(self, client, seed_data, login):
        login("dispatcher@routes.local")
        response = client.put(f"/prospects/{seed_data['prospect_id']}", json={"name": "x"})
        assert response.status_code == 403


class TestRateLimiting:
    """Verify rate limiting is configured (though disabled in tests via RATELIMIT_ENABLED=False)."""

    def test_rate_limiter_initialized(self, app):
        """The shared limiter exists and is switched off for tests."""
        assert isinstance(limiter, Limiter)
        assert app.config.get("RATELIMIT_ENABLED") is False
