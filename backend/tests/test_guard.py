"""
Session guard tests.

Verifies:
- The navigational decision table (public / protected / root paths)
- The one-shot loop-guard marker on /login
- API routes answer 401 instead of redirecting
- Role gating on top of authentication
"""

import pytest
from flask import Flask

from mua_admin.decorators import require_auth, require_role
from mua_admin.errors import register_error_handlers
from mua_admin.guard import (
    DASHBOARD_PATH,
    LOGIN_PATH,
    PATH_EXEMPT,
    PATH_PROTECTED,
    PATH_PUBLIC,
    PATH_ROOT,
    classify_path,
    decide,
)
from mua_admin.services.token_service import UserView, encode_token

from conftest import TEST_SECRET, bearer


# =============================================================================
# DECISION TABLE
# =============================================================================


class TestClassifyPath:

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("/", PATH_ROOT),
            ("/login", PATH_PUBLIC),
            ("/login/", PATH_PUBLIC),
            ("/dashboard", PATH_PROTECTED),
            ("/dashboard/orders/3", PATH_PROTECTED),
            ("/api/orders", PATH_EXEMPT),
            ("/api", PATH_EXEMPT),
            ("/static/logo.png", PATH_EXEMPT),
        ],
    )
    def test_classification(self, path, expected):
        assert classify_path(path) == expected


class TestDecide:

    def test_public_unauthenticated_allows(self):
        assert decide("/login", authenticated=False).allowed

    def test_public_authenticated_redirects_to_dashboard_with_marker(self):
        decision = decide("/login", authenticated=True)
        assert decision.redirect_to == DASHBOARD_PATH
        assert decision.set_marker

    def test_public_authenticated_after_redirect_allows_and_clears(self):
        decision = decide("/login", authenticated=True, just_redirected=True)
        assert decision.allowed
        assert decision.clear_marker

    def test_protected_authenticated_allows(self):
        assert decide("/dashboard/clients", authenticated=True).allowed

    def test_protected_unauthenticated_redirects_with_next(self):
        decision = decide("/dashboard/clients", authenticated=False)
        assert decision.redirect_to == "/login?next=%2Fdashboard%2Fclients"

    def test_root_routes_by_session(self):
        assert decide("/", authenticated=True).redirect_to == DASHBOARD_PATH
        assert decide("/", authenticated=False).redirect_to == LOGIN_PATH

    def test_api_paths_are_never_redirected(self):
        assert decide("/api/orders", authenticated=False).allowed


# =============================================================================
# REQUEST HOOK
# =============================================================================


class TestNavigation:

    def test_unauthenticated_dashboard_redirects_to_login(self, client, db_session):
        resp = client.get("/dashboard")
        assert resp.status_code == 302
        assert resp.headers["Location"].endswith("/login?next=%2Fdashboard")

    def test_unauthenticated_login_page_is_served(self, client, db_session):
        resp = client.get("/login?next=/dashboard")
        assert resp.status_code == 200
        assert resp.json == {"page": "login", "next": "/dashboard"}

    def test_authenticated_dashboard_is_served(self, client, auth_headers):
        resp = client.get("/dashboard", headers=auth_headers)
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == "admin"

    def test_root_redirects(self, client, auth_headers):
        assert client.get("/").headers["Location"].endswith("/login")
        assert client.get("/", headers=auth_headers).headers["Location"].endswith("/dashboard")

    def test_expired_token_counts_as_anonymous(self, client, admin_user):
        stale = encode_token(UserView.from_user(admin_user), issued_at_ms=0)
        resp = client.get("/dashboard", headers=bearer(stale))
        assert resp.status_code == 302

    def test_loop_guard_marker_is_one_shot(self, client, auth_headers):
        first = client.get("/login", headers=auth_headers)
        assert first.status_code == 302
        assert first.headers["Location"].endswith("/dashboard")
        marker = [c for c in first.headers.getlist("Set-Cookie") if c.startswith("auth_redirected=1")]
        assert marker and "Max-Age=10" in marker[0] and "HttpOnly" in marker[0]

        # The client jar now carries the marker: /login is let through once
        second = client.get("/login", headers=auth_headers)
        assert second.status_code == 200
        cleared = [c for c in second.headers.getlist("Set-Cookie") if c.startswith("auth_redirected=")]
        assert cleared and "Max-Age=0" in cleared[0]

        # Marker consumed: back to the normal redirect
        third = client.get("/login", headers=auth_headers)
        assert third.status_code == 302


# =============================================================================
# API AUTH
# =============================================================================


class TestApiAuthentication:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/check"),
            ("GET", "/api/clients"),
            ("POST", "/api/clients"),
            ("GET", "/api/products"),
            ("GET", "/api/appointments"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("POST", "/api/orders/1/payments"),
            ("GET", "/api/orders/1/payments"),
            ("POST", "/api/orders/1/generate-invoice"),
            ("GET", "/api/invoices"),
            ("PATCH", "/api/invoices/1/due-date"),
            ("GET", "/api/dashboard"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = client.open(path, method=method, json={})
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json == {"error": "Unauthorized"}

    def test_tampered_token_is_unauthorized(self, client, auth_headers):
        token = auth_headers["Authorization"].split(" ", 1)[1]
        tampered = token[:-2] + ("A" if token[-2] != "A" else "B") + token[-1]
        resp = client.get("/api/clients", headers=bearer(tampered))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["checks"]["database"]["status"] == "healthy"


class TestRequireRole:

    @pytest.fixture
    def role_app(self):
        app = Flask(__name__)
        app.config.update(
            SESSION_SECRET=TEST_SECRET,
            AUTH_COOKIE_NAME="auth_token",
            TOKEN_TTL_MS=24 * 60 * 60 * 1000,
        )
        register_error_handlers(app)

        @app.get("/owner-only")
        @require_auth
        @require_role("owner")
        def owner_only():
            return {"ok": True}

        return app

    def _headers(self, app, role):
        with app.app_context():
            token = encode_token(UserView(id=1, username="u", email="u@x", name="U", role=role))
        return bearer(token)

    def test_wrong_role_is_forbidden(self, role_app):
        resp = role_app.test_client().get("/owner-only", headers=self._headers(role_app, "admin"))
        assert resp.status_code == 403
        assert resp.json == {"error": "Forbidden: Insufficient permissions"}

    def test_matching_role_passes(self, role_app):
        resp = role_app.test_client().get("/owner-only", headers=self._headers(role_app, "owner"))
        assert resp.status_code == 200

    def test_anonymous_is_unauthorized(self, role_app):
        assert role_app.test_client().get("/owner-only").status_code == 401
