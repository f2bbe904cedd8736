"""Tests for the route gate middleware."""

import pytest

from roost.auth.gate import (
    GateAction,
    RouteClass,
    classify_path,
    decide,
    has_prefix,
    is_excluded,
)
from roost.models.identity import Role
from roost.models.profile import Profile, TenantRecord


def _set_cookie_headers(response) -> list[str]:
    return response.headers.get_list("set-cookie")


def _cleared(response, name: str) -> bool:
    return any(
        h.startswith(f"{name}=") and "Max-Age=0" in h
        for h in _set_cookie_headers(response)
    )


# ---------------------------------------------------------------------------
# TestClassifyPath
# ---------------------------------------------------------------------------

class TestClassifyPath:
    """Path partition into public / auth-only / protected."""

    @pytest.mark.parametrize(
        "path",
        ["/", "/forgot-password", "/verify-email", "/auth/callback", "/auth/confirm",
         "/auth/login", "/auth/oauth/google", "/health"],
    )
    def test_public_paths(self, path):
        assert classify_path(path) == RouteClass.PUBLIC

    @pytest.mark.parametrize("path", ["/login", "/signup", "/login/"])
    def test_auth_only_paths(self, path):
        assert classify_path(path) == RouteClass.AUTH_ONLY

    @pytest.mark.parametrize(
        "path",
        ["/dashboard", "/dashboard/properties", "/authors", "/login-help", "/api/private"],
    )
    def test_everything_else_is_protected(self, path):
        assert classify_path(path) == RouteClass.PROTECTED


class TestExcludedPaths:
    """Static assets and the public API prefix bypass the gate."""

    @pytest.mark.parametrize(
        "path", ["/static/app.css", "/favicon.ico", "/public/logo.png", "/api/public/listings"]
    )
    def test_excluded(self, path):
        assert is_excluded(path, "/api/public")

    @pytest.mark.parametrize("path", ["/api/publicity", "/dashboard", "/statics"])
    def test_not_excluded(self, path):
        assert not is_excluded(path, "/api/public")

    def test_prefix_match_is_segment_aware(self):
        assert has_prefix("/api/public", "/api/public/")
        assert not has_prefix("/api/publicx", "/api/public")


class TestDecide:
    """The gate's decision table."""

    @pytest.mark.parametrize("has_session", [True, False])
    def test_public_always_allowed(self, has_session):
        decision = decide(RouteClass.PUBLIC, has_session, "/")
        assert decision.action == GateAction.ALLOW

    def test_auth_only_with_session_goes_to_dashboard(self):
        decision = decide(RouteClass.AUTH_ONLY, True, "/signup")
        assert decision.action == GateAction.REDIRECT
        assert decision.location == "/dashboard"

    def test_auth_only_without_session_allowed(self):
        assert decide(RouteClass.AUTH_ONLY, False, "/login").action == GateAction.ALLOW

    def test_protected_with_session_allowed(self):
        assert decide(RouteClass.PROTECTED, True, "/dashboard").action == GateAction.ALLOW

    def test_protected_without_session_redirects_with_original_path(self):
        decision = decide(RouteClass.PROTECTED, False, "/dashboard/leases")
        assert decision.action == GateAction.REDIRECT
        assert decision.location == "/login"
        assert decision.params == {"redirectTo": "/dashboard/leases"}


# ---------------------------------------------------------------------------
# TestRouteGateMiddleware
# ---------------------------------------------------------------------------

class TestRouteGateMiddleware:
    """End-to-end behaviour of RouteGate inside the app."""

    def test_anonymous_login_passes_through(self, client):
        response = client.get("/login")

        assert response.status_code == 200
        assert response.json()["page"] == "login"

    def test_anonymous_landing_passes_through(self, client):
        assert client.get("/").status_code == 200

    def test_protected_path_redirects_to_login(self, client):
        response = client.get("/dashboard/properties")

        assert response.status_code == 307
        assert response.headers["location"] == (
            "http://testserver/login?redirectTo=%2Fdashboard%2Fproperties"
        )

    def test_signed_in_user_bounced_from_signup(self, client, auth_service):
        identity = auth_service.add_user()
        session = auth_service.issue_session(identity)
        client.cookies.update(auth_service.cookies_for(session))

        response = client.get("/signup")

        assert response.status_code == 307
        assert response.headers["location"] == "http://testserver/dashboard"

    def test_signed_in_user_reaches_public_page(self, client, auth_service):
        session = auth_service.issue_session(auth_service.add_user())
        client.cookies.update(auth_service.cookies_for(session))

        assert client.get("/").status_code == 200

    def test_signed_in_user_reaches_protected_page(self, client, auth_service, fake_db):
        identity = auth_service.add_user(first_name="Ada")
        session = auth_service.issue_session(identity)
        client.cookies.update(auth_service.cookies_for(session))
        fake_db.profiles[identity.id] = Profile(id=identity.id, role=Role.TENANT, first_name="Ada")
        fake_db.tenants[identity.id] = TenantRecord(id=identity.id)

        response = client.get("/dashboard")

        assert response.status_code == 200
        assert response.json()["role"] == "tenant"

    def test_unknown_token_treated_as_no_session(self, client):
        client.cookies.update({"sb-access-token": "bogus", "sb-refresh-token": "bogus"})

        response = client.get("/dashboard")

        assert response.status_code == 307
        assert "redirectTo=%2Fdashboard" in response.headers["location"]

    def test_refreshed_tokens_forwarded_on_response(self, client, auth_service):
        identity = auth_service.add_user()
        session = auth_service.issue_session(identity)
        auth_service.expired.add(session.access_token)
        client.cookies.update(auth_service.cookies_for(session))

        response = client.get("/")

        assert response.status_code == 200
        access_headers = [
            h for h in _set_cookie_headers(response) if h.startswith("sb-access-token=")
        ]
        assert len(access_headers) == 1
        assert session.access_token not in access_headers[0]
        assert "Path=/" in access_headers[0]

    def test_resolution_failure_fails_closed(self, client, auth_service):
        auth_service.session_error = RuntimeError("provider unreachable")
        client.cookies.update({"sb-access-token": "a", "sb-refresh-token": "r"})

        response = client.get("/dashboard")

        assert response.status_code == 307
        assert response.headers["location"] == "http://testserver/login"
        assert _cleared(response, "sb-access-token")
        assert _cleared(response, "sb-refresh-token")

    def test_refresh_cookie_alone_restores_session(self, client, auth_service, fake_db):
        identity = auth_service.add_user()
        session = auth_service.issue_session(identity)
        fake_db.profiles[identity.id] = Profile(id=identity.id, role=Role.TENANT)
        fake_db.tenants[identity.id] = TenantRecord(id=identity.id)
        client.cookies.update({"sb-refresh-token": session.refresh_token})

        response = client.get("/dashboard")

        assert response.status_code == 200
        assert any(
            h.startswith("sb-access-token=") for h in _set_cookie_headers(response)
        )

    def test_handler_failure_fails_closed(self, client, auth_service, fake_db):
        session = auth_service.issue_session(auth_service.add_user())
        client.cookies.update(auth_service.cookies_for(session))
        fake_db.fail_on.add("get_profile")

        response = client.get("/dashboard")

        assert response.status_code == 307
        assert response.headers["location"] == (
            "http://testserver/login?error=unexpected_error"
        )
        assert _cleared(response, "sb-access-token")
        assert _cleared(response, "sb-refresh-token")

    def test_public_api_prefix_skips_session_lookup(self, client, auth_service):
        auth_service.session_error = RuntimeError("should not be called")

        response = client.get("/api/public/listings")

        # No route there, but the gate did not redirect
        assert response.status_code == 404
