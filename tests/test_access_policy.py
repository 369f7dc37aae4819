from types import SimpleNamespace

import pytest

from claimdesk.models.user import Role
from claimdesk.services.access_policy import (
    GateAction,
    evaluate_gate,
    is_public_path,
    is_ungated_path,
    navigation_for,
)

ADMIN = SimpleNamespace(role=Role.ADMIN, organization_id="org1")
MANAGER = SimpleNamespace(role=Role.MANAGER, organization_id="org1")
INSPECTOR = SimpleNamespace(role=Role.INSPECTOR, organization_id="org1")

EXPECTED_ACCESS = {
    "/dashboard": {Role.ADMIN, Role.MANAGER, Role.INSPECTOR},
    "/dashboard/profile": {Role.ADMIN, Role.MANAGER, Role.INSPECTOR},
    "/dashboard/inspections": {Role.ADMIN, Role.MANAGER, Role.INSPECTOR},
    "/dashboard/claims": {Role.ADMIN, Role.MANAGER},
    "/dashboard/claims/42": {Role.ADMIN, Role.MANAGER},
    "/dashboard/users": {Role.ADMIN},
    "/dashboard/settings": {Role.ADMIN},
    "/dashboard/inspections/new": {Role.INSPECTOR},
    "/dashboard/team": {Role.ADMIN, Role.MANAGER},
}


@pytest.mark.parametrize("path", sorted(EXPECTED_ACCESS))
@pytest.mark.parametrize("claims", [ADMIN, MANAGER, INSPECTOR], ids=lambda c: c.role.value)
def test_gate_matches_capability_table(path, claims):
    decision = evaluate_gate(path, claims)

    if claims.role in EXPECTED_ACCESS[path]:
        assert decision.action == GateAction.PASS
    else:
        assert decision.action == GateAction.REDIRECT
        assert decision.location == "/dashboard"


def test_manager_is_sent_back_to_dashboard_from_users_page():
    decision = evaluate_gate("/dashboard/users", MANAGER)

    assert decision.action == GateAction.REDIRECT
    assert decision.location == "/dashboard"
    assert decision.reason == "role_denied"
    assert evaluate_gate("/dashboard/users", ADMIN).action == GateAction.PASS


def test_prefix_rules_stop_at_segment_boundary():
    assert evaluate_gate("/dashboard/usersettings", MANAGER).action == GateAction.PASS


@pytest.mark.parametrize("path", ["/", "/login", "/register", "/api/auth/session", "/api/test-db", "/health"])
def test_public_paths_pass_without_session(path):
    assert is_public_path(path)
    assert evaluate_gate(path, None).action == GateAction.PASS


@pytest.mark.parametrize(
    "path",
    ["/api/auth/csrf", "/_next/static/chunk.js", "/_next/image", "/favicon.ico", "/robots.txt", "/sitemap.xml"],
)
def test_matcher_excludes_auth_and_static_paths(path):
    assert is_ungated_path(path)


def test_protected_page_without_session_redirects_to_login_with_callback():
    decision = evaluate_gate("/dashboard/claims", None)

    assert decision.action == GateAction.REDIRECT
    assert decision.location == "/login?callbackUrl=%2Fdashboard%2Fclaims"


def test_protected_api_without_session_is_unauthorized():
    decision = evaluate_gate("/api/users", None)

    assert decision.action == GateAction.UNAUTHORIZED


def test_session_without_organization_is_treated_as_missing():
    orphan = SimpleNamespace(role=Role.ADMIN, organization_id=None)

    page = evaluate_gate("/dashboard", orphan)
    api = evaluate_gate("/api/users", orphan)

    assert page.action == GateAction.REDIRECT
    assert page.location.startswith("/login")
    assert page.reason == "missing_organization"
    assert api.action == GateAction.UNAUTHORIZED


def test_api_paths_have_no_page_role_rules():
    assert evaluate_gate("/api/users", INSPECTOR).action == GateAction.PASS


def test_navigation_follows_capability_table():
    admin_links = {item["href"] for item in navigation_for(Role.ADMIN)}
    manager_links = {item["href"] for item in navigation_for(Role.MANAGER)}
    inspector_links = {item["href"] for item in navigation_for(Role.INSPECTOR)}

    assert {"/dashboard/users", "/dashboard/settings", "/dashboard/claims", "/dashboard/team"} <= admin_links
    assert "/dashboard/inspections/new" not in admin_links
    assert "/dashboard/users" not in manager_links
    assert "/dashboard/claims" in manager_links
    assert {"/dashboard/inspections", "/dashboard/inspections/new"} <= inspector_links
    assert "/dashboard/claims" not in inspector_links
    assert "/dashboard/profile" in inspector_links
