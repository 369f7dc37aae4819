"""Path classification and the role capability table.

The same table drives the request gate, the per-page handler checks and the
dashboard navigation, so the role rules live in exactly one place.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import FrozenSet, Optional, Tuple
from urllib.parse import quote

from claimdesk.models.user import Role

LOGIN_PATH = "/login"
DASHBOARD_PATH = "/dashboard"

ALL_ROLES: FrozenSet[Role] = frozenset(Role)

# Never intercepted by the gate (auth endpoints and static assets).
UNGATED_PREFIXES: Tuple[str, ...] = (
    "/api/auth",
    "/_next/static",
    "/_next/image",
    "/static",
    "/favicon.ico",
    "/robots.txt",
    "/sitemap.xml",
)

PUBLIC_PREFIXES: Tuple[str, ...] = ("/login", "/register", "/api/auth", "/docs", "/redoc")
PUBLIC_PATHS: FrozenSet[str] = frozenset({"/", "/api/test-db", "/health", "/openapi.json"})


class GateAction(str, enum.Enum):
    PASS = "pass"
    REDIRECT = "redirect"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class GateDecision:
    action: GateAction
    location: Optional[str] = None
    reason: Optional[str] = None


@dataclass(frozen=True)
class RouteRule:
    prefix: str
    roles: FrozenSet[Role]
    redirect_to: str = DASHBOARD_PATH

    def matches(self, path: str) -> bool:
        return path == self.prefix or path.startswith(f"{self.prefix}/")


# First match wins.
ROUTE_RULES: Tuple[RouteRule, ...] = (
    RouteRule("/dashboard/claims", frozenset({Role.MANAGER, Role.ADMIN})),
    RouteRule("/dashboard/users", frozenset({Role.ADMIN})),
    RouteRule("/dashboard/settings", frozenset({Role.ADMIN})),
    RouteRule("/dashboard/inspections/new", frozenset({Role.INSPECTOR})),
    RouteRule("/dashboard/team", frozenset({Role.MANAGER, Role.ADMIN})),
)


@dataclass(frozen=True)
class NavItem:
    href: str
    label: str
    # None: visible to whoever the capability table lets through
    roles: Optional[FrozenSet[Role]] = None

    def visible_to(self, role: Role) -> bool:
        allowed = self.roles if self.roles is not None else roles_for_path(self.href)
        return role in allowed


NAVIGATION: Tuple[NavItem, ...] = (
    NavItem(DASHBOARD_PATH, "Dashboard"),
    NavItem("/dashboard/profile", "My Profile"),
    NavItem("/dashboard/inspections", "Items", roles=frozenset({Role.INSPECTOR})),
    NavItem("/dashboard/inspections/new", "Add Item"),
    NavItem("/dashboard/claims", "Claims"),
    NavItem("/dashboard/team", "Team"),
    NavItem("/dashboard/users", "Users"),
    NavItem("/dashboard/settings", "Settings"),
)


def is_ungated_path(path: str) -> bool:
    return path.startswith(UNGATED_PREFIXES)


def is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def match_route_rule(path: str) -> RouteRule | None:
    for rule in ROUTE_RULES:
        if rule.matches(path):
            return rule
    return None


def roles_for_path(path: str) -> FrozenSet[Role]:
    rule = match_route_rule(path)
    return rule.roles if rule is not None else ALL_ROLES


def can_access_path(role: Role | None, path: str) -> bool:
    return role is not None and role in roles_for_path(path)


def build_login_redirect(path: str) -> str:
    return f"{LOGIN_PATH}?callbackUrl={quote(path, safe='')}"


def evaluate_gate(path: str, claims) -> GateDecision:
    """Decide what happens to a request before any handler runs.

    `claims` is the decoded session (anything with `role` and
    `organization_id`), or None when the request carries no valid token.
    """
    if is_ungated_path(path) or is_public_path(path):
        return GateDecision(GateAction.PASS)

    if claims is None or not getattr(claims, "organization_id", None):
        reason = "missing_session" if claims is None else "missing_organization"
        if is_api_path(path):
            return GateDecision(GateAction.UNAUTHORIZED, reason=reason)
        return GateDecision(GateAction.REDIRECT, location=build_login_redirect(path), reason=reason)

    rule = match_route_rule(path)
    if rule is not None and claims.role not in rule.roles:
        return GateDecision(GateAction.REDIRECT, location=rule.redirect_to, reason="role_denied")

    return GateDecision(GateAction.PASS)


def navigation_for(role: Role) -> list[dict[str, str]]:
    return [{"href": item.href, "label": item.label} for item in NAVIGATION if item.visible_to(role)]
