"""Placeholder dashboard pages.

Each page only reports who is looking and what they may navigate to; the
request gate has already applied the capability table and the handlers
apply it once more.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from claimdesk.deps import get_current_session, require_route_access
from claimdesk.services.access_policy import navigation_for
from claimdesk.services.session_tokens import SessionClaims, expose_session

router = APIRouter(tags=["pages"])

DASHBOARD_PAGES = {
    "/dashboard/profile": "profile",
    "/dashboard/claims": "claims",
    "/dashboard/inspections": "inspections",
    "/dashboard/inspections/new": "new-inspection",
    "/dashboard/users": "users",
    "/dashboard/settings": "settings",
    "/dashboard/team": "team",
}


def render_page(page: str, claims: SessionClaims) -> dict:
    return {
        "page": page,
        "user": expose_session(claims)["user"],
        "navigation": navigation_for(claims.role),
    }


@router.get("/login")
def login_page(callbackUrl: str | None = None):
    return {"page": "login", "callbackUrl": callbackUrl}


@router.get("/register")
def register_page():
    return {"page": "register"}


@router.get("/dashboard")
def dashboard_page(claims: SessionClaims = Depends(get_current_session)):
    return render_page("dashboard", claims)


def _register_dashboard_page(path: str, page: str) -> None:
    def _page(claims: SessionClaims = Depends(require_route_access(path))):
        return render_page(page, claims)

    _page.__name__ = f"{page.replace('-', '_')}_page"
    router.add_api_route(path, _page, methods=["GET"])


for _path, _page_name in DASHBOARD_PAGES.items():
    _register_dashboard_page(_path, _page_name)
