# claimdesk/deps.py
from __future__ import annotations

import logging
from typing import Iterable

from fastapi import Depends, HTTPException, Request, status

from claimdesk.models.user import Role
from claimdesk.services.authorization_service import AuthorizationService
from claimdesk.services.session_tokens import SessionClaims, get_request_claims

logger = logging.getLogger(__name__)


def get_current_session(request: Request) -> SessionClaims:
    """Decode the request's session token again.

    The gate's `request.state` hints are deliberately ignored here.
    """
    claims = get_request_claims(request)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return claims


def get_optional_session(request: Request) -> SessionClaims | None:
    return get_request_claims(request)


def require_role(roles: Iterable[Role | str]):
    allowed = tuple(Role(role) for role in roles)

    def _dependency(
        request: Request,
        claims: SessionClaims = Depends(get_current_session),
    ) -> SessionClaims:
        AuthorizationService.ensure_role(request=request, claims=claims, roles=allowed)
        return claims

    return _dependency


def require_route_access(path: str):
    """Same capability table as the request gate, checked again in the handler."""

    def _dependency(
        request: Request,
        claims: SessionClaims = Depends(get_current_session),
    ) -> SessionClaims:
        AuthorizationService.ensure_path_access(request=request, claims=claims, path=path)
        return claims

    return _dependency


require_admin = require_role([Role.ADMIN])
require_manager_or_admin = require_role([Role.MANAGER, Role.ADMIN])
