from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from claimdesk.core.request_context import set_request_context
from claimdesk.services.access_policy import (
    GateAction,
    build_login_redirect,
    evaluate_gate,
    is_api_path,
    is_ungated_path,
)
from claimdesk.services.session_tokens import get_request_claims

logger = logging.getLogger(__name__)


class RequestGateMiddleware(BaseHTTPMiddleware):
    """Classify every request and enforce session presence and page roles.

    Any token that fails to decode counts as no session.
    """

    async def dispatch(self, request: Request, call_next):
        request.state.session_claims = None
        request.state.organization_id = None
        request.state.user_role = None

        path = request.url.path
        if is_ungated_path(path):
            return await call_next(request)

        claims = get_request_claims(request)
        decision = evaluate_gate(path, claims)

        if decision.action == GateAction.UNAUTHORIZED:
            logger.info("Gate denied reason=%s path=%s", decision.reason, path)
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})

        if decision.action == GateAction.REDIRECT:
            location = decision.location
            if decision.reason != "role_denied" and request.url.query:
                location = build_login_redirect(f"{path}?{request.url.query}")
            logger.info("Gate redirect reason=%s path=%s location=%s", decision.reason, path, location)
            return RedirectResponse(url=location, status_code=307)

        if claims is not None:
            request.state.session_claims = claims
            set_request_context(organization_id=claims.organization_id, user_id=claims.id)
            if is_api_path(path):
                request.state.organization_id = claims.organization_id
                request.state.user_role = claims.role.value

        return await call_next(request)
