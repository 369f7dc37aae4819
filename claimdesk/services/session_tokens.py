from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

from fastapi import Request, Response
from jose import JWTError, jwt

from claimdesk.core import config
from claimdesk.models.user import Role
from claimdesk.services.credentials import Identity, OrganizationRef

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class SessionClaims:
    """Signed, self-contained view of a signed-in user.

    Role, organization and ownership are copied from storage at sign-in and
    are not refreshed until the user signs in again.
    """

    id: str
    email: str
    name: Optional[str]
    role: Role
    organization_id: str
    is_owner: bool
    organization: OrganizationRef
    issued_at: Optional[int] = None
    expires_at: Optional[int] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "SessionClaims | None":
        user_id = payload.get("id") or payload.get("sub")
        role = Role.parse(payload.get("role"))
        organization_id = payload.get("organizationId")
        is_owner = payload.get("isOwner")
        if not user_id or role is None or not organization_id or not isinstance(is_owner, bool):
            return None

        organization = payload.get("organization") or {}
        if not isinstance(organization, dict):
            return None

        return cls(
            id=str(user_id),
            email=str(payload.get("email") or ""),
            name=payload.get("name"),
            role=role,
            organization_id=str(organization_id),
            is_owner=is_owner,
            organization=OrganizationRef(
                id=str(organization.get("id") or organization_id),
                name=str(organization.get("name") or ""),
            ),
            issued_at=payload.get("iat"),
            expires_at=payload.get("exp"),
        )


def refresh_claims(token: Dict[str, Any], identity: Identity | None = None) -> Dict[str, Any]:
    """Mint step: copy authorization attributes into the token at sign-in.

    Without an identity (every request after sign-in) the token is returned as is.
    """
    if identity is None:
        return token
    return {
        **token,
        "sub": identity.id,
        "id": identity.id,
        "email": identity.email,
        "name": identity.name,
        "role": identity.role.value,
        "organizationId": identity.organization_id,
        "isOwner": identity.is_owner,
        "organization": {"id": identity.organization.id, "name": identity.organization.name},
    }


def expose_session(claims: SessionClaims) -> Dict[str, Any]:
    """Expose step: the session object handed to pages and API clients."""
    expires = None
    if claims.expires_at is not None:
        expires = datetime.fromtimestamp(int(claims.expires_at), tz=timezone.utc).isoformat()
    return {
        "user": {
            "id": claims.id,
            "email": claims.email,
            "name": claims.name,
            "role": claims.role.value,
            "organizationId": claims.organization_id,
            "isOwner": claims.is_owner,
            "organization": {"id": claims.organization.id, "name": claims.organization.name},
        },
        "expires": expires,
    }


def _secret() -> str:
    if not config.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET não configurado.")
    return config.SESSION_SECRET


def encode_session_token(token: Dict[str, Any], now: int | None = None) -> str:
    issued_at = int(now if now is not None else datetime.now(timezone.utc).timestamp())
    payload = {
        **token,
        "iat": issued_at,
        "exp": issued_at + config.SESSION_MAX_AGE_SECONDS,
    }
    return jwt.encode(payload, _secret(), algorithm=config.SESSION_ALGORITHM)


def decode_session_token(token: str | None) -> SessionClaims | None:
    if not token:
        return None
    try:
        payload = jwt.decode(token, _secret(), algorithms=[config.SESSION_ALGORITHM])
    except JWTError:
        return None
    if not isinstance(payload, dict):
        return None
    return SessionClaims.from_payload(payload)


def mint_session_token(identity: Identity) -> str:
    return encode_session_token(refresh_claims({}, identity))


def read_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization") or ""
    if authorization.lower().startswith(BEARER_PREFIX):
        return authorization[len(BEARER_PREFIX):].strip() or None
    return None


def read_session_token(request: Request) -> str | None:
    return request.cookies.get(config.SESSION_COOKIE_NAME) or read_bearer_token(request)


def get_request_claims(request: Request) -> SessionClaims | None:
    """Decode the session cookie, or the bearer token when the cookie is absent or invalid."""
    claims = decode_session_token(request.cookies.get(config.SESSION_COOKIE_NAME))
    if claims is not None:
        return claims
    return decode_session_token(read_bearer_token(request))


def build_session_cookie_options(request: Request | None = None) -> dict[str, Any]:
    secure = config.SESSION_COOKIE_SECURE
    samesite = config.SESSION_COOKIE_SAMESITE

    host = ""
    if request is not None:
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").lower()
        host = host.split(",")[0].strip().split(":")[0]

    # Em hosts públicos, nunca emitir cookie inseguro.
    if host not in {"", "localhost", "127.0.0.1", "testserver"}:
        secure = True

    # Browsers rejeitam SameSite=None sem Secure.
    if samesite == "none" and not secure:
        samesite = "lax"

    return {
        "domain": config.SESSION_COOKIE_DOMAIN,
        "httponly": True,
        "samesite": samesite,
        "path": "/",
        "secure": secure,
    }


def set_session_cookie(response: Response, token: str, request: Request | None = None) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=token,
        max_age=config.SESSION_MAX_AGE_SECONDS,
        **build_session_cookie_options(request),
    )


def clear_session_cookie(response: Response, request: Request | None = None) -> None:
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        **build_session_cookie_options(request),
    )


def _origin(url: str) -> tuple[str, str, int | None]:
    parts = urlsplit(url)
    return (parts.scheme.lower(), (parts.hostname or "").lower(), parts.port)


def resolve_redirect_url(url: str | None, base_url: str | None = None) -> str:
    """Keep redirects on the application's own origin.

    Relative paths are joined to the base; absolute URLs pass only when they
    share the exact base origin. Anything else falls back to the base.
    """
    base = (base_url or config.APP_BASE_URL).rstrip("/")
    candidate = (url or "").strip()
    if not candidate:
        return base

    if candidate.startswith("/"):
        if candidate.startswith("//") or candidate.startswith("/\\"):
            return base
        return f"{base}{candidate}"

    try:
        same_origin = _origin(candidate) == _origin(base)
    except ValueError:
        # invalid port in the supplied URL
        same_origin = False
    if same_origin:
        return candidate

    logger.info("Rejected off-origin redirect target url=%s", candidate)
    return base


def sign_out_redirect_url(base_url: str | None = None) -> str:
    return (base_url or config.APP_BASE_URL).rstrip("/")
