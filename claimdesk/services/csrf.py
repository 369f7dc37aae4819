from __future__ import annotations

import hmac
import secrets

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from claimdesk.core import config
from claimdesk.services.session_tokens import build_session_cookie_options

CSRF_SALT = "csrf-token"
CSRF_HEADER = "x-csrf-token"


def _serializer() -> URLSafeTimedSerializer:
    if not config.CSRF_SECRET:
        raise RuntimeError("CSRF_SECRET não configurado.")
    return URLSafeTimedSerializer(config.CSRF_SECRET, salt=CSRF_SALT)


def create_csrf_token() -> str:
    return _serializer().dumps(secrets.token_hex(16))


def is_valid_csrf_token(token: str | None) -> bool:
    if not token:
        return False
    try:
        _serializer().loads(token, max_age=config.CSRF_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired):
        return False
    return True


def verify_csrf(request: Request, submitted: str | None) -> bool:
    """Double-submit check: the form value must match the cookie and carry our signature."""
    cookie_token = request.cookies.get(config.CSRF_COOKIE_NAME)
    submitted = submitted or request.headers.get(CSRF_HEADER)
    if not cookie_token or not submitted:
        return False
    if not hmac.compare_digest(cookie_token.encode("utf-8"), submitted.encode("utf-8")):
        return False
    return is_valid_csrf_token(submitted)


def set_csrf_cookie(response: Response, token: str, request: Request | None = None) -> None:
    response.set_cookie(
        key=config.CSRF_COOKIE_NAME,
        value=token,
        max_age=config.CSRF_MAX_AGE_SECONDS,
        **build_session_cookie_options(request),
    )
