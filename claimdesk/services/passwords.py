from __future__ import annotations

import secrets

import bcrypt

from claimdesk.core import config

TEMPORARY_PASSWORD_BYTES = 9  # 12 url-safe characters
MIN_PASSWORD_LENGTH = 6


# bcrypt só considera os primeiros 72 bytes; bcrypt 5.x rejeita entradas maiores.
def _normalize_password_for_bcrypt(password: str) -> bytes:
    pw = (password or "").encode("utf-8")
    if len(pw) <= 72:
        return pw
    return pw[:72]


def hash_password(password: str, rounds: int | None = None) -> str:
    pw = _normalize_password_for_bcrypt(password)
    salt = bcrypt.gensalt(rounds=rounds or config.PASSWORD_HASH_ROUNDS)
    return bcrypt.hashpw(pw, salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(
            _normalize_password_for_bcrypt(plain_password),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        # malformed hash stored for the account
        return False


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(TEMPORARY_PASSWORD_BYTES)
