from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.models.organization import Organization
from claimdesk.models.user import Role, User
from claimdesk.services.passwords import verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrganizationRef:
    id: str
    name: str


@dataclass(frozen=True)
class Identity:
    """Who signed in, as read from storage at the moment of sign-in."""

    id: str
    email: str
    name: Optional[str]
    role: Role
    organization_id: str
    is_owner: bool
    organization: OrganizationRef


def identity_from_user(user: User, organization: Organization) -> Identity:
    return Identity(
        id=user.id,
        email=user.email,
        name=user.name,
        role=Role(user.role),
        organization_id=user.organization_id,
        is_owner=bool(user.is_owner),
        organization=OrganizationRef(id=organization.id, name=organization.name),
    )


def authenticate(db: Session, email: str | None, password: str | None) -> Identity | None:
    """Verify an email/password pair against stored users.

    Returns None for unknown emails, accounts without a password hash, wrong
    passwords and storage failures alike.
    """
    if not email or not password:
        return None

    try:
        user = db.query(User).filter(User.email == email).first()
        if user is None or not user.password:
            return None
        if not verify_password(password, user.password):
            return None
        organization = db.query(Organization).filter(Organization.id == user.organization_id).first()
    except SQLAlchemyError:
        logger.exception("Auth error: storage unavailable during sign-in")
        return None

    if organization is None:
        logger.warning("Auth error: user_id=%s has no organization", user.id)
        return None

    return identity_from_user(user, organization)
