from __future__ import annotations

import logging
import re

from email_validator import EmailNotValidError, validate_email
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from claimdesk.core.config import IS_TEST
from claimdesk.models.organization import Organization
from claimdesk.models.user import Role, User
from claimdesk.services.passwords import MIN_PASSWORD_LENGTH, hash_password

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_ORGANIZATION_NAME_LENGTH = 2


class EmailAlreadyRegistered(ValueError):
    pass


def is_valid_email(email: str) -> bool:
    """Syntax check only; the address is stored exactly as submitted."""
    if not EMAIL_PATTERN.match(email or ""):
        return False
    try:
        validate_email(email, check_deliverability=False, test_environment=IS_TEST)
    except EmailNotValidError:
        return False
    return True


def email_exists(db: Session, email: str) -> bool:
    return db.query(User.id).filter(User.email == email).first() is not None


def validate_registration(email: str | None, password: str | None, organization_name: str | None) -> None:
    if not email or not password or not organization_name:
        raise ValueError("Email, password, and organization name are required")
    if not is_valid_email(email):
        raise ValueError("Invalid email format")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if len(organization_name.strip()) < MIN_ORGANIZATION_NAME_LENGTH:
        raise ValueError(
            f"Organization name must be at least {MIN_ORGANIZATION_NAME_LENGTH} characters long"
        )


def register_organization(
    db: Session,
    *,
    email: str | None,
    password: str | None,
    organization_name: str | None,
    name: str | None = None,
) -> tuple[User, Organization]:
    """Create an organization together with its owner account.

    Both rows are committed in one transaction or not at all. A taken email is
    reported before anything is written.
    """
    validate_registration(email, password, organization_name)

    if email_exists(db, email):
        raise EmailAlreadyRegistered("User with this email already exists")

    password_hash = hash_password(password)

    organization = Organization(name=organization_name.strip())
    try:
        db.add(organization)
        db.flush()

        owner = User(
            email=email,
            password=password_hash,
            name=name or None,
            role=Role.ADMIN,
            is_owner=True,
            organization_id=organization.id,
        )
        db.add(owner)
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        # lost a race with a concurrent sign-up for the same email
        raise EmailAlreadyRegistered("User with this email already exists") from exc
    except Exception:
        db.rollback()
        raise

    db.refresh(owner)
    db.refresh(organization)
    logger.info(
        "Organization registered organization_id=%s owner_id=%s",
        organization.id,
        owner.id,
    )
    return owner, organization
