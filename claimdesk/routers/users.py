from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.core.database import get_db
from claimdesk.deps import require_admin
from claimdesk.models.user import Role, User
from claimdesk.schemas.users import UserCreate, UserUpdate, serialize_user
from claimdesk.services.authorization_service import AuthorizationService
from claimdesk.services.passwords import MIN_PASSWORD_LENGTH, generate_temporary_password, hash_password
from claimdesk.services.registration import email_exists, is_valid_email
from claimdesk.services.session_tokens import SessionClaims

router = APIRouter(prefix="/api/users", tags=["users"])
logger = logging.getLogger(__name__)

DUPLICATE_EMAIL = "User with this email already exists"


def _storage_failure(db: Session, action: str) -> HTTPException:
    db.rollback()
    logger.exception("Error %s user", action)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error")


def _parse_role(value: str | None) -> Role:
    role = Role.parse(value)
    if role is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid role")
    return role


@router.get("")
def list_users(
    claims: SessionClaims = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        users = (
            db.query(User)
            .filter(User.organization_id == claims.organization_id)
            .order_by(User.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "fetching") from exc

    return {"users": [serialize_user(entry, updated=True) for entry in users]}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    claims: SessionClaims = Depends(require_admin),
    db: Session = Depends(get_db),
):
    if not payload.email or not payload.role:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email and role are required")
    if not is_valid_email(payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format")
    role = _parse_role(payload.role)

    # Shown once to the creating admin, never stored in clear.
    password = payload.temporary_password or generate_temporary_password()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters long",
        )

    try:
        if email_exists(db, payload.email):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL)

        user = User(
            email=payload.email,
            name=payload.name or None,
            role=role,
            password=hash_password(password),
            organization_id=claims.organization_id,
            is_owner=False,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=DUPLICATE_EMAIL) from exc
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "creating") from exc

    logger.info(
        "User created user_id=%s role=%s organization_id=%s by=%s",
        user.id,
        role.value,
        claims.organization_id,
        claims.id,
    )
    return {
        "message": "User created successfully",
        "user": serialize_user(user),
        "temporaryPassword": password,
    }


@router.patch("/{user_id}")
def update_user(
    user_id: str,
    payload: UserUpdate,
    request: Request,
    claims: SessionClaims = Depends(require_admin),
    db: Session = Depends(get_db),
):
    new_role = _parse_role(payload.role) if payload.role else None

    try:
        target = AuthorizationService.get_scoped_user(db, claims=claims, user_id=user_id, request=request)
        AuthorizationService.ensure_role_change_allowed(target, new_role)

        if "name" in payload.model_fields_set:
            target.name = payload.name
        if new_role is not None:
            target.role = new_role
        db.commit()
        db.refresh(target)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "updating") from exc

    return {
        "message": "User updated successfully",
        "user": serialize_user(target, created=False, updated=True),
    }


@router.delete("/{user_id}")
def delete_user(
    user_id: str,
    request: Request,
    claims: SessionClaims = Depends(require_admin),
    db: Session = Depends(get_db),
):
    try:
        target = AuthorizationService.get_scoped_user(db, claims=claims, user_id=user_id, request=request)
        AuthorizationService.ensure_deletable(target, claims.id)

        db.delete(target)
        db.commit()
    except SQLAlchemyError as exc:
        raise _storage_failure(db, "deleting") from exc

    logger.info("User deleted user_id=%s by=%s", user_id, claims.id)
    return {"message": "User deleted successfully"}
