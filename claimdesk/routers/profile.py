from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.core.database import get_db
from claimdesk.deps import get_current_session
from claimdesk.schemas.users import ProfileUpdate, serialize_user
from claimdesk.services.authorization_service import AuthorizationService
from claimdesk.services.session_tokens import SessionClaims

router = APIRouter(prefix="/api/profile", tags=["profile"])
logger = logging.getLogger(__name__)


@router.get("")
def get_profile(
    request: Request,
    claims: SessionClaims = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    user = AuthorizationService.get_scoped_user(db, claims=claims, user_id=claims.id, request=request)
    return {"user": serialize_user(user, updated=True, organization=True)}


@router.patch("")
def update_profile(
    payload: ProfileUpdate,
    request: Request,
    claims: SessionClaims = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Users may rename themselves; role and ownership are admin-only."""
    try:
        user = AuthorizationService.get_scoped_user(db, claims=claims, user_id=claims.id, request=request)
        if "name" in payload.model_fields_set:
            user.name = (payload.name or "").strip() or None
        db.commit()
        db.refresh(user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error updating profile")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error") from exc

    return {
        "message": "Profile updated successfully",
        "user": serialize_user(user, updated=True, organization=True),
    }
