from __future__ import annotations

import logging
from collections import Counter

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.core.database import get_db
from claimdesk.deps import require_manager_or_admin
from claimdesk.models.user import Role, User
from claimdesk.schemas.users import serialize_user
from claimdesk.services.session_tokens import SessionClaims

router = APIRouter(prefix="/api/team", tags=["team"])
logger = logging.getLogger(__name__)


def build_team_stats(members: list[User]) -> dict[str, int]:
    by_role = Counter(Role(member.role) for member in members)
    return {
        "totalUsers": len(members),
        "totalInspectors": by_role[Role.INSPECTOR],
        "totalManagers": by_role[Role.MANAGER],
        "totalAdmins": by_role[Role.ADMIN],
    }


@router.get("")
def get_team(
    claims: SessionClaims = Depends(require_manager_or_admin),
    db: Session = Depends(get_db),
):
    try:
        members = (
            db.query(User)
            .filter(User.organization_id == claims.organization_id)
            .order_by(User.created_at.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Error fetching team organization_id=%s", claims.organization_id)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error") from exc

    return {
        "members": [serialize_user(member) for member in members],
        "stats": build_team_stats(members),
    }
