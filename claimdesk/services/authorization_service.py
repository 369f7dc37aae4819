from __future__ import annotations

import logging
from typing import Iterable

from fastapi import HTTPException, Request, status
from sqlalchemy.orm import Session

from claimdesk.models.user import Role, User
from claimdesk.services.access_policy import can_access_path

logger = logging.getLogger(__name__)


class AuthorizationService:
    """Per-operation checks run inside API handlers, after the request gate.

    Order: session, role, organization scope, protected-entity rules.
    """

    @staticmethod
    def log_access_denied(*, reason: str, claims, request: Request | None, target_id: str | None = None) -> None:
        endpoint = f"{request.method} {request.url.path}" if request is not None else None
        logger.warning(
            "Access denied (%s): user_id=%s user_role=%s organization_id=%s target_id=%s endpoint=%s",
            reason,
            getattr(claims, "id", None),
            getattr(getattr(claims, "role", None), "value", None),
            getattr(claims, "organization_id", None),
            target_id,
            endpoint,
            extra={"reason": reason},
        )

    @classmethod
    def ensure_role(cls, *, request: Request | None, claims, roles: Iterable[Role]) -> None:
        allowed = {Role(role) for role in roles}
        if claims.role not in allowed:
            cls.log_access_denied(reason="role_denied", claims=claims, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    @classmethod
    def ensure_path_access(cls, *, request: Request, claims, path: str) -> None:
        if not can_access_path(claims.role, path):
            cls.log_access_denied(reason="route_denied", claims=claims, request=request)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")

    @classmethod
    def get_scoped_user(
        cls,
        db: Session,
        *,
        claims,
        user_id: str,
        request: Request | None = None,
    ) -> User:
        """Fetch a user inside the caller's organization.

        Users of other organizations are reported exactly like missing ones.
        """
        target = (
            db.query(User)
            .filter(User.id == user_id, User.organization_id == claims.organization_id)
            .first()
        )
        if target is None:
            cls.log_access_denied(reason="not_found_in_scope", claims=claims, request=request, target_id=user_id)
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        return target

    @staticmethod
    def ensure_role_change_allowed(target: User, new_role: Role | None) -> None:
        if target.is_owner and new_role is not None and new_role != Role.ADMIN:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot change role of organization owner",
            )

    @staticmethod
    def ensure_deletable(target: User, caller_id: str) -> None:
        if target.is_owner:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot delete organization owner",
            )
        if target.id == caller_id:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Cannot delete yourself")
