from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from claimdesk.models.organization import Organization
from claimdesk.models.user import User


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegistrationRequest(_CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    organization_name: Optional[str] = Field(default=None, alias="organizationName")


class UserCreate(_CamelModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None
    temporary_password: Optional[str] = Field(default=None, alias="temporaryPassword")


class UserUpdate(_CamelModel):
    name: Optional[str] = None
    role: Optional[str] = None


class ProfileUpdate(_CamelModel):
    name: Optional[str] = Field(default=None, max_length=120)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def serialize_organization(organization: Organization) -> Dict[str, Any]:
    return {"id": organization.id, "name": organization.name}


def serialize_user(
    user: User,
    *,
    created: bool = True,
    updated: bool = False,
    organization: bool = False,
) -> Dict[str, Any]:
    """Public projection of a user. The password hash is never included."""
    data: Dict[str, Any] = {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role.value if hasattr(user.role, "value") else user.role,
        "isOwner": bool(user.is_owner),
    }
    if organization:
        data["organizationId"] = user.organization_id
    if created:
        data["createdAt"] = _iso(user.created_at)
    if updated:
        data["updatedAt"] = _iso(user.updated_at)
    if organization and user.organization is not None:
        data["organization"] = serialize_organization(user.organization)
    return data
