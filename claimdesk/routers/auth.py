from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.core.database import get_db
from claimdesk.schemas.users import RegistrationRequest, serialize_organization, serialize_user
from claimdesk.services.access_policy import DASHBOARD_PATH
from claimdesk.services.credentials import authenticate
from claimdesk.services.csrf import create_csrf_token, set_csrf_cookie, verify_csrf
from claimdesk.services.registration import EmailAlreadyRegistered, register_organization
from claimdesk.services.session_tokens import (
    clear_session_cookie,
    decode_session_token,
    expose_session,
    get_request_claims,
    mint_session_token,
    resolve_redirect_url,
    set_session_cookie,
    sign_out_redirect_url,
)

router = APIRouter(prefix="/api/auth", tags=["auth"])
logger = logging.getLogger(__name__)


class CredentialsSignIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    password: Optional[str] = None
    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")
    callback_url: Optional[str] = Field(default=None, alias="callbackUrl")


class SignOutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    csrf_token: Optional[str] = Field(default=None, alias="csrfToken")


def _ensure_csrf(request: Request, submitted: str | None) -> None:
    if not verify_csrf(request, submitted):
        logger.warning("CSRF check failed path=%s", request.url.path)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid CSRF token")


@router.get("/csrf")
def get_csrf_token(request: Request, response: Response):
    token = create_csrf_token()
    set_csrf_cookie(response, token, request)
    return {"csrfToken": token}


@router.post("/callback/credentials")
def sign_in_with_credentials(
    payload: CredentialsSignIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
):
    _ensure_csrf(request, payload.csrf_token)

    identity = authenticate(db, payload.email, payload.password)
    if identity is None:
        logger.info("Sign-in rejected")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    token = mint_session_token(identity)
    set_session_cookie(response, token, request)
    logger.info(
        "Sign-in success user_id=%s organization_id=%s role=%s",
        identity.id,
        identity.organization_id,
        identity.role.value,
    )

    session = expose_session(decode_session_token(token))
    session["url"] = resolve_redirect_url(payload.callback_url or DASHBOARD_PATH)
    return session


@router.post("/signout")
def sign_out(payload: SignOutRequest, request: Request, response: Response):
    _ensure_csrf(request, payload.csrf_token)
    clear_session_cookie(response, request)
    return {"url": sign_out_redirect_url()}


@router.get("/session")
def get_session(request: Request):
    claims = get_request_claims(request)
    if claims is None:
        return {}
    return expose_session(claims)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(payload: RegistrationRequest, db: Session = Depends(get_db)):
    try:
        owner, organization = register_organization(
            db,
            email=payload.email,
            password=payload.password,
            organization_name=payload.organization_name,
            name=payload.name,
        )
    except EmailAlreadyRegistered as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        logger.exception("Registration error")
        raise HTTPException(status_code=500, detail="Internal server error") from exc

    return {
        "message": "Organization created successfully",
        "user": serialize_user(owner, organization=True),
        "organization": serialize_organization(organization),
    }
