from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from claimdesk.core.database import get_db
from claimdesk.models.organization import Organization
from claimdesk.models.user import User

router = APIRouter(prefix="/api/test-db", tags=["diagnostics"])
logger = logging.getLogger(__name__)


@router.get("")
def check_database(db: Session = Depends(get_db)):
    try:
        counts = {
            "users": db.query(User).count(),
            "organizations": db.query(Organization).count(),
        }
    except SQLAlchemyError:
        logger.exception("Database connection error")
        return JSONResponse(
            status_code=500,
            content={
                "message": "Database connection failed",
                "status": "error",
                "error": "Database unavailable",
            },
        )

    return {
        "message": "Database connection successful",
        "status": "connected",
        "counts": counts,
    }
