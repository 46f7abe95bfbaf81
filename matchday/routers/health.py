"""Health check router."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from matchday.core.database import get_db
from matchday.core.responses import json_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """Health check for load balancers and monitoring. 503 se il DB non risponde."""
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.exception("Health check: DB non raggiungibile: %s", e)
        return json_response(503, {"status": "degraded", "database": "unreachable"})
    return {"status": "healthy", "database": "ok"}
