import logging

from fastapi import APIRouter
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from shopfront.core.responses import respond
from shopfront.db.session import get_session

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    try:
        with get_session() as session:
            session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.error(f"Database health check failed: {exc}")
        return respond({"database": "unavailable"}, "Service degraded", status=503)
    return respond({"database": "ok"}, "Service healthy")
