from datetime import datetime, timezone
from fastapi import APIRouter, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette import status

from core.config import settings
from utils.deps import db_dependency
from utils.logger import get_logger
from utils.response import error_response, success_response

logger = get_logger(__name__)


router = APIRouter(
    prefix="/health",
    tags=["health"]
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check():
    logger.debug("Health check requested")
    return success_response(
        {"status": "healthy", "timestamp": _timestamp(), "environment": settings.ENV},
        "Service is healthy",
    )


@router.get("/ready")
def readiness_check(request: Request, db: db_dependency):
    """
    Readiness includes a database round trip.
    """
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.error("Readiness check failed - database unreachable", exc_info=True)
        return error_response("Service not ready", status.HTTP_503_SERVICE_UNAVAILABLE)

    return success_response(
        {"status": "ready", "timestamp": _timestamp(), "database": "connected"},
        "Service is ready",
    )
