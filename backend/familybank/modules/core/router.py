import logging

from fastapi import APIRouter
from sqlalchemy import text

from familybank.db import GetEngine

router = APIRouter(prefix="/api", tags=["health"])
logger = logging.getLogger("familybank.health")


@router.get("/health")
async def api_health() -> dict:
    logger.debug("health check ok")
    return {"status": "ok"}


@router.get("/health/db")
def api_health_db() -> dict:
    try:
        with GetEngine().connect() as connection:
            connection.execute(text("SELECT 1")).scalar()
        logger.debug("db check ok")
        return {"status": "ok"}
    except Exception:  # noqa: BLE001
        logger.exception("db check failed")
        return {"status": "error", "detail": "database unavailable"}
