"""
Health endpoints: liveness without dependencies, readiness with a store check.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from skillboard.core.database import check_connection, get_database_url

logger = logging.getLogger("skillboard")

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz():
    """Lightweight liveness check (no deps)."""
    return {"status": "ok"}


@router.get("/readyz")
def readyz():
    """Readiness: database connectivity when one is configured."""
    if not get_database_url():
        return {"status": "ok", "store": "memory"}
    if check_connection():
        return {"status": "ok", "store": "sql"}
    logger.warning("readyz.db_unavailable")
    return JSONResponse(status_code=503, content={"status": "unavailable", "store": "sql"})
