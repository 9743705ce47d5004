"""
Book Catalogue Backend — Health Check Route
============================================

What:  GET /health for container probes and load balancers.
How:   Runs `SELECT 1` on the shared engine. Healthy → 200, database
       unreachable → 503 so the instance is taken out of rotation.
"""

import logging
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from book_catalog import __version__
from book_catalog import database
from book_catalog.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def database_reachable() -> bool:
    try:
        async with database.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Health check: database unreachable: %s", e)
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check() -> JSONResponse:
    healthy = await database_reachable()
    body = HealthResponse(
        status="healthy" if healthy else "unhealthy",
        version=__version__,
        database="connected" if healthy else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(status_code=200 if healthy else 503, content=body.model_dump())
