"""
Infinite Notepad Backend — Health Check Route
===============================================

Status levels:
    healthy:   database reachable and the media bucket writable (HTTP 200)
    degraded:  payments unconfigured or circuit open (HTTP 200)
    unhealthy: database or bucket down (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from notepad import __version__
from notepad.database import get_db_session
from notepad.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A critical dependency is down", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, db: AsyncSession = Depends(get_db_session)):
    overall = "healthy"

    db_status = "connected"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    storage_status = "available"
    if not request.app.state.storage.is_available():
        storage_status = "unavailable"
        overall = "unhealthy"

    payments = request.app.state.payments
    if not payments.client.api_key:
        payments_status = "not_configured"
    else:
        payments_status = payments.circuit_breaker.state
    if payments_status != "closed" and overall == "healthy":
        overall = "degraded"

    body = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        storage=storage_status,
        payments=payments_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=body.model_dump())
    return body
