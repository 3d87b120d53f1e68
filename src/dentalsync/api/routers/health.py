"""
Health check endpoints.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ... import __version__
from ...adapters.db.mongo.database import ping
from ...core.config import get_settings
from ...core.utils.datetime_utils import get_current_timestamp
from ..schemas.common import ApiResponse
from ..utils.responses import ok

router = APIRouter(prefix="/health", tags=["health"])
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response schema."""

    status: str
    timestamp: datetime
    version: str
    service: str


@router.get("", response_model=ApiResponse[HealthResponse])
async def health_check(request: Request):
    """
    Health check endpoint.

    Returns the current status of the service.
    """
    return ok(request, data=HealthResponse(
        status="healthy",
        timestamp=get_current_timestamp(),
        version=__version__,
        service=get_settings().app_name,
    ), message="OK")


@router.get("/ready", response_model=ApiResponse[dict])
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Returns whether the service can reach its database.
    """
    checks = {}
    all_ok = True
    try:
        await ping(get_settings().database)
        checks["database"] = "ok"
    except Exception as e:
        logger.warning(f"Readiness database check failed: {e}")
        checks["database"] = f"error: {str(e)[:50]}"
        all_ok = False

    return ok(
        request,
        data={"ready": all_ok, "checks": checks},
        message="Ready" if all_ok else "Not ready",
    )
