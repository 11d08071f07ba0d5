"""
OCRSnap Backend — Health Check Route
=====================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Asks the OCR engine whether its binary is callable and reports uptime.
Who:   Called by Docker health checks, load balancers, and monitoring systems.

Status levels:
    - healthy:   Engine available (HTTP 200)
    - degraded:  Engine unavailable; the process is up but recognition fails (HTTP 200)
"""

import logging
import time

from fastapi import APIRouter, Depends

from ocrsnap import __version__
from ocrsnap.schemas.ocr import HealthResponse
from ocrsnap.services.ocr_engine import OCREngine
from ocrsnap.services.tesseract_service import get_ocr_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(engine: OCREngine = Depends(get_ocr_engine)) -> HealthResponse:
    """Report overall status, engine availability and uptime."""
    engine_status = "available"
    overall = "healthy"

    if not await engine.health_check():
        engine_status = "unavailable"
        overall = "degraded"

    return HealthResponse(
        status=overall,
        version=__version__,
        engine=engine_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
