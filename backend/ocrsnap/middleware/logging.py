"""
OCRSnap Backend — Access Logging Middleware
============================================

What:  One access-log line per HTTP request on the `ocrsnap.access` logger.
How:   Times the request, then logs method, path, status, upload size,
       duration, request ID and client IP with a level chosen from the
       status class.
When:  Inside RequestIDMiddleware (the request ID is already assigned) and
       outside the rate limiter (429s are logged too).

Line format:
    POST /api/ocr 200 48213B 812.4ms [a1b2c3d4] from 10.0.0.7

What we log vs what we DON'T log:
    ✅ Log: method, path, status, Content-Length, duration, IP, request ID
    ❌ Don't log: the image bytes, form field values, recognized text
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("ocrsnap.access")

# What: Paths polled by orchestrators; logging them buries real traffic
QUIET_PATHS = frozenset({"/health"})


def _status_level(status: int) -> int:
    # 5xx → ERROR, 4xx → WARNING (bad uploads, rate limits), else INFO
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Access log for the OCR API.

    The upload size comes from the Content-Length header, so the body is
    never touched here. A missing or non-numeric header logs as 0.

    Typical durations:
        - GET /health: 1-5ms (not logged)
        - POST /api/ocr, fast mode: 300-1500ms (tesseract dominates)
        - POST /api/ocr, advanced/handwriting: several seconds
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        header = request.headers.get("content-length", "")
        bytes_in = int(header) if header.isdigit() else 0
        rid = getattr(request.state, "request_id", "")
        client_ip = request.client.host if request.client else "unknown"
        status = response.status_code

        logger.log(
            _status_level(status),
            "%s %s %d %dB %.1fms [%s] from %s",
            request.method,
            path,
            status,
            bytes_in,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "bytes_in": bytes_in,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )

        return response
