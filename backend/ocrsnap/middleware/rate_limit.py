"""
OCRSnap Backend — Rate Limiting Middleware
===========================================

What:  Per-IP sliding window limit on recognition calls.
Why:   Every POST /api/ocr spawns tesseract; a single client looping on the
       endpoint can pin every CPU on the host.
How:   Keeps a deque of request timestamps per IP; once the window holds
       `rate_limit_requests` entries the request is answered with 429.
Who:   Applied to every request; only paths under /api/ are metered.
When:  Inside RequestIDMiddleware (the 429 carries the request ID), before
       the body is read (a rejected upload is never buffered).

Algorithm: Sliding Window Log
    1. Each IP gets a deque of request timestamps (oldest on the left)
    2. On each request, pop timestamps that fell out of the window
    3. If remaining count >= limit, reject with 429 and Retry-After
    4. Otherwise append the current timestamp and continue

    Cost: O(1) amortized per request (each timestamp is popped once).

Only valid for a single process. Multiple uvicorn workers each keep their
own window, so the effective limit is `workers × rate_limit_requests`.
"""

import logging
import time
from collections import deque
from typing import Deque, Dict

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ocrsnap.config import settings
from ocrsnap.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window limiter for the recognition API.

    Configuration (from settings, read on every request):
        rate_limit_requests: Max recognition calls per window (default: 100)
        rate_limit_window: Window duration in seconds (default: 3600)

    Not metered:
        - Anything outside /api/ (health, docs, openapi.json)
        - OPTIONS (CORS preflights never reach tesseract)

    Response on rate limit:
        HTTP 429, error code `rate_limit_exceeded`, the same body shape as
        every other error, `Retry-After` header in seconds. Middleware sits
        outside the app's exception handlers, so RateLimitExceededError is
        rendered here instead of raised.
    """

    # What: Only these path prefixes cost engine time
    METERED_PREFIXES = ("/api/",)

    # What: Seconds between sweeps of IPs whose deque has drained
    SWEEP_INTERVAL = 300

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        # What: IP → timestamps of metered requests inside the window
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = time.monotonic()

    def _is_metered(self, request: Request) -> bool:
        if request.method == "OPTIONS":
            return False
        return request.url.path.startswith(self.METERED_PREFIXES)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not self._is_metered(request):
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"

        # Monotonic clock: wall-clock jumps must not reopen or freeze a window
        now = time.monotonic()
        window_start = now - settings.rate_limit_window

        hits = self._hits.setdefault(client_ip, deque())
        while hits and hits[0] <= window_start:
            hits.popleft()

        if len(hits) >= settings.rate_limit_requests:
            # Seconds until the oldest hit leaves the window
            exc = RateLimitExceededError(
                retry_after=int(hits[0] + settings.rate_limit_window - now) + 1,
            )
            logger.warning(
                "Recognition rate limit hit for %s: %d calls in %ds (retry in %ds)",
                client_ip,
                len(hits),
                settings.rate_limit_window,
                exc.retry_after,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": getattr(request.state, "request_id", ""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        hits.append(now)

        if now - self._last_sweep >= self.SWEEP_INTERVAL:
            self._sweep(window_start)
            self._last_sweep = now

        return await call_next(request)

    def _sweep(self, window_start: float) -> None:
        """Forget IPs with no hit inside the current window."""
        idle = [ip for ip, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for ip in idle:
            del self._hits[ip]

        if idle:
            logger.debug("Rate limiter dropped %d idle client entries", len(idle))
