"""
OCRSnap Backend — FastAPI Application Factory
==============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn ocrsnap.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Req ID      │→│ Logging  │→│  Rate Limit     │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌──────────────┐ ┌─────────────────┐               │
    │  │ POST /api/ocr│ │ GET /health     │               │
    │  └──────────────┘ └─────────────────┘               │
    │                                                     │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ Malformed/Missing/Validation→400 │ Engine→500│   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Probe the OCR engine and log whether it is available
    3. Log startup complete

    Shutdown:
    1. Log shutdown complete (workers are per request; nothing to release)
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ocrsnap import __version__
from ocrsnap.config import settings
from ocrsnap.exceptions import (
    EngineFailureError,
    MalformedRequestError,
    MissingAttachmentError,
    OCRSnapError,
    ValidationError,
)
from ocrsnap.middleware.logging import RequestLoggingMiddleware
from ocrsnap.middleware.rate_limit import RateLimitMiddleware
from ocrsnap.middleware.request_id import RequestIDMiddleware, request_id_var
from ocrsnap.routes import health, ocr
from ocrsnap.services.tesseract_service import tesseract_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Output: stdout (Docker captures it)
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Manage application lifecycle: startup and shutdown procedures.

    An unavailable engine is logged but does not stop startup: the health
    endpoint reports it and recognition requests fail with engine_failure.
    """
    setup_logging()
    logger.info("=" * 60)
    logger.info("OCRSnap Backend %s starting up...", __version__)

    if await tesseract_service.health_check():
        logger.info("OCR engine: %s available", tesseract_service.name)
    else:
        logger.error("OCR engine: %s NOT available. Install tesseract or set TESSERACT_CMD.",
                     tesseract_service.name)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # request.state is shared with the middleware stack; the ContextVar is not
    # visible to the bare-Exception handler, which runs outside all middleware.
    return getattr(request.state, "request_id", "") or request_id_var.get("")


def _error_response(request: Request, status_code: int, error: str, exc: OCRSnapError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": exc.message,
            "details": exc.context,
            "request_id": _request_id(request),
        },
    )


# What: error codes for the framework's own HTTP errors (unknown route, wrong method)
HTTP_ERROR_CODES = {
    404: "not_found",
    405: "method_not_allowed",
}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register global exception handlers for consistent error responses.

    Handler hierarchy:
        MalformedRequestError   → 400 malformed_request
        MissingAttachmentError  → 400 missing_attachment
        ValidationError         → 400 validation_error
        EngineFailureError      → 500 engine_failure
        OCRSnapError (base)     → 500 internal_server_error
        HTTPException           → 404 not_found / 405 method_not_allowed
        Exception (fallback)    → 500 internal_server_error

    429 rate_limit_exceeded is rendered by RateLimitMiddleware.
    Stack traces are logged server-side only.
    """

    @app.exception_handler(MalformedRequestError)
    async def handle_malformed_request(request: Request, exc: MalformedRequestError):
        logger.warning("[%s] Malformed request: %s", _request_id(request), exc.message)
        return _error_response(request, 400, "malformed_request", exc)

    @app.exception_handler(MissingAttachmentError)
    async def handle_missing_attachment(request: Request, exc: MissingAttachmentError):
        logger.warning("[%s] Missing attachment: %s", _request_id(request), exc.field)
        return _error_response(request, 400, "missing_attachment", exc)

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", _request_id(request), exc.message)
        return _error_response(request, 400, "validation_error", exc)

    @app.exception_handler(EngineFailureError)
    async def handle_engine_failure(request: Request, exc: EngineFailureError):
        logger.error("[%s] OCR engine failure: %s | Context: %s",
                     _request_id(request), exc.details, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "engine_failure",
                "message": exc.message,
                "details": {"details": exc.details} if exc.details else None,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(OCRSnapError)
    async def handle_app_error(request: Request, exc: OCRSnapError):
        logger.error("[%s] Application error: %s | Context: %s",
                     _request_id(request), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": exc.message,
                "request_id": _request_id(request),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
                "message": str(exc.detail),
                "details": None,
                "request_id": _request_id(request),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns: Fully configured FastAPI instance ready to receive requests.
    """
    app = FastAPI(
        title="OCRSnap API",
        description=(
            "Upload an image as multipart/form-data and get the recognized text back. "
            "Recognition runs on Tesseract with mode- and language-specific tuning."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Middleware executes in REVERSE order of addition:
    # RequestID → Logging → RateLimit → GZip → CORS → route
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "OPTIONS", "PATCH", "DELETE", "POST", "PUT"],
        allow_headers=[
            "X-CSRF-Token",
            "X-Requested-With",
            "Accept",
            "Accept-Version",
            "Content-Length",
            "Content-MD5",
            "Content-Type",
            "Date",
            "X-Api-Version",
            "X-Request-ID",
        ],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(ocr.router)
    app.include_router(health.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.backend_host, port=settings.backend_port)
