"""
OCRSnap Backend — Pydantic Request/Response Schemas
====================================================

What:  Pydantic models defining the API contract between clients and backend.
How:   FastAPI uses these models to serialize responses and generate
       OpenAPI documentation.
Who:   Used by route handlers as return types.
"""

from typing import Optional

from pydantic import BaseModel, Field


class OCRResponse(BaseModel):
    """
    What:  Result of a successful recognition.
    Who:   Returned by POST /api/ocr with HTTP 200.

    Field names follow the original JSON shape (`text`, `confidence`,
    `engine`, `language`, `mode`) so existing clients keep working.
    """
    text: str = Field(description="Recognized text after post-processing")
    confidence: float = Field(description="Mean word confidence reported by the engine (0-100)")
    engine: str = Field(description="Recognition engine that produced the text")
    language: str = Field(description="Language code used for recognition")
    mode: str = Field(description="Recognition mode: fast, advanced or handwriting")
    lines: Optional[int] = Field(
        default=None,
        description="Number of text lines the engine segmented (null if unknown)",
    )
    filename: Optional[str] = Field(default=None, description="Uploaded file name")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "malformed_request", "engine_failure")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., the engine's error message)
        request_id: Correlation ID for tracing this error in server logs
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and engine status."""
    status: str = Field(description="Overall service status: healthy or degraded")
    version: str = Field(description="Application version")
    engine: str = Field(description="OCR engine status: available, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
