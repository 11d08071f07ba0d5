"""
OCRSnap Backend — Custom Exception Hierarchy
=============================================

What:  Defines application-specific exceptions for different error scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and middleware; caught by global handlers.
When:  During request processing when recoverable errors occur.

Exception Hierarchy:
    OCRSnapError (base)
    ├── MalformedRequestError    → 400 Bad Request (no boundary / unsplittable body)
    ├── MissingAttachmentError   → 400 Bad Request (no image part)
    ├── ValidationError          → 400 Bad Request (empty, oversized, undecodable image)
    ├── EngineFailureError       → 500 Internal Server Error (OCR engine failed)
    └── RateLimitExceededError   → 429 Too Many Requests

Nothing in this package retries. Each error is raised once and surfaced
with its kind and message.
"""

from typing import Any, Dict, Optional


class OCRSnapError(Exception):
    """
    Base exception for all OCRSnap application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only where the handler says so)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class MalformedRequestError(OCRSnapError):
    """
    Raised when a multipart body cannot be decoded at all.

    When:    The Content-Type header has no `boundary=` parameter, or the body
             contains no occurrence of the boundary delimiter.
    HTTP:    400 Bad Request

    The decoder never guesses a boundary and never returns a partial form
    alongside this error.
    """

    def __init__(
        self,
        message: str = "Malformed multipart/form-data request",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class MissingAttachmentError(OCRSnapError):
    """
    Raised when the form decodes but carries no file under the expected name.

    HTTP:    400 Bad Request (reported as `missing_attachment`, distinct from
             a malformed body)
    """

    def __init__(
        self,
        field: str = "image",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["field"] = field
        super().__init__(message="No image provided", context=ctx)
        self.field = field


class ValidationError(OCRSnapError):
    """
    Raised when client input fails validation.

    When:    Empty upload, upload over the size limit, bytes that are not an image.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "File size (12.3MB) exceeds maximum of 10MB.",
            "details": {"field": "image", "max_size_mb": 10.0}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class EngineFailureError(OCRSnapError):
    """
    Raised when the OCR engine fails to initialize or recognize.

    What:    Tesseract is missing, lacks the requested language pack, timed out,
             or returned an error.
    HTTP:    500 Internal Server Error

    The engine's own message is carried in `details` so the client can show
    what went wrong (the original handler exposed it the same way).
    """

    def __init__(
        self,
        message: str = "OCR processing failed",
        details: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if details:
            ctx["details"] = details
        super().__init__(message=message, context=ctx)
        self.details = details


class RateLimitExceededError(OCRSnapError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests

    Response includes:
        - retry_after: Seconds until the rate limit window resets
        - Retry-After header for HTTP-compliant clients
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
