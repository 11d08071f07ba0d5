"""
OCRSnap Backend — OCR Route Handler
====================================

What:  Handles POST /api/ocr for uploading an image and getting its text back.
How:   Reads the raw body, decodes it with the in-house multipart decoder,
       delegates to OCRService, returns the result.
Who:   Called by any client posting multipart/form-data.

Request Flow:
    1. Client sends multipart/form-data with an `image` file part and
       optional `mode` / `language` fields
    2. The full body is buffered (no streaming parse)
    3. Boundary is taken from the Content-Type header
    4. form_decoder.decode() → ParsedForm
    5. OCRService runs validate → configure → recognize → post-process
    6. Return 200 with OCRResponse

A plain OPTIONS /api/ocr returns 200 with an Allow header.

The body is not read through UploadFile: the decoder works on the raw
bytes so that no multipart library is involved.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from ocrsnap.schemas.ocr import ErrorResponse, OCRResponse
from ocrsnap.services.form_decoder import decode, extract_boundary
from ocrsnap.services.ocr_engine import OCREngine
from ocrsnap.services.ocr_service import ocr_service
from ocrsnap.services.tesseract_service import get_ocr_engine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["OCR"])


@router.post(
    "/ocr",
    response_model=OCRResponse,
    responses={
        200: {"description": "Text recognized", "model": OCRResponse},
        400: {"description": "Malformed body, missing or invalid image", "model": ErrorResponse},
        429: {"description": "Rate limit exceeded", "model": ErrorResponse},
        500: {"description": "OCR processing failed", "model": ErrorResponse},
    },
    summary="Recognize text in an uploaded image",
    description=(
        "Upload an image as multipart/form-data under the `image` field. "
        "Optional fields: `mode` (fast, advanced, handwriting; default fast) and "
        "`language` (Tesseract language code; default eng)."
    ),
)
async def recognize(
    request: Request,
    engine: OCREngine = Depends(get_ocr_engine),
) -> OCRResponse:
    """
    Decode the multipart body and run recognition.

    Error responses (handled by global exception handlers):
        HTTP 400: MalformedRequestError, MissingAttachmentError, ValidationError
        HTTP 500: EngineFailureError
    """
    raw = await request.body()
    boundary = extract_boundary(request.headers.get("content-type"))

    logger.info("Received OCR request: %d bytes", len(raw))

    form = decode(raw, boundary)
    return await ocr_service.recognize_form(form, engine)


@router.options("/ocr", include_in_schema=False)
async def recognize_options() -> Response:
    """
    Plain OPTIONS (no CORS preflight headers) answers 200 with the allowed
    methods. Preflights are answered earlier by CORSMiddleware.
    """
    return Response(status_code=200, headers={"Allow": "POST, OPTIONS"})
