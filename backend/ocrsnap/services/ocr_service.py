"""
OCRSnap Backend — OCR Service (Business Logic Orchestrator)
============================================================

What:  Coordinates form → options → engine → post-processing for one upload.
How:   Composes the recognition configurator with an OCREngine worker.
Who:   Called by the POST /api/ocr route handler.

Orchestration Flow:
    ┌────────────┐    ┌────────────┐    ┌──────────────┐    ┌──────────────┐
    │ ParsedForm │───▶│  Validate  │───▶│ Engine worker│───▶│ Post-process │
    │  (Route)   │    │  & Config  │    │ (Tesseract)  │    │  & Respond   │
    └────────────┘    └────────────┘    └──────────────┘    └──────────────┘

    The worker is released on every exit path (see OCREngine.worker).

OCRService is stateless: the engine is passed in per call, so tests can
hand it any OCREngine.
"""

import logging

from ocrsnap.config import settings
from ocrsnap.exceptions import MissingAttachmentError, ValidationError
from ocrsnap.models.form import FileAttachment, ParsedForm, RecognitionRequest
from ocrsnap.schemas.ocr import OCRResponse
from ocrsnap.services.ocr_engine import OCREngine
from ocrsnap.services.recognition_config import (
    build_parameters,
    post_process,
    resolve_language,
    resolve_mode,
)

logger = logging.getLogger(__name__)


class OCRService:
    """
    Business logic for a recognition request.

    Error Handling Strategy:
        Validation problems are raised before the engine is touched.
        Engine errors propagate unchanged (EngineFailureError).
    """

    def build_request(self, form: ParsedForm) -> RecognitionRequest:
        """
        Pick the image and options out of a decoded form.

        Raises:
            MissingAttachmentError: No file part under the image field name.
            ValidationError: Image is empty or over the size limit.
        """
        field = settings.image_field
        attachment = form.files.get(field)
        if attachment is None:
            raise MissingAttachmentError(
                field=field,
                context={"fields": sorted(form.fields), "files": sorted(form.files)},
            )
        self.validate_attachment(attachment)

        return RecognitionRequest(
            image_bytes=attachment.data,
            mode=resolve_mode(form.fields.get("mode"), settings.default_mode),
            language=resolve_language(form.fields.get("language"), settings.default_language),
        )

    def validate_attachment(self, attachment: FileAttachment) -> None:
        if attachment.size == 0:
            raise ValidationError(
                message="The uploaded image is empty.",
                field=settings.image_field,
                context={"filename": attachment.filename},
            )
        if attachment.size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"File size ({attachment.size / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field=settings.image_field,
                context={"max_size_mb": max_mb, "actual_size": attachment.size},
            )

    async def recognize_form(self, form: ParsedForm, engine: OCREngine) -> OCRResponse:
        """
        Complete workflow: validate → configure → recognize → post-process.

        Args:
            form:   Decoded multipart form.
            engine: Engine that supplies the recognition worker.

        Returns:
            OCRResponse with cleaned text and metadata.

        Raises:
            MissingAttachmentError, ValidationError, EngineFailureError
        """
        request = self.build_request(form)
        attachment = form.files[settings.image_field]
        parameters = build_parameters(request.mode, request.language)

        logger.info(
            "Recognizing %s (%s, %d bytes) mode=%s language=%s",
            attachment.filename,
            attachment.content_type,
            attachment.size,
            request.mode,
            request.language,
        )

        async with engine.worker(request.language, parameters) as worker:
            output = await worker.recognize(request.image_bytes)

        text = post_process(output.text, request.language)
        return OCRResponse(
            text=text,
            confidence=output.confidence,
            engine=engine.name,
            language=request.language,
            mode=request.mode,
            lines=len(output.lines) if output.lines is not None else None,
            filename=attachment.filename,
        )


# ── Singleton Instance ────────────────────────────────────────────────────
ocr_service = OCRService()
