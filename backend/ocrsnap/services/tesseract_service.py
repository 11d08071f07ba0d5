"""
OCRSnap Backend — Tesseract Engine Implementation
==================================================

What:  Concrete OCR engine backed by the Tesseract binary via pytesseract.
How:   Each request gets a TesseractWorker. The worker checks that the
       requested language packs are installed, decodes the image with
       Pillow, then runs `image_to_data` for the word table (confidence and
       line list) and `image_to_string` for the text, so Tesseract keeps its
       own interword spacing and paragraph layout.
Who:   Instantiated once at import; workers are created by OCRService.
When:  After the form is decoded and the parameter set is built.

Blocking calls (subprocess + image decode) run in a worker thread so the
event loop keeps serving other requests.

Error translation:
    TesseractNotFoundError         → EngineFailureError ("not installed")
    language pack missing          → EngineFailureError
    TesseractError / RuntimeError  → EngineFailureError (message attached)
    UnidentifiedImageError         → ValidationError (client sent a non-image)
    DecompressionBombError         → ValidationError (pixel count over Pillow's limit)
"""

import asyncio
import io
import logging
import time
import uuid
from collections import OrderedDict
from typing import FrozenSet, List, Mapping, Optional, Tuple

import pytesseract
from PIL import Image, UnidentifiedImageError

from ocrsnap.config import settings
from ocrsnap.exceptions import EngineFailureError, ValidationError
from ocrsnap.models.form import RecognitionOutput
from ocrsnap.services.ocr_engine import OCREngine, RecognitionWorker
from ocrsnap.services.recognition_config import to_tesseract_config

logger = logging.getLogger(__name__)

# Tesseract TSV levels: 1=page, 2=block, 3=paragraph, 4=line, 5=word
WORD_LEVEL = 5

LineKey = Tuple[int, int, int, int]


def _to_int(value, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _to_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def assemble_output(text: str, data: Mapping[str, List]) -> RecognitionOutput:
    """
    Combine Tesseract's plain-text output with its `Output.DICT` word table.

    `text` is kept exactly as rendered. The word table only supplies the
    line list (words grouped by page, block, paragraph, line) and the
    confidence, the mean of the non-negative word confidences.
    """
    lines: "OrderedDict[LineKey, List[str]]" = OrderedDict()
    confidences: List[float] = []

    texts = data.get("text", [])
    for i, word in enumerate(texts):
        if _to_int(data["level"][i]) != WORD_LEVEL:
            continue
        word = (word or "").strip()
        if not word:
            continue
        key = (
            _to_int(data["page_num"][i], 1),
            _to_int(data["block_num"][i]),
            _to_int(data["par_num"][i]),
            _to_int(data["line_num"][i]),
        )
        lines.setdefault(key, []).append(word)
        conf = _to_float(data["conf"][i])
        if conf is not None and conf >= 0:
            confidences.append(conf)

    confidence = round(sum(confidences) / len(confidences), 2) if confidences else 0.0
    return RecognitionOutput(
        text=text,
        confidence=confidence,
        lines=[" ".join(words) for words in lines.values()],
    )


class TesseractWorker(RecognitionWorker):
    """Single-use Tesseract session for one language + parameter set."""

    def __init__(self, service: "TesseractService", language: str, parameters: Mapping[str, str]):
        self.service = service
        self.language = language
        self.parameters = dict(parameters)
        self.config = to_tesseract_config(self.parameters)
        self.worker_id = str(uuid.uuid4())[:8]
        self._image: Optional[Image.Image] = None
        self._ready = False

    async def initialize(self) -> None:
        logger.debug("[%s] initializing tesseract (lang=%s, config=%s)",
                     self.worker_id, self.language, self.config)
        installed = await self.service.installed_languages()
        missing = [code for code in self.language.split("+") if code not in installed]
        if missing:
            raise EngineFailureError(
                details=f"Tesseract language data not installed: {', '.join(missing)}",
                context={"language": self.language, "installed": sorted(installed)},
            )
        self._ready = True

    async def recognize(self, image_bytes: bytes) -> RecognitionOutput:
        if not self._ready:
            raise EngineFailureError(details="Worker used before initialization")

        try:
            self._image = await asyncio.to_thread(self._load_image, image_bytes)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise ValidationError(
                message="The uploaded file is not a readable image.",
                field=settings.image_field,
                context={"error": str(e)},
            ) from e

        start_time = time.time()
        try:
            text, data = await asyncio.to_thread(self._run_tesseract, self._image)
        except pytesseract.TesseractNotFoundError as e:
            raise EngineFailureError(
                details="tesseract is not installed or not on PATH",
                context={"worker": self.worker_id},
            ) from e
        except (pytesseract.TesseractError, RuntimeError, OSError) as e:
            logger.warning("[%s] tesseract call failed: %s", self.worker_id, str(e))
            raise EngineFailureError(
                details=str(e),
                context={"worker": self.worker_id, "error_type": type(e).__name__},
            ) from e

        output = assemble_output(text, data)
        logger.info(
            "[%s] recognition completed in %.0fms: %d chars, %d lines, confidence=%.1f",
            self.worker_id,
            (time.time() - start_time) * 1000,
            len(output.text),
            len(output.lines or []),
            output.confidence,
        )
        return output

    async def terminate(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None
        self._ready = False

    def _run_tesseract(self, image: Image.Image) -> Tuple[str, Mapping[str, List]]:
        # Two tesseract invocations with the same language and config
        data = pytesseract.image_to_data(
            image,
            lang=self.language,
            config=self.config,
            timeout=settings.engine_timeout,
            output_type=pytesseract.Output.DICT,
        )
        text = pytesseract.image_to_string(
            image,
            lang=self.language,
            config=self.config,
            timeout=settings.engine_timeout,
        )
        return text, data

    @staticmethod
    def _load_image(image_bytes: bytes) -> Image.Image:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
        return image


class TesseractService(OCREngine):
    """
    Tesseract-backed OCREngine.

    Holds only the binary location and a cache of installed language packs;
    all per-request state lives on the worker.
    """

    name = "tesseract"

    def __init__(self, tesseract_cmd: Optional[str] = None):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self._languages: Optional[FrozenSet[str]] = None
        logger.info(
            "TesseractService initialized with cmd=%s, timeout=%ss",
            tesseract_cmd or "tesseract",
            settings.engine_timeout,
        )

    def create_worker(self, language: str, parameters: Mapping[str, str]) -> TesseractWorker:
        return TesseractWorker(self, language, parameters)

    async def installed_languages(self) -> FrozenSet[str]:
        """Language packs known to the tesseract binary (cached after first success)."""
        if self._languages is None:
            try:
                languages = await asyncio.to_thread(pytesseract.get_languages, config="")
            except pytesseract.TesseractNotFoundError as e:
                raise EngineFailureError(
                    details="tesseract is not installed or not on PATH",
                ) from e
            except (pytesseract.TesseractError, OSError) as e:
                raise EngineFailureError(details=str(e)) from e
            self._languages = frozenset(languages)
        return self._languages

    async def health_check(self) -> bool:
        try:
            version = await asyncio.to_thread(pytesseract.get_tesseract_version)
        except (pytesseract.TesseractNotFoundError, pytesseract.TesseractError, OSError) as e:
            logger.warning("Tesseract health check failed: %s", str(e))
            return False
        logger.debug("Tesseract version %s available", version)
        return True


# ── Singleton Instance ────────────────────────────────────────────────────
tesseract_service = TesseractService(tesseract_cmd=settings.tesseract_cmd)


def get_ocr_engine() -> OCREngine:
    """FastAPI dependency returning the process-wide engine (overridable in tests)."""
    return tesseract_service
