"""
OCRSnap Backend — Abstract OCR Engine Interface
================================================

What:  Abstract base classes for the external recognition engine.
How:   An OCREngine hands out one RecognitionWorker per request. A worker
       is initialized with a language and parameter set, recognizes one
       image, and is terminated afterwards.
Who:   OCRService drives the lifecycle; TesseractService implements it.

Lifecycle:
    create_worker() → initialize() → recognize() → terminate()

    `OCREngine.worker()` wraps that sequence in an async context manager and
    calls terminate() on every exit path, including a failed initialize()
    and an exception raised by recognize().
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Mapping

from ocrsnap.models.form import RecognitionOutput

logger = logging.getLogger(__name__)


class RecognitionWorker(ABC):
    """
    One configured recognition session.

    Contract:
        - initialize() must succeed before recognize() is called
        - terminate() is safe to call after a failed or skipped initialize()
        - Engine errors surface as EngineFailureError
    """

    @abstractmethod
    async def initialize(self) -> None:
        ...

    @abstractmethod
    async def recognize(self, image_bytes: bytes) -> RecognitionOutput:
        """
        Recognize text in an encoded image (PNG, JPEG, ...).

        Raises:
            ValidationError: The bytes are not a decodable image.
            EngineFailureError: The engine failed.
        """
        ...

    @abstractmethod
    async def terminate(self) -> None:
        ...


class OCREngine(ABC):
    """Factory for recognition workers."""

    name: str = "ocr"

    @abstractmethod
    def create_worker(
        self, language: str, parameters: Mapping[str, str]
    ) -> RecognitionWorker:
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the engine is installed and callable.

        Returns: True if reachable, False otherwise. Never raises.
        """
        ...

    @asynccontextmanager
    async def worker(
        self, language: str, parameters: Mapping[str, str]
    ) -> AsyncIterator[RecognitionWorker]:
        """Initialized worker that is always terminated on exit."""
        worker = self.create_worker(language, parameters)
        try:
            await worker.initialize()
            yield worker
        finally:
            await worker.terminate()
            logger.debug("%s worker terminated (language=%s)", self.name, language)
