"""
OCRSnap Backend — Test Configuration (conftest.py)
===================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixtures:
    ├── fake_engine: In-memory OCREngine recording its lifecycle calls
    ├── sample_png_bytes: Small real PNG for engine tests
    ├── multipart_body: Builder for raw multipart/form-data bodies
    └── test_client: HTTPX AsyncClient wired to the app with fake_engine injected
"""

import io
import os
from typing import Dict, List, Optional, Tuple

# Override settings for testing BEFORE any ocrsnap imports
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["CORS_ORIGINS"] = "*"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from PIL import Image

from ocrsnap.models.form import RecognitionOutput
from ocrsnap.services.ocr_engine import OCREngine, RecognitionWorker


# ══════════════════════════════════════════════════════════════════════════
# Fake OCR Engine
# ══════════════════════════════════════════════════════════════════════════

class FakeWorker(RecognitionWorker):
    def __init__(self, engine: "FakeEngine", language: str, parameters: Dict[str, str]):
        self.engine = engine
        self.language = language
        self.parameters = parameters

    async def initialize(self) -> None:
        self.engine.events.append("initialize")
        if self.engine.init_error is not None:
            raise self.engine.init_error

    async def recognize(self, image_bytes: bytes) -> RecognitionOutput:
        self.engine.events.append("recognize")
        self.engine.images.append(image_bytes)
        if self.engine.recognize_error is not None:
            raise self.engine.recognize_error
        return self.engine.output

    async def terminate(self) -> None:
        self.engine.events.append("terminate")


class FakeEngine(OCREngine):
    """Records every worker it creates and what each worker was asked to do."""

    name = "fake"

    def __init__(self):
        self.output = RecognitionOutput(
            text="Hello\n\n\n\nWorld\n",
            confidence=91.5,
            lines=["Hello", "World"],
        )
        self.init_error: Optional[Exception] = None
        self.recognize_error: Optional[Exception] = None
        self.available = True
        self.calls: List[Tuple[str, Dict[str, str]]] = []
        self.events: List[str] = []
        self.images: List[bytes] = []

    def create_worker(self, language, parameters) -> FakeWorker:
        self.calls.append((language, dict(parameters)))
        return FakeWorker(self, language, dict(parameters))

    async def health_check(self) -> bool:
        return self.available


@pytest.fixture
def fake_engine():
    return FakeEngine()


# ══════════════════════════════════════════════════════════════════════════
# Payload Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def sample_png_bytes():
    """A tiny white PNG produced by Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", (40, 20), "white").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def multipart_body():
    """
    Returns a builder: build(boundary, fields, files) -> bytes

    fields: {"name": "value"}
    files:  {"name": (filename, content_type, data)}; content_type may be None
    """

    def build(
        boundary: str,
        fields: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Tuple[str, Optional[str], bytes]]] = None,
    ) -> bytes:
        delimiter = b"--" + boundary.encode()
        chunks = []
        for name, value in (fields or {}).items():
            chunks.append(
                delimiter + b"\r\n"
                + f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode()
                + value.encode() + b"\r\n"
            )
        for name, (filename, content_type, data) in (files or {}).items():
            headers = f'Content-Disposition: form-data; name="{name}"; filename="{filename}"\r\n'
            if content_type:
                headers += f"Content-Type: {content_type}\r\n"
            chunks.append(delimiter + b"\r\n" + headers.encode() + b"\r\n" + data + b"\r\n")
        chunks.append(delimiter + b"--\r\n")
        return b"".join(chunks)

    return build


# ══════════════════════════════════════════════════════════════════════════
# HTTP Client
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(fake_engine):
    """
    HTTPX AsyncClient talking to the FastAPI app through ASGITransport,
    with the OCR engine dependency replaced by fake_engine.
    """
    from ocrsnap.main import app
    from ocrsnap.services.tesseract_service import get_ocr_engine

    app.dependency_overrides[get_ocr_engine] = lambda: fake_engine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
