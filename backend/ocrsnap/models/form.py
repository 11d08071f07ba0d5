"""
OCRSnap Backend — Request-Scoped Domain Models
===============================================

What:  Plain immutable value objects passed between the decoder, the
       recognition configurator and the OCR engine.
Why:   None of these are persisted; they live for exactly one request.
How:   Frozen dataclasses. The mappings inside ParsedForm are owned by the
       form and never mutated after decode() returns.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_FILENAME = "unknown"
DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class FileAttachment:
    """A single file part of a multipart body."""

    filename: str = DEFAULT_FILENAME
    content_type: str = DEFAULT_CONTENT_TYPE
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ParsedForm:
    """
    Output of the multipart decoder.

    Invariant: `fields` and `files` never share a key.
    """

    fields: Dict[str, str] = field(default_factory=dict)
    files: Dict[str, FileAttachment] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.fields) + len(self.files)


@dataclass(frozen=True)
class RecognitionRequest:
    """Options and payload for one recognition call."""

    image_bytes: bytes
    mode: str = "fast"
    language: str = "eng"


@dataclass(frozen=True)
class RecognitionOutput:
    """
    What the engine hands back.

    confidence: Mean word confidence on Tesseract's 0-100 scale.
    lines:      Per-line text when the engine reports segmentation, else None.
    """

    text: str
    confidence: float
    lines: Optional[List[str]] = None
