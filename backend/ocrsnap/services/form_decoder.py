"""
OCRSnap Backend — Multipart Form Decoder
=========================================

What:  Decodes a buffered multipart/form-data body into named text fields
       and file attachments.
Who:   Called by the OCR route with the raw request body and the boundary
       taken from the Content-Type header.
When:  Once per upload, after the full body has been read into memory.

Supported subset:
    One boundary, a handful of named parts, each either a plain field or a
    single file (filename + Content-Type). Nested multipart, transfer
    encodings and header folding are not handled.

Algorithm:
    1. No boundary → MalformedRequestError, nothing is guessed.
    2. Walk the body by byte offsets, locating each literal `--<boundary>`.
       The text between two delimiters is one candidate segment. A body with
       no delimiter at all cannot be split and is rejected.
    3. A segment counts only if its header block has a Content-Disposition
       line with a non-empty `name="..."`. Preamble, epilogue and the closing
       `--` never do.
    4. The value is everything after the first CRLFCRLF up to the next
       delimiter. No separator → empty value.
    5. `filename="..."` present → FileAttachment, otherwise a text field.
    6. Duplicate names: last write wins, across both mappings.

Known limitation:
    File bytes that contain `--<boundary>` are split there. Clients generate
    boundaries that do not occur in the payload; nothing here escapes them.
"""

import logging
import re
from typing import Dict, Iterator, Optional, Tuple

from ocrsnap.exceptions import MalformedRequestError
from ocrsnap.models.form import (
    DEFAULT_CONTENT_TYPE,
    DEFAULT_FILENAME,
    FileAttachment,
    ParsedForm,
)

logger = logging.getLogger(__name__)

HEADER_SEPARATOR = b"\r\n\r\n"

# Header matching runs over the header block only, never over payload bytes.
_DISPOSITION_RE = re.compile(rb"^content-disposition:", re.IGNORECASE | re.MULTILINE)
_NAME_RE = re.compile(rb'(?:^|[;\s])name="([^"]+)"', re.IGNORECASE)
_FILENAME_RE = re.compile(rb'filename="([^"]*)"', re.IGNORECASE)
_CONTENT_TYPE_RE = re.compile(rb"^content-type:[ \t]*([^\r\n]+)", re.IGNORECASE | re.MULTILINE)

_BOUNDARY_RE = re.compile(r'boundary=(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)


def extract_boundary(content_type: Optional[str]) -> Optional[str]:
    """
    Pull the boundary token out of a Content-Type header.

    Returns None when the header is missing, is not a multipart type, or
    has no `boundary=` parameter. Surrounding quotes are removed.
    """
    if not content_type:
        return None
    if not content_type.strip().lower().startswith("multipart/"):
        return None
    match = _BOUNDARY_RE.search(content_type)
    if not match:
        return None
    return match.group(1) or match.group(2)


def _segment_offsets(raw: bytes, delimiter: bytes) -> Iterator[Tuple[int, int]]:
    """Yield (start, end) offsets of the text between consecutive delimiters."""
    start = 0
    step = len(delimiter)
    while True:
        idx = raw.find(delimiter, start)
        if idx == -1:
            yield start, len(raw)
            return
        yield start, idx
        start = idx + step


def _strip_delimiter_artifact(data: bytes) -> bytes:
    # The CRLF in front of the next delimiter belongs to the delimiter.
    if data.endswith(b"\r\n"):
        return data[:-2]
    if data.endswith(b"\n"):
        return data[:-1]
    return data


def decode(raw: bytes, boundary: Optional[str]) -> ParsedForm:
    """
    Decode a multipart/form-data body.

    Args:
        raw:       The complete request body.
        boundary:  Boundary token from the Content-Type header (without the
                   leading dashes). Treated as literal bytes.

    Returns:
        ParsedForm with one entry per meaningful part.

    Raises:
        MalformedRequestError: boundary missing, or body has no delimiter.
    """
    if not boundary:
        raise MalformedRequestError(
            message="No boundary found in Content-Type",
            context={"reason": "missing_boundary"},
        )

    delimiter = b"--" + boundary.encode("utf-8")
    if raw.find(delimiter) == -1:
        raise MalformedRequestError(
            message="Request body could not be split into multipart parts",
            context={"reason": "no_delimiter", "body_size": len(raw)},
        )

    fields: Dict[str, str] = {}
    files: Dict[str, FileAttachment] = {}
    skipped = 0

    for start, end in _segment_offsets(raw, delimiter):
        if start >= end:
            continue

        sep = raw.find(HEADER_SEPARATOR, start, end)
        if sep == -1:
            headers = raw[start:end]
            value = b""
        else:
            headers = raw[start:sep]
            value = raw[sep + len(HEADER_SEPARATOR):end]

        if not _DISPOSITION_RE.search(headers.lstrip()):
            skipped += 1
            continue

        name_match = _NAME_RE.search(headers)
        if not name_match:
            skipped += 1
            continue
        name = name_match.group(1).decode("utf-8", errors="replace")

        filename_match = _FILENAME_RE.search(headers)
        if filename_match:
            filename = filename_match.group(1).decode("utf-8", errors="replace")
            type_match = _CONTENT_TYPE_RE.search(headers)
            content_type = (
                type_match.group(1).decode("latin-1").strip() if type_match else ""
            )
            files[name] = FileAttachment(
                filename=filename or DEFAULT_FILENAME,
                content_type=content_type or DEFAULT_CONTENT_TYPE,
                data=_strip_delimiter_artifact(value),
            )
            fields.pop(name, None)
        else:
            fields[name] = value.decode("utf-8", errors="replace").strip()
            files.pop(name, None)

    logger.debug(
        "Decoded multipart body: %d fields, %d files, %d segments skipped",
        len(fields),
        len(files),
        skipped,
    )
    return ParsedForm(fields=fields, files=files)
