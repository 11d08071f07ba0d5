"""
OCRSnap Backend — Application Package Initializer
==================================================

What: Marks the `ocrsnap` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    This backend follows the same layered layout for every request:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Decoding, configuration, OCR
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← Dataclasses + Pydantic
    └─────────────────────────────────────┘

    Nothing is persisted. Every object is built per request and dropped
    when the response is sent.
"""

__version__ = "1.0.0"
