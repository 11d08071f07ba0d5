# Routes package init
"""
OCRSnap Backend — API Routes Package
=====================================

What:  HTTP route handlers that accept requests and return responses.

Route Inventory:
    - ocr.py:     POST /api/ocr   (upload image, get recognized text)
    - health.py:  GET  /health    (service health check)

Routes handle HTTP details only (body, headers, status codes) and delegate
decoding and recognition to the services package.
"""
