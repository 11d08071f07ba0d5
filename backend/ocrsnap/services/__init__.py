# Services package init
"""
OCRSnap Backend — Services Layer
=================================

What:  Business logic between the routes (HTTP) and the OCR engine.

Service Inventory:
    - form_decoder: Hand-written multipart/form-data decoder
    - recognition_config: Mode/language → engine parameters, text post-processing
    - OCREngine / RecognitionWorker (abstract): engine lifecycle contract
    - TesseractService: Concrete engine using pytesseract
    - OCRService: Orchestrates form → recognize → respond
"""
