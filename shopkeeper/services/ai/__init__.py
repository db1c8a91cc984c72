"""AI collaborators: receipt reader and product recognizer."""

from shopkeeper.services.ai.interface import (
    SUPPORTED_MIME_TYPES,
    AIServiceError,
    ProductRecognitionError,
    ProductRecognizerInterface,
    QuotaExceededError,
    ReceiptReaderInterface,
    UnrecognizedReceiptError,
)

__all__ = [
    "SUPPORTED_MIME_TYPES",
    "AIServiceError",
    "ProductRecognitionError",
    "ProductRecognizerInterface",
    "QuotaExceededError",
    "ReceiptReaderInterface",
    "UnrecognizedReceiptError",
]
