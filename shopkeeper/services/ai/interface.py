"""
AI Collaborator Interface

DESIGN DECISION: The receipt reader and the product recognizer are
abstract interfaces. This allows:
1. Fakes in tests (no network, no API key)
2. Swapping the model vendor without touching the sessions
3. A clear statement of what the core expects back

CRITICAL: Both collaborators return a BEST-EFFORT GUESS. Nothing they
return is written to the ledger until a user commits a session.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from shopkeeper.models.drafts import ReceiptReading, RecognizedProduct


SUPPORTED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp", "image/heic")


class AIServiceError(Exception):
    """Base exception for AI collaborator failures."""
    pass


class QuotaExceededError(AIServiceError):
    """The AI provider refused the call for quota or billing reasons."""
    pass


class UnrecognizedReceiptError(AIServiceError):
    """The image could not be read as a receipt."""
    pass


class ProductRecognitionError(AIServiceError):
    """The image could not be recognized as a product."""
    pass


class ReceiptReaderInterface(ABC):
    """Turns a receipt photo into a structured reading."""

    @abstractmethod
    async def read_receipt(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> ReceiptReading:
        """
        Read a receipt.

        Raises:
            QuotaExceededError: provider quota exhausted
            UnrecognizedReceiptError: output could not be interpreted
            AIServiceError: any other failure
        """
        pass


class ProductRecognizerInterface(ABC):
    """Names the product in a photo taken at the till."""

    @abstractmethod
    async def recognize_product(
        self,
        image_bytes: bytes,
        known_names: Sequence[str] = (),
        mime_type: str = "image/jpeg",
    ) -> RecognizedProduct:
        """
        Recognize a product.

        known_names are catalog names passed as hints; the label returned
        is still free text and must go through the fuzzy matcher.

        Raises:
            QuotaExceededError: provider quota exhausted
            ProductRecognitionError: nothing recognizable in the image
            AIServiceError: any other failure
        """
        pass
