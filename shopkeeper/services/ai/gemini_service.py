"""
Gemini Receipt Reader and Product Recognizer

DESIGN DECISION: One multimodal model does both jobs. The prompt asks for
a single JSON object and the response is parsed with the lenient reading
models, so a half-right answer still produces an editable draft.

Retries: one retry on transient failures. Quota errors are never retried.
"""

import json
from typing import Optional, Sequence

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shopkeeper.config import get_settings
from shopkeeper.config.settings import GeminiSettings
from shopkeeper.models.drafts import ReceiptReading, RecognizedProduct
from shopkeeper.services.ai.interface import (
    SUPPORTED_MIME_TYPES,
    AIServiceError,
    ProductRecognitionError,
    ProductRecognizerInterface,
    QuotaExceededError,
    ReceiptReaderInterface,
    UnrecognizedReceiptError,
)


RECEIPT_PROMPT = """You read delivery slips and purchase receipts for a small grocery shop.

Extract every purchased line from the photo.

Respond with ONLY a JSON object in this exact format:
{"category": "ICE", "items": [{"name": "item name", "quantity": 1, "unitPrice": 0, "totalPrice": 0}], "iceMetrics": {"delivered": 0, "returned": 0}, "notes": ""}

Rules:
- category is one of ICE, BEVERAGE, OTHERS
- Use ICE for ice delivery slips and fill iceMetrics with bags delivered and bags returned
- Numbers are plain numbers without currency symbols
- If a value is unreadable use 0; never guess item names"""

PRODUCT_PROMPT = """Identify the retail product in this photo: brand and pack size.

{hints}

Respond with ONLY a JSON object in this exact format:
{{"name": "brand and size"}}

If no product is visible respond with {{"name": ""}}."""

_QUOTA_MARKERS = ("quota", "resource_exhausted", "429", "billing")


def extract_json_object(text: str) -> Optional[dict]:
    """
    Pull the first JSON object out of a model response.

    Models wrap JSON in ```json fences or add prose around it.
    """
    start = text.find("{")
    end = text.rfind("}") + 1
    if start < 0 or end <= start:
        return None
    try:
        data = json.loads(text[start:end])
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None


def _is_quota_error(error: Exception) -> bool:
    if isinstance(error, google_exceptions.ResourceExhausted):
        return True
    message = str(error).lower()
    return any(marker in message for marker in _QUOTA_MARKERS)


class GeminiClient:
    """Thin wrapper around one configured GenerativeModel."""

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
                "response_mime_type": "application/json",
            }
        )

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        retry=retry_if_not_exception_type(QuotaExceededError),
        reraise=True,
    )
    async def generate_json(
        self,
        image_bytes: bytes,
        mime_type: str,
        prompt: str,
    ) -> Optional[dict]:
        """
        Send one image and prompt, return the parsed JSON object or None.

        Raises:
            QuotaExceededError: provider refused for quota reasons
            AIServiceError: transport or provider failure (after retry)
        """
        if mime_type not in SUPPORTED_MIME_TYPES:
            raise AIServiceError(f"Unsupported image type: {mime_type}")

        try:
            response = await self._model.generate_content_async([
                {"mime_type": mime_type, "data": image_bytes},
                prompt,
            ])
            text = (response.text or "").strip()
        except Exception as e:
            if _is_quota_error(e):
                raise QuotaExceededError(str(e)) from e
            raise AIServiceError(f"Gemini call failed: {e}") from e

        return extract_json_object(text)


class GeminiReceiptReader(ReceiptReaderInterface):
    """Receipt reader backed by Gemini."""

    def __init__(self, client: Optional[GeminiClient] = None):
        self._client = client or GeminiClient()

    async def read_receipt(
        self,
        image_bytes: bytes,
        mime_type: str = "image/jpeg",
    ) -> ReceiptReading:
        data = await self._client.generate_json(image_bytes, mime_type, RECEIPT_PROMPT)
        if data is None:
            raise UnrecognizedReceiptError("Model response contained no JSON object")
        return ReceiptReading.model_validate(data)


class GeminiProductRecognizer(ProductRecognizerInterface):
    """Product recognizer backed by Gemini."""

    def __init__(self, client: Optional[GeminiClient] = None):
        self._client = client or GeminiClient()

    async def recognize_product(
        self,
        image_bytes: bytes,
        known_names: Sequence[str] = (),
        mime_type: str = "image/jpeg",
    ) -> RecognizedProduct:
        hints = ""
        if known_names:
            # First 50 names only
            hints = "Products this shop sells: " + ", ".join(list(known_names)[:50])
        prompt = PRODUCT_PROMPT.format(hints=hints)

        data = await self._client.generate_json(image_bytes, mime_type, prompt)
        if data is None:
            raise ProductRecognitionError("Model response contained no JSON object")

        product = RecognizedProduct.model_validate(data)
        if not product.name:
            raise ProductRecognitionError("No product visible in the photo")
        return product
