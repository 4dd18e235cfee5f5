"""
OCR enhancement service.

Optional pre-processing step: sends the document to an OCR API and returns
its text when the service is confident enough. Purely additive; every
failure resolves to None so extraction proceeds with the raw document.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..core.config import (
    OCR_API_KEY,
    OCR_API_URL,
    OCR_CONFIDENCE_THRESHOLD,
    OCR_TIMEOUT_SECONDS,
)
from ..core.exceptions import MalformedResponseError
from ..core.logging_config import get_logger
from .providers.base import ExtractionRequest

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.9

# Priority order for the text field of the OCR response
_TEXT_FIELDS = ("text", "extracted_text", "ocr_text")
_CONFIDENCE_FIELDS = ("confidence", "ocr_confidence")


@dataclass(frozen=True)
class OcrResult:
    text: str
    confidence: float


def parse_ocr_response(payload: Any) -> OcrResult:
    """
    Adapt a raw OCR payload into an OcrResult.

    Text comes from the first non-empty of ``text``, ``extracted_text``,
    ``ocr_text``. Confidence comes from ``confidence`` then
    ``ocr_confidence`` and defaults to 0.9 when neither is present.

    Raises:
        MalformedResponseError: Payload is not an object, carries no text,
            or reports a confidence outside [0, 1]
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError("OCR response is not a JSON object")

    text = None
    for field_name in _TEXT_FIELDS:
        value = payload.get(field_name)
        if isinstance(value, str) and value.strip():
            text = value
            break
    if text is None:
        raise MalformedResponseError("OCR response carries no text")

    confidence = DEFAULT_CONFIDENCE
    for field_name in _CONFIDENCE_FIELDS:
        value = payload.get(field_name)
        if value is not None:
            confidence = value
            break

    if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
        raise MalformedResponseError("OCR confidence is not a number")
    if not 0 <= confidence <= 1:
        raise MalformedResponseError(f"OCR confidence out of range: {confidence}")

    return OcrResult(text=text, confidence=float(confidence))


class OcrEnhancer:
    """Client for the OCR enhancement API."""

    def __init__(
        self,
        api_key: Optional[str] = OCR_API_KEY,
        url: str = OCR_API_URL,
        confidence_threshold: float = OCR_CONFIDENCE_THRESHOLD,
        timeout_seconds: float = OCR_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.url = url
        self.confidence_threshold = confidence_threshold
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _build_body(self, request: ExtractionRequest) -> Optional[Dict[str, Any]]:
        body: Dict[str, Any] = {
            "options": {
                "enhance": True,
                "ocr": True,
                "extract_tables": True,
                "extract_text": True,
                "language": "auto",
            }
        }
        if request.is_image:
            body["image"] = request.data_uri
        elif request.is_pdf:
            body["pdf"] = request.data_uri
        else:
            return None
        return body

    async def enhance(self, request: ExtractionRequest) -> Optional[OcrResult]:
        """Run OCR on the document; None when unusable for any reason."""
        if not self.is_configured:
            logger.debug("OCR API key not configured, skipping OCR enhancement")
            return None

        body = self._build_body(request)
        if body is None:
            logger.debug(f"OCR skipped for unsupported type {request.file_type}")
            return None

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(
                    self.url,
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
            if response.status_code >= 400:
                logger.warning(f"OCR API error: {response.status_code} {response.text[:200]}")
                return None
            result = parse_ocr_response(response.json())
        except (httpx.HTTPError, ValueError, MalformedResponseError) as e:
            logger.warning(f"OCR enhancement failed for {request.file_name}: {e}")
            return None

        if result.confidence <= self.confidence_threshold:
            logger.warning(
                f"OCR confidence {result.confidence:.2f} too low for {request.file_name}, ignoring OCR text"
            )
            return None

        logger.info(f"OCR extracted text for {request.file_name} (confidence: {result.confidence:.2f})")
        return result
