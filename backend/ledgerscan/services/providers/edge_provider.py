"""
Edge Function Extraction Provider.

Posts documents to a hosted extraction function that runs OCR and the
multimodal model server-side. Wire contract:
request ``{fileData, fileName, fileType}``, response
``{documentType, extractedData}``.
"""
from typing import Any, Dict, Optional

import httpx

from ...core.config import EDGE_FUNCTION_KEY, EDGE_FUNCTION_URL, EXTRACTION_TIMEOUT_SECONDS
from ...core.exceptions import ExtractionUnavailableError, MalformedResponseError
from ...core.logging_config import get_logger
from .base import ExtractionProvider, ExtractionRequest, classify_status

logger = get_logger(__name__)


class EdgeFunctionProvider(ExtractionProvider):
    """Extraction through a hosted edge function."""

    name = "edge"
    # The hosted function performs its own OCR enhancement
    uses_ocr_context = False

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: float = EXTRACTION_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url or EDGE_FUNCTION_URL
        self.api_key = api_key if api_key is not None else EDGE_FUNCTION_KEY
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
            headers["apikey"] = self.api_key
        return headers

    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        if not self.url:
            raise ExtractionUnavailableError("Edge function URL not configured")

        body = {
            "fileData": request.encoded,
            "fileName": request.file_name,
            "fileType": request.file_type,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.url, json=body, headers=self._headers())
        except httpx.TimeoutException as e:
            raise ExtractionUnavailableError(f"Extraction request timed out: {e}")
        except httpx.HTTPError as e:
            logger.error(f"Edge function request failed: {e}")
            raise ExtractionUnavailableError(f"Extraction request failed: {e}")

        if response.status_code >= 400:
            logger.error(f"Edge function error: {response.status_code} {response.text[:200]}")
            raise classify_status(response.status_code, _error_detail(response))

        try:
            payload = response.json()
        except ValueError:
            raise MalformedResponseError()

        if not isinstance(payload, dict):
            raise MalformedResponseError()
        return payload


def _error_detail(response: httpx.Response) -> Optional[str]:
    try:
        payload = response.json()
    except ValueError:
        return response.text or None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return None
