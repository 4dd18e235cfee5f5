"""
Base Extraction Provider Interface.

All extraction providers must inherit from this base class and implement
all abstract methods.
"""
import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ...core.exceptions import (
    ExtractionError,
    ExtractionUnavailableError,
    QuotaExhaustedError,
    RateLimitedError,
)


@dataclass(frozen=True)
class ExtractionRequest:
    """A single document handed to an extraction provider."""
    file_name: str
    file_type: str
    content: bytes

    @property
    def is_image(self) -> bool:
        return self.file_type.startswith("image/")

    @property
    def is_pdf(self) -> bool:
        return self.file_type == "application/pdf"

    @property
    def encoded(self) -> str:
        """Base64 payload without data-URI prefix."""
        return base64.b64encode(self.content).decode("ascii")

    @property
    def data_uri(self) -> str:
        return f"data:{self.file_type};base64,{self.encoded}"


def classify_status(status_code: int, detail: Optional[str] = None) -> ExtractionError:
    """
    Map an HTTP status from an extraction backend onto the error taxonomy.

    429 is a rate limit, 402/403 mean the quota is gone, anything else is a
    generic unavailability.
    """
    if status_code == 429:
        return RateLimitedError(status_code=status_code)
    if status_code in (402, 403):
        return QuotaExhaustedError(status_code=status_code)
    message = f"Extraction service error: {status_code}"
    if detail:
        message = f"{message} ({detail[:200]})"
    return ExtractionUnavailableError(message, status_code=status_code)


class ExtractionProvider(ABC):
    """
    Abstract base class for extraction providers.

    A provider turns one document into the raw response payload
    ``{"documentType": ..., "extractedData": {...}}``. Validation and
    normalisation of that payload happen in the extraction gateway.
    """

    name: str = "base"
    is_remote: bool = True
    # Whether OCR text improves this provider's answer
    uses_ocr_context: bool = True

    @abstractmethod
    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        """
        Analyze a financial document.

        Args:
            request: Document bytes, MIME type and file name
            ocr_text: Optional OCR text to pass along as extra context

        Returns:
            Raw response payload (not yet validated)

        Raises:
            ExtractionError: Classified failure of the call
        """
        pass
