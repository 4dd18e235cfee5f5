"""
Extraction gateway.

Mediates every call to the configured extraction provider: optional OCR
enhancement, a hard timeout around the whole attempt, and validation of the
provider's payload into domain types. Callers only ever see an
ExtractionResult or one of the ExtractionError subclasses.
"""
import asyncio
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..core.config import EXTRACTION_TIMEOUT_SECONDS
from ..core.exceptions import (
    ExtractionError,
    ExtractionUnavailableError,
    MalformedResponseError,
)
from ..core.logging_config import get_logger
from ..domain.entities import DocumentType, ExpenseCategory, ExtractedData
from ..domain.value_objects import CurrencyCode, normalize_currency
from .ocr_service import OcrEnhancer
from .providers.base import ExtractionProvider, ExtractionRequest

logger = get_logger(__name__)

_CATEGORY_VALUES = {category.value for category in ExpenseCategory}


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class ExtractedDataPayload(BaseModel):
    """extractedData block of the wire response; every field nullable."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_date: Optional[date] = Field(default=None, alias="documentDate")
    issuer: Optional[str] = None
    document_number: Optional[str] = Field(default=None, alias="documentNumber")
    total_amount: Optional[Decimal] = Field(default=None, alias="totalAmount")
    original_currency: Optional[str] = Field(default=None, alias="originalCurrency")
    vat_amount: Optional[Decimal] = Field(default=None, alias="vatAmount")
    net_amount: Optional[Decimal] = Field(default=None, alias="netAmount")
    expense_category: Optional[ExpenseCategory] = Field(default=None, alias="expenseCategory")

    @field_validator("*", mode="before")
    @classmethod
    def blank_strings_are_absent(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("issuer", "document_number", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("total_amount", "vat_amount", "net_amount")
    @classmethod
    def finite_amount(cls, value: Optional[Decimal]) -> Optional[Decimal]:
        if value is not None and not value.is_finite():
            raise ValueError("amount must be a finite number")
        return value

    @field_validator("original_currency")
    @classmethod
    def iso_currency(cls, value: Optional[str]) -> Optional[str]:
        code = normalize_currency(value)
        if code is not None and (len(code) != 3 or not code.isalpha()):
            raise ValueError(f"not a currency code: {value}")
        return code

    @field_validator("expense_category", mode="before")
    @classmethod
    def closed_category(cls, value: Any) -> Any:
        if _blank_to_none(value) is None:
            return None
        normalized = str(value).strip().lower().replace("_", " ")
        return normalized if normalized in _CATEGORY_VALUES else ExpenseCategory.OTHER.value


class ExtractionResponse(BaseModel):
    """Full wire response of an extraction provider."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    document_type: DocumentType = Field(alias="documentType")
    extracted_data: ExtractedDataPayload = Field(default_factory=ExtractedDataPayload, alias="extractedData")

    @field_validator("document_type", mode="before")
    @classmethod
    def lower_document_type(cls, value: Any) -> Any:
        if value is None:
            return DocumentType.UNKNOWN.value
        return str(value).strip().lower().replace(" ", "_")

    @field_validator("extracted_data", mode="before")
    @classmethod
    def missing_data_block(cls, value: Any) -> Any:
        return {} if value is None else value


@dataclass(frozen=True)
class ExtractionResult:
    document_type: DocumentType
    extracted_data: ExtractedData
    provider: str
    ocr_used: bool = False


def parse_extraction_response(payload: Any) -> ExtractionResponse:
    """
    Validate a raw provider payload.

    Raises:
        MalformedResponseError: Payload violates the response schema
    """
    if not isinstance(payload, dict):
        raise MalformedResponseError()
    try:
        return ExtractionResponse.model_validate(payload)
    except ValidationError as e:
        logger.warning(f"Extraction response failed validation: {e.error_count()} error(s)")
        raise MalformedResponseError()


def to_extracted_data(response: ExtractionResponse) -> ExtractedData:
    data = response.extracted_data
    return ExtractedData(
        document_date=data.document_date,
        issuer=data.issuer,
        document_number=data.document_number,
        total_amount=data.total_amount,
        vat_amount=data.vat_amount,
        net_amount=data.net_amount,
        original_currency=CurrencyCode(data.original_currency) if data.original_currency else None,
        expense_category=data.expense_category,
    )


class ExtractionGateway:
    """Runs one extraction attempt per document against a provider."""

    def __init__(
        self,
        provider: ExtractionProvider,
        ocr_enhancer: Optional[OcrEnhancer] = None,
        timeout_seconds: float = EXTRACTION_TIMEOUT_SECONDS
    ):
        self.provider = provider
        self.ocr_enhancer = ocr_enhancer
        self.timeout_seconds = timeout_seconds

    @property
    def provider_name(self) -> str:
        return self.provider.name

    @property
    def is_remote(self) -> bool:
        return self.provider.is_remote

    async def _attempt(self, request: ExtractionRequest) -> ExtractionResult:
        ocr_text = None
        if self.ocr_enhancer is not None and self.provider.uses_ocr_context:
            ocr_result = await self.ocr_enhancer.enhance(request)
            if ocr_result is not None:
                ocr_text = ocr_result.text

        payload = await self.provider.analyze(request, ocr_text)
        response = parse_extraction_response(payload)
        return ExtractionResult(
            document_type=response.document_type,
            extracted_data=to_extracted_data(response),
            provider=self.provider.name,
            ocr_used=ocr_text is not None,
        )

    async def extract(self, request: ExtractionRequest) -> ExtractionResult:
        """
        Extract structured fields from one document.

        Raises:
            RateLimitedError, QuotaExhaustedError, MalformedResponseError,
            ExtractionUnavailableError
        """
        try:
            return await asyncio.wait_for(self._attempt(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Extraction of {request.file_name} timed out after {self.timeout_seconds}s")
            raise ExtractionUnavailableError(
                f"Extraction timed out after {self.timeout_seconds:g} seconds"
            )
        except ExtractionError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected extraction failure for {request.file_name}")
            raise ExtractionUnavailableError(f"Extraction failed: {e}")
