"""
Domain entities - Core business objects.
These represent the business concepts, not database models.
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from .value_objects import CurrencyCode, DocumentId
from ..core.exceptions import InvalidStatusTransitionError


class DocumentType(str, Enum):
    BANK_STATEMENT = "bank_statement"
    INVOICE = "invoice"
    RECEIPT = "receipt"
    UNKNOWN = "unknown"


class DocumentStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ExpenseCategory(str, Enum):
    TRAVEL = "travel"
    MEALS = "meals"
    UTILITIES = "utilities"
    SOFTWARE = "software"
    PROFESSIONAL_SERVICES = "professional services"
    OFFICE_SUPPLIES = "office supplies"
    TELECOMMUNICATIONS = "telecommunications"
    INSURANCE = "insurance"
    RENT = "rent"
    OTHER = "other"


@dataclass(frozen=True)
class ExtractedData:
    """
    Fields extracted from a financial document.

    Every field is independently optional; None means "not determined" and is
    distinct from zero. Amounts without a CHF suffix are in original currency.
    """
    document_date: Optional[date] = None
    issuer: Optional[str] = None
    document_number: Optional[str] = None
    total_amount: Optional[Decimal] = None
    vat_amount: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    original_currency: Optional[CurrencyCode] = None
    total_amount_chf: Optional[Decimal] = None
    vat_amount_chf: Optional[Decimal] = None
    net_amount_chf: Optional[Decimal] = None
    expense_category: Optional[ExpenseCategory] = None

    def with_chf(
        self,
        total_amount_chf: Optional[Decimal],
        vat_amount_chf: Optional[Decimal],
        net_amount_chf: Optional[Decimal]
    ) -> "ExtractedData":
        return replace(
            self,
            total_amount_chf=total_amount_chf,
            vat_amount_chf=vat_amount_chf,
            net_amount_chf=net_amount_chf,
        )


@dataclass
class DocumentRecord:
    """
    Document record entity - one per uploaded file.
    This is a pure domain object, independent of persistence.
    """
    id: DocumentId
    file_name: str
    file_type: str
    uploaded_at: datetime
    document_type: DocumentType = DocumentType.UNKNOWN
    status: DocumentStatus = DocumentStatus.PROCESSING
    extracted_data: ExtractedData = field(default_factory=ExtractedData)
    error_message: Optional[str] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def new(cls, file_name: str, file_type: str) -> "DocumentRecord":
        """Create a placeholder record in processing state."""
        return cls(
            id=DocumentId(str(uuid.uuid4())),
            file_name=file_name,
            file_type=file_type,
            uploaded_at=datetime.now(timezone.utc),
        )

    def is_completed(self) -> bool:
        return self.status == DocumentStatus.COMPLETED

    def is_processing(self) -> bool:
        return self.status == DocumentStatus.PROCESSING

    def is_failed(self) -> bool:
        return self.status == DocumentStatus.ERROR

    def _ensure_processing(self, target: DocumentStatus) -> None:
        if not self.is_processing():
            raise InvalidStatusTransitionError(
                f"Document {self.id} cannot move from {self.status.value} to {target.value}"
            )

    def mark_completed(self, document_type: DocumentType, data: ExtractedData) -> None:
        """Mark document as completed with extraction results."""
        self._ensure_processing(DocumentStatus.COMPLETED)
        self.document_type = document_type
        self.extracted_data = data
        self.status = DocumentStatus.COMPLETED
        self.error_message = None
        self.updated_at = datetime.now(timezone.utc)

    def mark_failed(self, message: str) -> None:
        """Mark document as failed."""
        self._ensure_processing(DocumentStatus.ERROR)
        self.status = DocumentStatus.ERROR
        self.error_message = message
        self.updated_at = datetime.now(timezone.utc)
