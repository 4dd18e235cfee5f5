"""
Mappers between domain entities and DTOs.
Separates domain layer from API layer.
"""
from decimal import Decimal
from typing import List, Optional

from ..domain.entities import DocumentRecord, ExtractedData
from .dto import DocumentRecordDTO, ExtractedDataDTO


def _number(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None


class DocumentMapper:
    """Maps between DocumentRecord entity and DocumentRecordDTO."""

    @staticmethod
    def extracted_to_dto(data: ExtractedData) -> ExtractedDataDTO:
        return ExtractedDataDTO(
            document_date=data.document_date.isoformat() if data.document_date else None,
            issuer=data.issuer,
            document_number=data.document_number,
            total_amount=_number(data.total_amount),
            vat_amount=_number(data.vat_amount),
            net_amount=_number(data.net_amount),
            original_currency=data.original_currency,
            total_amount_chf=_number(data.total_amount_chf),
            vat_amount_chf=_number(data.vat_amount_chf),
            net_amount_chf=_number(data.net_amount_chf),
            expense_category=data.expense_category.value if data.expense_category else None,
        )

    @staticmethod
    def to_dto(record: DocumentRecord) -> DocumentRecordDTO:
        """Convert domain entity to DTO."""
        return DocumentRecordDTO(
            id=record.id,
            file_name=record.file_name,
            file_type=record.file_type,
            document_type=record.document_type.value,
            status=record.status.value,
            error_message=record.error_message,
            uploaded_at=record.uploaded_at.isoformat(),
            updated_at=record.updated_at.isoformat() if record.updated_at else None,
            extracted_data=DocumentMapper.extracted_to_dto(record.extracted_data),
        )

    @staticmethod
    def to_dto_list(records: List[DocumentRecord]) -> List[DocumentRecordDTO]:
        """Convert list of entities to DTOs."""
        return [DocumentMapper.to_dto(record) for record in records]
