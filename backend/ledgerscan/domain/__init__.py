"""
Domain layer - Contains business entities and domain logic.
This layer is independent of infrastructure and frameworks.
"""
from .entities import (
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ExpenseCategory,
    ExtractedData,
)
from .value_objects import CurrencyCode, DocumentId, REPORTING_CURRENCY, normalize_currency

__all__ = [
    "DocumentRecord",
    "DocumentStatus",
    "DocumentType",
    "ExpenseCategory",
    "ExtractedData",
    "CurrencyCode",
    "DocumentId",
    "REPORTING_CURRENCY",
    "normalize_currency",
]
