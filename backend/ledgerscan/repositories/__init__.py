"""
Repository layer - Abstracts data access.
Follows Repository Pattern for clean separation of data access from business logic.
"""
from .document_repository import DocumentRecordStore
from .interfaces import IDocumentRecordStore

__all__ = [
    "DocumentRecordStore",
    "IDocumentRecordStore",
]
