"""
Repository interfaces - Define contracts for data access.
Business logic depends on these interfaces, not concrete implementations.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.entities import DocumentRecord


class IDocumentRecordStore(ABC):
    """
    Interface for document record access.
    Keyed by record id; list order is insertion order (oldest first).
    """

    @abstractmethod
    async def load(self) -> List[DocumentRecord]:
        """Rebuild in-memory state from the local snapshot."""
        pass

    @abstractmethod
    async def upsert(self, record: DocumentRecord) -> DocumentRecord:
        """Insert or replace a record."""
        pass

    @abstractmethod
    async def update(self, record: DocumentRecord) -> Optional[DocumentRecord]:
        """Replace an existing record; no-op returning None if it was removed."""
        pass

    @abstractmethod
    async def get(self, doc_id: str) -> Optional[DocumentRecord]:
        pass

    @abstractmethod
    async def list(self) -> List[DocumentRecord]:
        pass

    @abstractmethod
    async def remove(self, doc_id: str) -> bool:
        pass

    @abstractmethod
    async def remove_all(self) -> int:
        pass
