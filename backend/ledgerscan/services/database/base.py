"""
Abstract base classes for persistence adapters.

The local tier holds the authoritative snapshot of all document records. The
remote tier is an optional mirror written best-effort; its interface never
appears in the local tier's contract.
"""
from abc import ABC, abstractmethod
from typing import Dict, List, TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.entities import DocumentRecord


class LocalSnapshotStore(ABC):
    """
    Abstract interface for the local snapshot.
    The whole collection is read and written as one ordered list of records.
    """

    @abstractmethod
    async def initialize(self):
        """Prepare the store (create directories, open files)."""
        pass

    @abstractmethod
    async def load_snapshot(self) -> List[Dict]:
        """
        Read the persisted collection.

        Raises:
            PersistenceError: Snapshot exists but cannot be read
        """
        pass

    @abstractmethod
    async def save_snapshot(self, records: List[Dict]) -> None:
        """
        Replace the persisted collection.

        Raises:
            PersistenceError: Snapshot could not be written
        """
        pass

    @abstractmethod
    async def close(self):
        pass


class RemoteMirror(ABC):
    """Best-effort remote copy of the document records."""

    name: str = "remote"

    @abstractmethod
    async def upsert(self, record: "DocumentRecord") -> None:
        pass

    @abstractmethod
    async def delete(self, doc_id: str) -> None:
        pass

    @abstractmethod
    async def delete_many(self, doc_ids: List[str]) -> None:
        pass
