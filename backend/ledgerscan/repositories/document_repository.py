"""
Document Record Store - authoritative collection of document records.

In-memory state is backed by a local snapshot (the durability guarantee) and
optionally copied to a remote mirror. Every mutation writes the new snapshot
first and only then swaps the in-memory collection, so a failed local write
leaves memory untouched. Mirror writes run in the background in submission
order; their failures are logged and never roll back local state.
"""
import asyncio
import copy
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Dict, List, Optional, Set

from .interfaces import IDocumentRecordStore
from ..core.exceptions import PersistenceError
from ..core.logging_config import get_logger
from ..domain.entities import (
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ExpenseCategory,
    ExtractedData,
)
from ..domain.value_objects import CurrencyCode, DocumentId
from ..services.database.base import LocalSnapshotStore, RemoteMirror

logger = get_logger(__name__)

_AMOUNT_FIELDS = (
    "total_amount",
    "vat_amount",
    "net_amount",
    "total_amount_chf",
    "vat_amount_chf",
    "net_amount_chf",
)


def _decimal(value) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


class DocumentRecordStore(IDocumentRecordStore):
    """
    Two-tier store for document records.

    Deleting a record while the batch processor still holds it is resolved by
    update(): the late write is a no-op and the record stays deleted.
    """

    def __init__(self, local_store: LocalSnapshotStore, mirror: Optional[RemoteMirror] = None):
        """
        Initialize store with its persistence tiers.

        Args:
            local_store: Snapshot store (dependency injection)
            mirror: Optional best-effort remote mirror
        """
        self._local = local_store
        self._mirror = mirror
        # dicts keep insertion order, which is the list() order
        self._records: Dict[str, DocumentRecord] = {}
        self._lock = asyncio.Lock()
        self._mirror_lock = asyncio.Lock()
        self._mirror_tasks: Set[asyncio.Task] = set()

    @property
    def has_mirror(self) -> bool:
        return self._mirror is not None

    # Mapping

    def _to_dict(self, record: DocumentRecord) -> dict:
        """Convert domain entity to snapshot record."""
        data = record.extracted_data
        extracted = {
            "document_date": data.document_date.isoformat() if data.document_date else None,
            "issuer": data.issuer,
            "document_number": data.document_number,
            "original_currency": data.original_currency,
            "expense_category": data.expense_category.value if data.expense_category else None,
        }
        for name in _AMOUNT_FIELDS:
            value = getattr(data, name)
            extracted[name] = str(value) if value is not None else None

        return {
            "id": record.id,
            "file_name": record.file_name,
            "file_type": record.file_type,
            "uploaded_at": record.uploaded_at.isoformat(),
            "updated_at": record.updated_at.isoformat() if record.updated_at else None,
            "document_type": record.document_type.value,
            "status": record.status.value,
            "error_message": record.error_message,
            "extracted_data": extracted,
        }

    def _to_entity(self, data: dict) -> DocumentRecord:
        """Convert snapshot record to domain entity."""
        extracted = data.get("extracted_data") or {}
        category = extracted.get("expense_category")
        currency = extracted.get("original_currency")
        document_date = extracted.get("document_date")

        return DocumentRecord(
            id=DocumentId(data["id"]),
            file_name=data["file_name"],
            file_type=data.get("file_type", "application/octet-stream"),
            uploaded_at=datetime.fromisoformat(data["uploaded_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
            document_type=DocumentType(data.get("document_type", "unknown")),
            status=DocumentStatus(data.get("status", "processing")),
            error_message=data.get("error_message"),
            extracted_data=ExtractedData(
                document_date=date.fromisoformat(document_date) if document_date else None,
                issuer=extracted.get("issuer"),
                document_number=extracted.get("document_number"),
                original_currency=CurrencyCode(currency) if currency else None,
                expense_category=ExpenseCategory(category) if category else None,
                **{name: _decimal(extracted.get(name)) for name in _AMOUNT_FIELDS}
            ),
        )

    # Persistence

    async def _commit(self, records: Dict[str, DocumentRecord]) -> None:
        """Persist the candidate collection, then make it current."""
        snapshot = [self._to_dict(record) for record in records.values()]
        try:
            await self._local.save_snapshot(snapshot)
        except PersistenceError:
            logger.error("Local snapshot write failed, in-memory state unchanged")
            raise
        except OSError as e:
            logger.error(f"Local snapshot write failed, in-memory state unchanged: {e}")
            raise PersistenceError(str(e))
        self._records = records

    async def _mirror_call(self, description: str, call: Callable[[], Awaitable[None]]) -> None:
        async with self._mirror_lock:
            try:
                await call()
            except Exception as e:
                logger.warning(f"Remote mirror {description} failed: {e}")

    def _schedule_mirror(self, description: str, call: Callable[[], Awaitable[None]]) -> None:
        if self._mirror is None:
            return
        task = asyncio.get_running_loop().create_task(self._mirror_call(description, call))
        self._mirror_tasks.add(task)
        task.add_done_callback(self._mirror_tasks.discard)

    async def drain_mirror(self) -> None:
        """Wait for all pending mirror writes (used on shutdown and in tests)."""
        while self._mirror_tasks:
            await asyncio.gather(*list(self._mirror_tasks))

    # Operations

    async def load(self) -> List[DocumentRecord]:
        """
        Reconstruct state from the local snapshot.

        Unreadable individual records are skipped with a warning; an
        unreadable snapshot raises PersistenceError.
        """
        raw_records = await self._local.load_snapshot()
        records: Dict[str, DocumentRecord] = {}
        for raw in raw_records:
            try:
                record = self._to_entity(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping unreadable record in snapshot: {e}")
                continue
            records[record.id] = record

        async with self._lock:
            self._records = records

        stale = sum(1 for record in records.values() if record.is_processing())
        if stale:
            logger.warning(f"{stale} record(s) were left in processing state by a previous run")
        logger.info(f"Document store loaded with {len(records)} record(s)")
        return [copy.deepcopy(record) for record in records.values()]

    async def upsert(self, record: DocumentRecord) -> DocumentRecord:
        """Insert a record, or replace it in place keeping its position."""
        stored = copy.deepcopy(record)
        async with self._lock:
            candidate = dict(self._records)
            candidate[stored.id] = stored
            await self._commit(candidate)

        mirrored = copy.deepcopy(stored)
        self._schedule_mirror(f"upsert {stored.id}", lambda: self._mirror.upsert(mirrored))
        return copy.deepcopy(stored)

    async def update(self, record: DocumentRecord) -> Optional[DocumentRecord]:
        """
        Replace an existing record.

        Returns None without writing anything when the id is no longer in the
        store (deleted while being processed).
        """
        stored = copy.deepcopy(record)
        async with self._lock:
            if stored.id not in self._records:
                logger.info(f"Document {stored.id} was removed during processing, result discarded")
                return None
            candidate = dict(self._records)
            candidate[stored.id] = stored
            await self._commit(candidate)

        mirrored = copy.deepcopy(stored)
        self._schedule_mirror(f"upsert {stored.id}", lambda: self._mirror.upsert(mirrored))
        return copy.deepcopy(stored)

    async def get(self, doc_id: str) -> Optional[DocumentRecord]:
        record = self._records.get(doc_id)
        return copy.deepcopy(record) if record else None

    async def list(self) -> List[DocumentRecord]:
        """All records in insertion order (oldest first)."""
        return [copy.deepcopy(record) for record in self._records.values()]

    async def remove(self, doc_id: str) -> bool:
        async with self._lock:
            if doc_id not in self._records:
                return False
            candidate = dict(self._records)
            del candidate[doc_id]
            await self._commit(candidate)

        self._schedule_mirror(f"delete {doc_id}", lambda: self._mirror.delete(doc_id))
        return True

    async def remove_all(self) -> int:
        """Remove every record. Safe to call on an empty store."""
        async with self._lock:
            removed_ids = list(self._records.keys())
            await self._commit({})

        if removed_ids:
            self._schedule_mirror(
                f"delete {len(removed_ids)} record(s)",
                lambda: self._mirror.delete_many(removed_ids)
            )
        logger.info(f"Removed {len(removed_ids)} document record(s)")
        return len(removed_ids)
