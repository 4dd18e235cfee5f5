"""
Batch Processor - sequential processing of uploaded documents.

Placeholders for every file are stored before any extraction starts. Files
are then processed one at a time; a cancellation token is checked before each
file, and quota exhaustion cancels the rest of the batch. Items that were
never started stay in processing state and remain queued so resume() can
pick them up later in the same process.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..core.exceptions import (
    BatchInProgressError,
    ExtractionError,
    PersistenceError,
    QuotaExhaustedError,
)
from ..core.logging_config import get_logger
from ..domain.entities import DocumentRecord
from ..domain.value_objects import DocumentId
from ..repositories.interfaces import IDocumentRecordStore
from .exchange_rates import ExchangeRateResolver
from .extraction_gateway import ExtractionGateway, ExtractionResult
from .providers.base import ExtractionRequest

logger = get_logger(__name__)


class BatchState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class HaltReason(str, Enum):
    USER_STOP = "user_stop"
    QUOTA = "quota"


QUOTA_MESSAGE = "AI credits depleted. Please add more credits."


@dataclass(frozen=True)
class UploadedFile:
    """A file as received from the user, before any processing."""
    file_name: str
    file_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class CancellationToken:
    """Cooperative cancellation flag for one batch run."""

    def __init__(self):
        self._cancelled = False
        self.reason: Optional[HaltReason] = None

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: HaltReason = HaltReason.USER_STOP) -> None:
        # First reason wins
        if not self._cancelled:
            self._cancelled = True
            self.reason = reason


@dataclass
class BatchSummary:
    """Progress and outcome of a batch run."""
    total: int
    completed: int = 0
    failed: int = 0
    skipped: int = 0
    remaining: int = 0
    halted_reason: Optional[HaltReason] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: Optional[datetime] = None

    @property
    def processed(self) -> int:
        return self.completed + self.failed

    @property
    def message(self) -> str:
        base = f"Processed {self.processed} of {self.total} document(s)"
        if self.halted_reason == HaltReason.QUOTA:
            return f"{QUOTA_MESSAGE} {base}; {self.remaining} left in queue."
        if self.halted_reason == HaltReason.USER_STOP:
            return f"{base}; stopped with {self.remaining} left in queue."
        return base

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "completed": self.completed,
            "failed": self.failed,
            "skipped": self.skipped,
            "remaining": self.remaining,
            "processed": self.processed,
            "halted_reason": self.halted_reason.value if self.halted_reason else None,
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


ProgressCallback = Callable[[BatchSummary], Any]


class BatchProcessor:
    """
    Orchestrates extraction, currency conversion and persistence for a batch.
    Only one run can be active at a time.
    """

    def __init__(
        self,
        store: IDocumentRecordStore,
        gateway: ExtractionGateway,
        resolver: ExchangeRateResolver,
        progress_callback: Optional[ProgressCallback] = None
    ):
        self.store = store
        self.gateway = gateway
        self.resolver = resolver
        self.progress_callback = progress_callback

        self._pending: List[Tuple[DocumentId, UploadedFile]] = []
        self._state = BatchState.IDLE
        self._token: Optional[CancellationToken] = None
        self._summary: Optional[BatchSummary] = None
        self._run_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._state == BatchState.RUNNING

    @property
    def state(self) -> BatchState:
        return self._state

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def last_summary(self) -> Optional[BatchSummary]:
        return self._summary

    async def submit(self, files: List[UploadedFile]) -> List[DocumentRecord]:
        """
        Store a processing placeholder for every file, in file order.

        Raises:
            BatchInProgressError: A run is active
        """
        if self.is_running:
            raise BatchInProgressError("A batch is already being processed")

        records = []
        for uploaded in files:
            record = DocumentRecord.new(uploaded.file_name, uploaded.file_type)
            await self.store.upsert(record)
            self._pending.append((record.id, uploaded))
            records.append(record)

        logger.info(f"Queued {len(records)} document(s) for processing")
        return records

    async def run(self, token: Optional[CancellationToken] = None) -> BatchSummary:
        """
        Process queued documents sequentially until the queue is empty or
        the token is cancelled.

        Raises:
            BatchInProgressError: A run is active
            PersistenceError: Local snapshot could not be written
        """
        if self._run_lock.locked():
            raise BatchInProgressError("A batch is already being processed")

        async with self._run_lock:
            token = token or CancellationToken()
            self._token = token
            self._state = BatchState.RUNNING
            summary = BatchSummary(total=len(self._pending), remaining=len(self._pending))
            self._summary = summary
            logger.info(f"Batch started: {summary.total} document(s) via {self.gateway.provider_name}")

            try:
                while self._pending:
                    if token.is_cancelled:
                        break

                    doc_id, uploaded = self._pending.pop(0)
                    summary.remaining = len(self._pending)

                    record = await self.store.get(doc_id)
                    if record is None or not record.is_processing():
                        logger.info(f"Skipping {uploaded.file_name}: record no longer pending")
                        summary.skipped += 1
                        continue

                    try:
                        outcome = await self._process_record(record, uploaded, token)
                    except PersistenceError:
                        # Record is still Processing; keep it first in line for resume
                        self._pending.insert(0, (doc_id, uploaded))
                        raise
                    if outcome is None:
                        summary.skipped += 1
                    elif outcome:
                        summary.completed += 1
                    else:
                        summary.failed += 1
                    self._report(summary)
            finally:
                summary.remaining = len(self._pending)
                summary.halted_reason = token.reason if token.is_cancelled else None
                summary.finished_at = datetime.now(timezone.utc)
                self._state = BatchState.STOPPED if summary.halted_reason else BatchState.IDLE

            if summary.halted_reason == HaltReason.QUOTA:
                logger.warning(f"Batch halted on quota exhaustion: {summary.message}")
            else:
                logger.info(f"Batch finished: {summary.message}")
            return summary

    async def process(self, files: List[UploadedFile], token: Optional[CancellationToken] = None) -> BatchSummary:
        """Submit files and run the batch to the end."""
        await self.submit(files)
        return await self.run(token)

    async def resume(self, token: Optional[CancellationToken] = None) -> BatchSummary:
        """Continue items abandoned by a stop or a quota halt."""
        logger.info(f"Resuming {len(self._pending)} queued document(s)")
        return await self.run(token)

    def stop(self) -> bool:
        """
        Request cancellation of the active run.
        The document in flight finishes normally; the next one is not started.
        """
        if not self.is_running or self._token is None:
            return False
        self._token.cancel(HaltReason.USER_STOP)
        logger.info("Stop requested, finishing current document")
        return True

    def status(self) -> Dict[str, Any]:
        return {
            "state": self._state.value,
            "is_running": self.is_running,
            "pending": len(self._pending),
            "provider": self.gateway.provider_name,
            "provider_is_remote": self.gateway.is_remote,
            "rates_source": self.resolver.rates_source,
            "summary": self._summary.to_dict() if self._summary else None,
        }

    async def _process_record(
        self,
        record: DocumentRecord,
        uploaded: UploadedFile,
        token: CancellationToken
    ) -> Optional[bool]:
        """True when completed, False when failed, None when the record was deleted meanwhile."""
        request = ExtractionRequest(
            file_name=uploaded.file_name,
            file_type=uploaded.file_type,
            content=uploaded.content,
        )

        try:
            result = await self.gateway.extract(request)
        except QuotaExhaustedError as e:
            logger.error(f"Quota exhausted while processing {uploaded.file_name}")
            record.mark_failed(e.message)
            stored = await self.store.update(record)
            token.cancel(HaltReason.QUOTA)
            return False if stored is not None else None
        except ExtractionError as e:
            logger.error(f"Error processing {uploaded.file_name}: {e.message}")
            record.mark_failed(e.message)
            return False if await self.store.update(record) is not None else None

        if not await self._complete(record, result):
            return None
        logger.info(f"Processed {uploaded.file_name} as {record.document_type.value}")
        return True

    async def _complete(self, record: DocumentRecord, result: ExtractionResult) -> bool:
        data = result.extracted_data
        currency = data.original_currency
        converted = data.with_chf(
            await self.resolver.convert_to_chf(data.total_amount, currency),
            await self.resolver.convert_to_chf(data.vat_amount, currency),
            await self.resolver.convert_to_chf(data.net_amount, currency),
        )
        record.mark_completed(result.document_type, converted)
        return await self.store.update(record) is not None

    def _report(self, summary: BatchSummary) -> None:
        if self.progress_callback is None:
            return
        try:
            self.progress_callback(summary)
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")
