"""
Shared dependencies for routers.
Provides persistence and service initialization.

This module manages service lifecycle and dependency injection:
the record store, the exchange-rate resolver, the extraction gateway and
the single batch processor are created once on startup and shared by all
request handlers.
"""
import asyncio
from typing import Optional

from ..core.config import AI_PROVIDER, DATABASE_TYPE, DB_DIR
from ..core.logging_config import get_logger
from ..repositories.document_repository import DocumentRecordStore
from ..services.batch_processor import BatchProcessor, BatchSummary, CancellationToken
from ..services.database import DatabaseFactory
from ..services.exchange_rates import ExchangeRateResolver
from ..services.export_service import SpreadsheetExporter
from ..services.extraction_gateway import ExtractionGateway
from ..services.ocr_service import OcrEnhancer
from ..services.providers import AIProviderFactory

logger = get_logger(__name__)

# Global services (will be initialized on startup)
local_store = None
record_store: Optional[DocumentRecordStore] = None
resolver: Optional[ExchangeRateResolver] = None
gateway: Optional[ExtractionGateway] = None
batch_processor: Optional[BatchProcessor] = None
exporter: Optional[SpreadsheetExporter] = None

# Background run of the batch processor
batch_task: Optional[asyncio.Task] = None
last_batch_error: Optional[str] = None


async def initialize_database():
    """Initialize the local snapshot store, the optional mirror and load records."""
    global local_store, record_store

    logger.info(f"Initializing database: {DATABASE_TYPE}")
    if DATABASE_TYPE.lower() == "json":
        logger.info("  → Database Type: JSON (file-based snapshot)")
        logger.debug(f"  → Database Path: {DB_DIR}")
    elif DATABASE_TYPE.lower() == "memory":
        logger.info("  → Database Type: Memory (in-memory, non-persistent)")

    local_store = await DatabaseFactory.create_and_initialize(DATABASE_TYPE, data_dir=DB_DIR)
    mirror = DatabaseFactory.create_mirror()
    record_store = DocumentRecordStore(local_store, mirror=mirror)
    records = await record_store.load()
    logger.info(f"  ✅ Record store ready ({len(records)} record(s) loaded)")


async def initialize_services():
    """
    Initialize all services after the record store is ready.

    This function sets up:
    - Exchange-rate resolver (live rates with static fallback)
    - Extraction gateway with the configured provider and OCR enhancer
    - Batch processor
    - Spreadsheet exporter
    """
    global resolver, gateway, batch_processor, exporter

    if record_store is None:
        await initialize_database()

    logger.info("Initializing services...")

    logger.info("  → Starting Exchange Rate Resolver...")
    resolver = ExchangeRateResolver()
    logger.info("  ✅ Exchange Rate Resolver initialized")

    logger.info("  → Starting Extraction Gateway...")
    logger.info(f"    → Provider: {AI_PROVIDER}")
    provider = AIProviderFactory.get_provider()
    ocr_enhancer = OcrEnhancer()
    if not ocr_enhancer.is_configured:
        logger.info("    → OCR enhancement disabled (OCR_API_KEY not set)")
    gateway = ExtractionGateway(provider, ocr_enhancer=ocr_enhancer)
    logger.info(f"  ✅ Extraction Gateway initialized ({gateway.provider_name})")

    batch_processor = BatchProcessor(record_store, gateway, resolver, progress_callback=_log_progress)
    exporter = SpreadsheetExporter()

    logger.info("✅ All services initialized successfully")


async def shutdown_services():
    """Wait for a running batch and flush pending mirror writes."""
    if batch_processor is not None and batch_processor.is_running:
        batch_processor.stop()
    if batch_task is not None and not batch_task.done():
        try:
            await batch_task
        except Exception as e:
            logger.error(f"Batch failed during shutdown: {e}")
    if record_store is not None:
        await record_store.drain_mirror()
    if local_store is not None:
        await local_store.close()
    logger.info("Services shut down")


def _log_progress(summary: BatchSummary) -> None:
    logger.debug(f"Batch progress: {summary.processed}/{summary.total}")


def start_batch_run(resume: bool = False) -> asyncio.Task:
    """
    Run the batch processor in the background.
    A persistence failure is kept in `last_batch_error` for the status endpoint.

    While a run task exists and has not finished, that task is returned; it
    picks up everything queued before it drains the queue.
    """
    global batch_task, last_batch_error

    if batch_task is not None and not batch_task.done():
        logger.debug("Batch run already scheduled, queued documents join it")
        return batch_task

    processor = get_batch_processor()
    last_batch_error = None

    async def _run():
        global last_batch_error
        token = CancellationToken()
        try:
            if resume:
                return await processor.resume(token)
            return await processor.run(token)
        except Exception as e:
            last_batch_error = str(e)
            logger.error(f"Batch run failed: {e}", exc_info=True)
            raise

    batch_task = asyncio.create_task(_run())
    batch_task.add_done_callback(_consume_task_result)
    return batch_task


def _consume_task_result(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()


def get_record_store() -> DocumentRecordStore:
    """Get record store (dependency injection)."""
    if record_store is None:
        raise RuntimeError("Record store not initialized")
    return record_store


def get_resolver() -> ExchangeRateResolver:
    """Get exchange-rate resolver (dependency injection)."""
    if resolver is None:
        raise RuntimeError("Exchange rate resolver not initialized")
    return resolver


def get_gateway() -> ExtractionGateway:
    if gateway is None:
        raise RuntimeError("Extraction gateway not initialized")
    return gateway


def get_batch_processor() -> BatchProcessor:
    """Get batch processor (dependency injection)."""
    if batch_processor is None:
        raise RuntimeError("Batch processor not initialized")
    return batch_processor


def get_exporter() -> SpreadsheetExporter:
    if exporter is None:
        raise RuntimeError("Exporter not initialized")
    return exporter
