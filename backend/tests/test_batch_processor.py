from decimal import Decimal

import httpx
import pytest

from conftest import FailingSnapshotStore, ScriptedProvider, invoice_payload
from ledgerscan.core.exceptions import (
    BatchInProgressError,
    MalformedResponseError,
    PersistenceError,
    QuotaExhaustedError,
)
from ledgerscan.domain.entities import DocumentStatus, DocumentType
from ledgerscan.services.batch_processor import (
    QUOTA_MESSAGE,
    BatchProcessor,
    BatchState,
    CancellationToken,
    HaltReason,
    UploadedFile,
)
from ledgerscan.services.exchange_rates import ExchangeRateResolver
from ledgerscan.repositories.document_repository import DocumentRecordStore
from ledgerscan.services.extraction_gateway import ExtractionGateway


def _files(*names):
    return [UploadedFile(file_name=name, file_type="application/pdf", content=b"%PDF") for name in names]


@pytest.fixture
def provider():
    return ScriptedProvider(default=invoice_payload())


@pytest.fixture
def resolver():
    def handler(request):
        raise httpx.ConnectError("offline", request=request)

    return ExchangeRateResolver(url="https://rates.test/CHF", transport=httpx.MockTransport(handler))


@pytest.fixture
def processor(record_store, provider, resolver):
    return BatchProcessor(record_store, ExtractionGateway(provider), resolver)


async def test_placeholders_stored_in_file_order(processor, record_store):
    records = await processor.submit(_files("a.pdf", "b.pdf", "c.pdf"))

    stored = await record_store.list()
    assert [r.file_name for r in stored] == ["a.pdf", "b.pdf", "c.pdf"]
    assert all(r.status == DocumentStatus.PROCESSING for r in stored)
    assert [r.id for r in records] == [r.id for r in stored]
    assert processor.pending_count == 3


async def test_completed_records_carry_chf_amounts(processor, record_store, provider):
    summary = await processor.process(_files("a.pdf", "b.pdf"))

    assert provider.calls == ["a.pdf", "b.pdf"]
    assert summary.completed == 2
    assert summary.message == "Processed 2 of 2 document(s)"
    assert processor.state == BatchState.IDLE

    record = (await record_store.list())[0]
    assert record.status == DocumentStatus.COMPLETED
    assert record.document_type == DocumentType.INVOICE
    assert record.extracted_data.total_amount == Decimal("100.00")
    assert record.extracted_data.total_amount_chf == Decimal("105.26")
    assert record.extracted_data.vat_amount_chf is None


async def test_one_failure_does_not_abort_batch(processor, record_store, provider):
    provider.answers["b.pdf"] = MalformedResponseError()
    summary = await processor.process(_files("a.pdf", "b.pdf", "c.pdf"))

    statuses = [r.status for r in await record_store.list()]
    assert statuses == [DocumentStatus.COMPLETED, DocumentStatus.ERROR, DocumentStatus.COMPLETED]
    assert (await record_store.list())[1].error_message == "Invalid AI response format"
    assert summary.failed == 1
    assert summary.halted_reason is None


async def test_quota_exhaustion_halts_remaining_items(processor, record_store, provider):
    provider.answers["2.pdf"] = QuotaExhaustedError(status_code=402)
    summary = await processor.process(_files("1.pdf", "2.pdf", "3.pdf", "4.pdf", "5.pdf"))

    records = await record_store.list()
    assert [r.status for r in records] == [
        DocumentStatus.COMPLETED,
        DocumentStatus.ERROR,
        DocumentStatus.PROCESSING,
        DocumentStatus.PROCESSING,
        DocumentStatus.PROCESSING,
    ]
    assert records[1].error_message == QUOTA_MESSAGE
    assert provider.calls == ["1.pdf", "2.pdf"]
    assert summary.halted_reason == HaltReason.QUOTA
    assert summary.remaining == 3
    assert summary.message.startswith(QUOTA_MESSAGE)
    assert processor.state == BatchState.STOPPED
    assert processor.is_running is False


async def test_resume_continues_abandoned_items(processor, record_store, provider):
    provider.answers["2.pdf"] = QuotaExhaustedError(status_code=402)
    await processor.process(_files("1.pdf", "2.pdf", "3.pdf"))

    del provider.answers["2.pdf"]
    summary = await processor.resume()

    assert provider.calls == ["1.pdf", "2.pdf", "3.pdf"]
    assert summary.total == 1
    assert summary.completed == 1
    statuses = [r.status for r in await record_store.list()]
    assert statuses == [DocumentStatus.COMPLETED, DocumentStatus.ERROR, DocumentStatus.COMPLETED]
    assert processor.state == BatchState.IDLE


async def test_stop_finishes_current_document_only(processor, record_store, provider):
    async def stop_during_first():
        assert processor.stop() is True

    provider.hooks["a.pdf"] = stop_during_first
    summary = await processor.process(_files("a.pdf", "b.pdf", "c.pdf"))

    statuses = [r.status for r in await record_store.list()]
    assert statuses == [DocumentStatus.COMPLETED, DocumentStatus.PROCESSING, DocumentStatus.PROCESSING]
    assert summary.halted_reason == HaltReason.USER_STOP
    assert summary.message == "Processed 1 of 3 document(s); stopped with 2 left in queue."
    assert processor.stop() is False


async def test_pre_cancelled_token_processes_nothing(processor, provider):
    token = CancellationToken()
    token.cancel()
    summary = await processor.process(_files("a.pdf"), token)

    assert provider.calls == []
    assert summary.remaining == 1


async def test_record_deleted_mid_flight_stays_deleted(processor, record_store, provider):
    records = await processor.submit(_files("a.pdf", "b.pdf", "c.pdf"))

    async def delete_in_flight():
        await record_store.remove(records[0].id)
        await record_store.remove(records[1].id)

    provider.hooks["a.pdf"] = delete_in_flight
    summary = await processor.run()

    remaining = await record_store.list()
    assert [r.file_name for r in remaining] == ["c.pdf"]
    assert remaining[0].is_completed()
    assert provider.calls == ["a.pdf", "c.pdf"]
    assert summary.skipped == 2
    assert summary.completed == 1


async def test_submit_rejected_while_running(processor, provider):
    async def submit_again():
        with pytest.raises(BatchInProgressError):
            await processor.submit(_files("late.pdf"))
        with pytest.raises(BatchInProgressError):
            await processor.run()

    provider.hooks["a.pdf"] = submit_again
    summary = await processor.process(_files("a.pdf"))
    assert provider.calls == ["a.pdf"]
    assert summary.completed == 1


async def test_progress_callback_failure_is_ignored(record_store, provider, resolver):
    seen = []

    def callback(summary):
        seen.append(summary.processed)
        raise RuntimeError("ui went away")

    processor = BatchProcessor(record_store, ExtractionGateway(provider), resolver, progress_callback=callback)
    summary = await processor.process(_files("a.pdf", "b.pdf"))

    assert seen == [1, 2]
    assert summary.completed == 2


async def test_status_reports_provider_and_rates(processor):
    await processor.process(_files("a.pdf"))
    status = processor.status()

    assert status["state"] == "idle"
    assert status["provider"] == "scripted"
    assert status["rates_source"] == "fallback"
    assert status["summary"]["completed"] == 1


async def test_record_stays_queued_when_snapshot_write_fails(provider, resolver):
    local = FailingSnapshotStore()
    store = DocumentRecordStore(local)
    processor = BatchProcessor(store, ExtractionGateway(provider), resolver)
    await processor.submit(_files("a.pdf", "b.pdf"))

    local.fail_writes = True
    with pytest.raises(PersistenceError):
        await processor.run()

    assert processor.pending_count == 2
    assert [r.status for r in await store.list()] == [DocumentStatus.PROCESSING] * 2

    local.fail_writes = False
    summary = await processor.resume()
    assert summary.completed == 2
    assert provider.calls == ["a.pdf", "a.pdf", "b.pdf"]
