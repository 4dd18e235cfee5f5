import httpx
import pytest

from conftest import ScriptedProvider, invoice_payload
from ledgerscan.domain.entities import DocumentStatus
from ledgerscan.routers import dependencies
from ledgerscan.services.batch_processor import BatchProcessor, UploadedFile
from ledgerscan.services.exchange_rates import ExchangeRateResolver
from ledgerscan.services.extraction_gateway import ExtractionGateway


def _offline(request):
    raise httpx.ConnectError("offline", request=request)


@pytest.fixture
def processor(record_store, monkeypatch):
    resolver = ExchangeRateResolver(url="https://rates.test/CHF", transport=httpx.MockTransport(_offline))
    processor = BatchProcessor(record_store, ExtractionGateway(ScriptedProvider(default=invoice_payload())), resolver)
    monkeypatch.setattr(dependencies, "batch_processor", processor)
    monkeypatch.setattr(dependencies, "batch_task", None)
    monkeypatch.setattr(dependencies, "last_batch_error", None)
    return processor


def _file(name):
    return [UploadedFile(file_name=name, file_type="application/pdf", content=b"%PDF")]


async def test_back_to_back_uploads_share_one_run(processor, record_store):
    await processor.submit(_file("first.pdf"))
    first = dependencies.start_batch_run()
    await processor.submit(_file("second.pdf"))
    second = dependencies.start_batch_run()

    assert second is first
    summary = await first

    assert summary.completed == 2
    assert dependencies.last_batch_error is None
    assert dependencies.batch_task is first
    assert [r.status for r in await record_store.list()] == [DocumentStatus.COMPLETED] * 2


async def test_finished_run_is_replaced_by_a_new_one(processor):
    await processor.submit(_file("first.pdf"))
    first = dependencies.start_batch_run()
    await first

    await processor.submit(_file("second.pdf"))
    second = dependencies.start_batch_run()
    assert second is not first
    assert (await second).completed == 1
