from decimal import Decimal

import pytest

from conftest import FailingSnapshotStore, RecordingMirror
from ledgerscan.core.exceptions import PersistenceError
from ledgerscan.domain.entities import DocumentRecord, DocumentStatus, DocumentType, ExtractedData
from ledgerscan.repositories.document_repository import DocumentRecordStore
from ledgerscan.services.database import JSONAdapter


def _record(name: str) -> DocumentRecord:
    return DocumentRecord.new(name, "application/pdf")


async def test_list_keeps_insertion_order(record_store):
    names = ["a.pdf", "b.pdf", "c.pdf"]
    for name in names:
        await record_store.upsert(_record(name))
    assert [r.file_name for r in await record_store.list()] == names


async def test_upsert_replaces_in_place(record_store):
    first, second = _record("a.pdf"), _record("b.pdf")
    await record_store.upsert(first)
    await record_store.upsert(second)

    first.mark_failed("boom")
    await record_store.upsert(first)

    records = await record_store.list()
    assert [r.id for r in records] == [first.id, second.id]
    assert records[0].status == DocumentStatus.ERROR


async def test_returned_records_are_copies(record_store):
    record = _record("a.pdf")
    await record_store.upsert(record)

    fetched = await record_store.get(record.id)
    fetched.mark_failed("local change")
    assert (await record_store.get(record.id)).is_processing()


async def test_failed_snapshot_write_leaves_state_unchanged():
    local = FailingSnapshotStore()
    store = DocumentRecordStore(local)
    kept = _record("kept.pdf")
    await store.upsert(kept)

    local.fail_writes = True
    with pytest.raises(PersistenceError):
        await store.upsert(_record("lost.pdf"))
    with pytest.raises(PersistenceError):
        await store.remove(kept.id)

    assert [r.id for r in await store.list()] == [kept.id]


async def test_update_after_remove_is_a_no_op(record_store, memory_store):
    record = _record("a.pdf")
    await record_store.upsert(record)
    assert await record_store.remove(record.id) is True
    saves = memory_store.save_count

    record.mark_completed(DocumentType.INVOICE, ExtractedData(total_amount=Decimal("10")))
    assert await record_store.update(record) is None
    assert await record_store.get(record.id) is None
    assert memory_store.save_count == saves


async def test_remove_all_is_idempotent(record_store):
    await record_store.upsert(_record("a.pdf"))
    await record_store.upsert(_record("b.pdf"))

    assert await record_store.remove_all() == 2
    assert await record_store.remove_all() == 0
    assert await record_store.list() == []
    assert await record_store.remove("missing") is False


async def test_mirror_receives_writes(memory_store):
    mirror = RecordingMirror()
    store = DocumentRecordStore(memory_store, mirror=mirror)
    a, b = _record("a.pdf"), _record("b.pdf")
    await store.upsert(a)
    await store.upsert(b)
    await store.remove(a.id)
    await store.remove_all()
    await store.drain_mirror()

    assert mirror.upserts == [a.id, b.id]
    assert mirror.deletes == [a.id, b.id]


async def test_mirror_failure_never_surfaces(memory_store):
    store = DocumentRecordStore(memory_store, mirror=RecordingMirror(fail=True))
    record = _record("a.pdf")
    await store.upsert(record)
    await store.drain_mirror()

    assert (await store.get(record.id)).file_name == "a.pdf"


async def test_json_snapshot_survives_restart(tmp_path):
    adapter = JSONAdapter(data_dir=tmp_path, storage_key="financial-documents")
    await adapter.initialize()
    store = DocumentRecordStore(adapter)

    done = _record("invoice.pdf")
    done.mark_completed(
        DocumentType.INVOICE,
        ExtractedData(total_amount=Decimal("100.00"), original_currency="EUR", total_amount_chf=Decimal("105.26")),
    )
    pending = _record("pending.pdf")
    await store.upsert(done)
    await store.upsert(pending)
    assert (tmp_path / "financial-documents.json").exists()

    reloaded = DocumentRecordStore(JSONAdapter(data_dir=tmp_path, storage_key="financial-documents"))
    records = await reloaded.load()

    assert [r.id for r in records] == [done.id, pending.id]
    assert records[0].extracted_data.total_amount_chf == Decimal("105.26")
    assert records[0].document_type == DocumentType.INVOICE
    assert records[1].is_processing()


async def test_corrupt_snapshot_raises(tmp_path):
    (tmp_path / "financial-documents.json").write_text("{not json", encoding="utf-8")
    store = DocumentRecordStore(JSONAdapter(data_dir=tmp_path))
    with pytest.raises(PersistenceError):
        await store.load()


async def test_unreadable_record_is_skipped(memory_store):
    good = _record("good.pdf")
    store = DocumentRecordStore(memory_store)
    await store.upsert(good)
    snapshot = await memory_store.load_snapshot()
    await memory_store.save_snapshot(snapshot + [{"id": "broken"}])

    records = await DocumentRecordStore(memory_store).load()
    assert [r.id for r in records] == [good.id]
