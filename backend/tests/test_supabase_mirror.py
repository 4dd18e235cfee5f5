from decimal import Decimal

import pytest

from ledgerscan.domain.entities import DocumentRecord, DocumentType, ExpenseCategory, ExtractedData
from ledgerscan.services.database import DatabaseFactory, JSONAdapter, MemoryAdapter, SupabaseMirror
from ledgerscan.services.database import factory as database_factory
from ledgerscan.services.database.supabase_mirror import to_row


class FakeQuery:
    def __init__(self, log, table):
        self.log = log
        self.table = table

    def upsert(self, row):
        self.log.append(("upsert", self.table, row))
        return self

    def delete(self):
        return self

    def eq(self, column, value):
        self.log.append(("delete", self.table, value))
        return self

    def in_(self, column, values):
        self.log.append(("delete_many", self.table, list(values)))
        return self

    def execute(self):
        return None


class FakeSupabase:
    def __init__(self):
        self.log = []

    def table(self, name):
        return FakeQuery(self.log, name)


def _completed_record():
    record = DocumentRecord.new("acme.pdf", "application/pdf")
    record.mark_completed(
        DocumentType.INVOICE,
        ExtractedData(
            issuer="Acme AG",
            total_amount=Decimal("100.00"),
            total_amount_chf=Decimal("105.26"),
            original_currency="EUR",
            expense_category=ExpenseCategory.PROFESSIONAL_SERVICES,
        ),
    )
    return record


def test_row_mapping():
    record = _completed_record()
    row = to_row(record, "user-1")

    assert row["id"] == record.id
    assert row["user_id"] == "user-1"
    assert row["total_amount_chf"] == 105.26
    assert row["vat_amount"] is None
    assert row["expense_category"] == "professional services"
    assert row["status"] == "completed"


async def test_mirror_calls():
    client = FakeSupabase()
    mirror = SupabaseMirror("https://x.supabase.co", "key", "processed_documents", "user-1", client=client)
    record = _completed_record()

    await mirror.upsert(record)
    await mirror.delete(record.id)
    await mirror.delete_many([])
    await mirror.delete_many(["a", "b"])

    assert [entry[0] for entry in client.log] == ["upsert", "delete", "delete_many"]
    assert client.log[0][1] == "processed_documents"
    assert client.log[2][2] == ["a", "b"]


def test_mirror_disabled_without_full_configuration(monkeypatch):
    monkeypatch.setattr(database_factory, "SUPABASE_URL", None)
    assert DatabaseFactory.create_mirror() is None

    monkeypatch.setattr(database_factory, "SUPABASE_URL", "https://x.supabase.co")
    monkeypatch.setattr(database_factory, "SUPABASE_KEY", "key")
    monkeypatch.setattr(database_factory, "SUPABASE_USER_ID", None)
    assert DatabaseFactory.create_mirror() is None


def test_local_store_types(tmp_path):
    assert isinstance(DatabaseFactory.create("memory"), MemoryAdapter)
    assert isinstance(DatabaseFactory.create("json", data_dir=str(tmp_path)), JSONAdapter)
    with pytest.raises(ValueError):
        DatabaseFactory.create("postgres")
