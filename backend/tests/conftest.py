import os
from typing import Any, Dict, List, Optional

import pytest

# Offline defaults before any ledgerscan module reads its configuration
os.environ.setdefault("DATABASE_TYPE", "memory")
os.environ.setdefault("AI_PROVIDER", "heuristic")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_TO_FILE", "false")

from ledgerscan.core.exceptions import ExtractionError
from ledgerscan.repositories.document_repository import DocumentRecordStore
from ledgerscan.services.database import MemoryAdapter, RemoteMirror
from ledgerscan.services.providers.base import ExtractionProvider, ExtractionRequest


class ScriptedProvider(ExtractionProvider):
    """Provider whose answers are scripted per file name."""

    name = "scripted"

    def __init__(self, answers: Optional[Dict[str, Any]] = None, default: Any = None):
        self.answers = answers or {}
        self.default = default
        self.calls: List[str] = []
        self.ocr_texts: List[Optional[str]] = []
        self.hooks: Dict[str, Any] = {}

    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        self.calls.append(request.file_name)
        self.ocr_texts.append(ocr_text)
        hook = self.hooks.get(request.file_name)
        if hook is not None:
            await hook()
        answer = self.answers.get(request.file_name, self.default)
        if isinstance(answer, ExtractionError):
            raise answer
        return answer


class RecordingMirror(RemoteMirror):
    name = "recording"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.upserts: List[str] = []
        self.deletes: List[str] = []

    async def upsert(self, record) -> None:
        if self.fail:
            raise ConnectionError("mirror offline")
        self.upserts.append(record.id)

    async def delete(self, doc_id: str) -> None:
        if self.fail:
            raise ConnectionError("mirror offline")
        self.deletes.append(doc_id)

    async def delete_many(self, doc_ids: List[str]) -> None:
        if self.fail:
            raise ConnectionError("mirror offline")
        self.deletes.extend(doc_ids)


class FailingSnapshotStore(MemoryAdapter):
    """Memory store whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    async def save_snapshot(self, records) -> None:
        if self.fail_writes:
            raise OSError("disk full")
        await super().save_snapshot(records)


def invoice_payload(
    total: str = "100.00",
    currency: str = "EUR",
    document_type: str = "invoice",
    issuer: str = "Acme AG",
    category: Optional[str] = "software"
) -> Dict[str, Any]:
    return {
        "documentType": document_type,
        "extractedData": {
            "documentDate": "2024-03-15",
            "issuer": issuer,
            "documentNumber": "INV-001",
            "totalAmount": total,
            "originalCurrency": currency,
            "vatAmount": None,
            "netAmount": None,
            "expenseCategory": category,
        },
    }


@pytest.fixture
def memory_store():
    return MemoryAdapter()


@pytest.fixture
def record_store(memory_store):
    return DocumentRecordStore(memory_store)


@pytest.fixture
def live_eur_rates():
    return {"base": "CHF", "rates": {"CHF": 1, "EUR": 1.25, "USD": 0.8}}
