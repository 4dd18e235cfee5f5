import asyncio
from datetime import date
from decimal import Decimal

import pytest

from conftest import ScriptedProvider, invoice_payload
from ledgerscan.core.exceptions import (
    ExtractionUnavailableError,
    MalformedResponseError,
    QuotaExhaustedError,
)
from ledgerscan.domain.entities import DocumentType, ExpenseCategory
from ledgerscan.services.extraction_gateway import ExtractionGateway, parse_extraction_response
from ledgerscan.services.ocr_service import OcrResult
from ledgerscan.services.providers.base import ExtractionRequest

REQUEST = ExtractionRequest(file_name="invoice.pdf", file_type="application/pdf", content=b"%PDF")


class StubOcr:
    def __init__(self, result):
        self.result = result
        self.calls = 0

    async def enhance(self, request):
        self.calls += 1
        return self.result


async def test_valid_payload_becomes_domain_types():
    gateway = ExtractionGateway(ScriptedProvider(default=invoice_payload()))
    result = await gateway.extract(REQUEST)

    assert result.document_type == DocumentType.INVOICE
    assert result.provider == "scripted"
    data = result.extracted_data
    assert data.document_date == date(2024, 3, 15)
    assert data.total_amount == Decimal("100.00")
    assert data.original_currency == "EUR"
    assert data.expense_category == ExpenseCategory.SOFTWARE
    assert data.total_amount_chf is None


def test_unknown_category_maps_to_other():
    response = parse_extraction_response(invoice_payload(category="Entertainment"))
    assert response.extracted_data.expense_category == ExpenseCategory.OTHER

    response = parse_extraction_response(invoice_payload(category="office_supplies"))
    assert response.extracted_data.expense_category == ExpenseCategory.OFFICE_SUPPLIES


def test_currency_symbols_and_blank_fields():
    payload = invoice_payload(currency="€")
    payload["extractedData"]["issuer"] = "  "
    payload["extractedData"]["vatAmount"] = ""
    response = parse_extraction_response(payload)

    assert response.extracted_data.original_currency == "EUR"
    assert response.extracted_data.issuer is None
    assert response.extracted_data.vat_amount is None


def test_document_type_is_case_insensitive():
    response = parse_extraction_response(invoice_payload(document_type="Bank Statement"))
    assert response.document_type == DocumentType.BANK_STATEMENT


def test_missing_data_block_is_empty():
    response = parse_extraction_response({"documentType": "receipt", "extractedData": None})
    assert response.extracted_data.total_amount is None


@pytest.mark.parametrize("payload", [
    "not json",
    {"extractedData": {}},
    {"documentType": "contract", "extractedData": {}},
    {"documentType": "invoice", "extractedData": {"totalAmount": "lots"}},
    {"documentType": "invoice", "extractedData": {"originalCurrency": "EURO DOLLARS"}},
    {"documentType": "invoice", "extractedData": {"documentDate": "yesterday"}},
])
async def test_schema_violations_are_malformed(payload):
    gateway = ExtractionGateway(ScriptedProvider(default=payload))
    with pytest.raises(MalformedResponseError):
        await gateway.extract(REQUEST)


async def test_provider_errors_propagate_unchanged():
    gateway = ExtractionGateway(ScriptedProvider(default=QuotaExhaustedError(status_code=402)))
    with pytest.raises(QuotaExhaustedError) as exc_info:
        await gateway.extract(REQUEST)
    assert exc_info.value.message == "AI credits depleted. Please add more credits."


async def test_timeout_is_unavailable():
    provider = ScriptedProvider(default=invoice_payload())

    async def hang():
        await asyncio.sleep(5)

    provider.hooks["invoice.pdf"] = hang
    gateway = ExtractionGateway(provider, timeout_seconds=0.05)
    with pytest.raises(ExtractionUnavailableError) as exc_info:
        await gateway.extract(REQUEST)
    assert "timed out" in exc_info.value.message


async def test_unexpected_provider_bug_is_unavailable():
    provider = ScriptedProvider(default=invoice_payload())

    async def explode():
        raise KeyError("oops")

    provider.hooks["invoice.pdf"] = explode
    with pytest.raises(ExtractionUnavailableError):
        await ExtractionGateway(provider).extract(REQUEST)


async def test_ocr_text_is_passed_as_context():
    provider = ScriptedProvider(default=invoice_payload())
    ocr = StubOcr(OcrResult(text="Total EUR 100.00", confidence=0.97))
    result = await ExtractionGateway(provider, ocr_enhancer=ocr).extract(REQUEST)

    assert provider.ocr_texts == ["Total EUR 100.00"]
    assert result.ocr_used is True


async def test_unusable_ocr_does_not_block_extraction():
    provider = ScriptedProvider(default=invoice_payload())
    result = await ExtractionGateway(provider, ocr_enhancer=StubOcr(None)).extract(REQUEST)

    assert provider.ocr_texts == [None]
    assert result.ocr_used is False
    assert result.document_type == DocumentType.INVOICE


async def test_ocr_skipped_for_providers_without_ocr_context():
    provider = ScriptedProvider(default=invoice_payload())
    provider.uses_ocr_context = False
    ocr = StubOcr(OcrResult(text="ignored", confidence=0.99))
    await ExtractionGateway(provider, ocr_enhancer=ocr).extract(REQUEST)

    assert ocr.calls == 0
    assert provider.ocr_texts == [None]
