from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook

from ledgerscan.core.exceptions import DocumentNotFoundError
from ledgerscan.domain.entities import DocumentRecord, DocumentType, ExpenseCategory, ExtractedData
from ledgerscan.services.export_service import HEADERS, NOT_FOUND, SpreadsheetExporter, export_file_name
from ledgerscan.services.summary_service import build_summary


def _completed(name, document_type, issuer=None, total=None, chf=None, currency=None, category=None, day=None):
    record = DocumentRecord.new(name, "application/pdf")
    record.mark_completed(
        document_type,
        ExtractedData(
            document_date=day,
            issuer=issuer,
            total_amount=total,
            total_amount_chf=chf,
            original_currency=currency,
            expense_category=category,
        ),
    )
    return record


@pytest.fixture
def records():
    failed = DocumentRecord.new("broken.pdf", "application/pdf")
    failed.mark_failed("Invalid AI response format")
    return [
        _completed("uber.pdf", DocumentType.RECEIPT, "Uber", Decimal("45.90"), Decimal("45.90"), "CHF",
                   ExpenseCategory.TRAVEL, date(2024, 3, 15)),
        _completed("acme.pdf", DocumentType.INVOICE, "Acme AG", Decimal("100.00"), Decimal("105.26"), "EUR",
                   ExpenseCategory.SOFTWARE, date(2024, 1, 10)),
        _completed("blank.pdf", DocumentType.INVOICE),
        DocumentRecord.new("pending.pdf", "image/png"),
        failed,
    ]


def test_export_one_type(records):
    output = SpreadsheetExporter().export_type(records, DocumentType.INVOICE)
    ws = load_workbook(output).active

    assert ws.title == "Invoices"
    assert [cell.value for cell in ws[1]] == HEADERS
    assert ws.max_row == 3
    assert ws["A2"].value == "acme.pdf"
    assert ws["G2"].value == pytest.approx(105.26)
    assert ws["C3"].value == NOT_FOUND
    assert ws["G3"].value == NOT_FOUND


def test_export_type_without_records(records):
    with pytest.raises(DocumentNotFoundError):
        SpreadsheetExporter().export_type(records, DocumentType.BANK_STATEMENT)


def test_export_all_has_sheet_per_non_empty_type(records):
    wb = load_workbook(SpreadsheetExporter().export_all(records))
    assert wb.sheetnames == ["Invoices", "Receipts"]

    with pytest.raises(DocumentNotFoundError):
        SpreadsheetExporter().export_all(records[3:])


def test_export_file_names():
    assert export_file_name(DocumentType.BANK_STATEMENT) == "Bank_Statements.xlsx"
    assert export_file_name() == "Financial_Documents.xlsx"


def test_summary_totals_and_breakdowns(records):
    summary = build_summary(records)

    assert summary["total_documents"] == 5
    assert summary["completed"] == 3
    assert summary["processing"] == 1
    assert summary["failed"] == 1
    assert summary["total_amount_chf"] == pytest.approx(151.16)
    assert summary["counts_by_type"] == {"bank_statement": 0, "invoice": 2, "receipt": 1}
    assert summary["unique_vendors"] == 2
    assert summary["top_vendors"][0] == {"vendor": "Acme AG", "count": 1, "total_chf": 105.26}
    assert summary["categories"][0]["category"] == "software"
    assert summary["date_range"] == {"start": "2024-01-10", "end": "2024-03-15"}


def test_summary_of_empty_collection():
    summary = build_summary([])
    assert summary["total_amount_chf"] == 0.0
    assert summary["date_range"] == {"start": None, "end": None}
    assert summary["top_vendors"] == []
