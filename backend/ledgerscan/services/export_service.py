"""
Spreadsheet export of completed document records.

One workbook per document type (Bank_Statements, Invoices, Receipts), or a
single workbook with one sheet per non-empty type. Absent values are written
as "Not found".
"""
from decimal import Decimal
from io import BytesIO
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from ..core.exceptions import DocumentNotFoundError
from ..domain.entities import DocumentRecord, DocumentType

NOT_FOUND = "Not found"

SHEET_NAMES: Dict[DocumentType, str] = {
    DocumentType.BANK_STATEMENT: "Bank_Statements",
    DocumentType.INVOICE: "Invoices",
    DocumentType.RECEIPT: "Receipts",
}

HEADERS = [
    "File Name",
    "Document Date",
    "Issuer",
    "Document Number",
    "Original Currency",
    "Total Amount (Original)",
    "Total Amount (CHF)",
    "VAT Amount (Original)",
    "VAT Amount (CHF)",
    "Net Amount (Original)",
    "Net Amount (CHF)",
    "Expense Category",
]

# 1-based columns holding money values
_AMOUNT_COLUMNS = {6, 7, 8, 9, 10, 11}


def _value(value):
    if value is None:
        return NOT_FOUND
    if isinstance(value, Decimal):
        return float(value)
    return value


def record_to_row(record: DocumentRecord) -> List:
    """Flatten one record into the export column order."""
    data = record.extracted_data
    return [
        record.file_name,
        _value(data.document_date.isoformat() if data.document_date else None),
        _value(data.issuer),
        _value(data.document_number),
        _value(data.original_currency),
        _value(data.total_amount),
        _value(data.total_amount_chf),
        _value(data.vat_amount),
        _value(data.vat_amount_chf),
        _value(data.net_amount),
        _value(data.net_amount_chf),
        _value(data.expense_category.value if data.expense_category else None),
    ]


def export_file_name(document_type: Optional[DocumentType] = None) -> str:
    if document_type is None:
        return "Financial_Documents.xlsx"
    return f"{SHEET_NAMES[document_type]}.xlsx"


class SpreadsheetExporter:
    """Builds styled .xlsx workbooks from completed records."""

    def __init__(self):
        self.amount_format = '#,##0.00'
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(start_color="1F4E78", end_color="1F4E78", fill_type="solid")
        self.border = Border(bottom=Side(style='thin', color='DDDDDD'))

    @staticmethod
    def _completed_of_type(records: List[DocumentRecord], document_type: DocumentType) -> List[DocumentRecord]:
        return [r for r in records if r.is_completed() and r.document_type == document_type]

    def _fill_sheet(self, ws, records: List[DocumentRecord]) -> None:
        for col_idx, header in enumerate(HEADERS, 1):
            cell = ws.cell(row=1, column=col_idx, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.alignment = Alignment(horizontal='center')

        for row_idx, record in enumerate(records, 2):
            for col_idx, val in enumerate(record_to_row(record), 1):
                cell = ws.cell(row=row_idx, column=col_idx, value=val)
                if col_idx in _AMOUNT_COLUMNS and isinstance(val, float):
                    cell.number_format = self.amount_format
                cell.border = self.border

        self._auto_width(ws)
        ws.freeze_panes = "A2"

    def _auto_width(self, ws) -> None:
        """Auto-adjust column widths"""
        for col_idx, column in enumerate(ws.columns, 1):
            max_length = max((len(str(cell.value)) for cell in column if cell.value is not None), default=0)
            ws.column_dimensions[get_column_letter(col_idx)].width = min(max_length + 4, 60)

    @staticmethod
    def _save(wb: Workbook) -> BytesIO:
        output = BytesIO()
        wb.save(output)
        output.seek(0)
        return output

    def export_type(self, records: List[DocumentRecord], document_type: DocumentType) -> BytesIO:
        """
        Workbook with the completed records of one document type.

        Raises:
            DocumentNotFoundError: No completed record of that type
        """
        if document_type not in SHEET_NAMES:
            raise ValueError(f"Cannot export document type: {document_type.value}")

        selected = self._completed_of_type(records, document_type)
        if not selected:
            raise DocumentNotFoundError(f"No records found for {document_type.value}")

        wb = Workbook()
        ws = wb.active
        ws.title = SHEET_NAMES[document_type]
        self._fill_sheet(ws, selected)
        return self._save(wb)

    def export_all(self, records: List[DocumentRecord]) -> BytesIO:
        """
        Workbook with one sheet per document type that has completed records.

        Raises:
            DocumentNotFoundError: No completed record at all
        """
        groups = [
            (document_type, self._completed_of_type(records, document_type))
            for document_type in SHEET_NAMES
        ]
        groups = [(document_type, selected) for document_type, selected in groups if selected]
        if not groups:
            raise DocumentNotFoundError("No completed records to export")

        wb = Workbook()
        wb.remove(wb.active)
        for document_type, selected in groups:
            ws = wb.create_sheet(SHEET_NAMES[document_type])
            self._fill_sheet(ws, selected)
        return self._save(wb)
