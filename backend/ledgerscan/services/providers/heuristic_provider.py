"""
Heuristic Extraction Provider.

Offline provider used when no remote extraction backend is configured.
Derives the record from the file name only.
"""
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from ...utils.filename_heuristics import extract_from_filename
from .base import ExtractionProvider, ExtractionRequest


def _amount(value: Optional[Decimal]) -> Optional[str]:
    return str(value) if value is not None else None


class HeuristicProvider(ExtractionProvider):
    """Filename-based extraction. Never calls the network and never fails."""

    name = "heuristic"
    is_remote = False
    uses_ocr_context = False

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    async def analyze(self, request: ExtractionRequest, ocr_text: Optional[str] = None) -> Dict[str, Any]:
        result = extract_from_filename(request.file_name, today=self._today())
        data = result.extracted_data
        return {
            "documentType": result.document_type.value,
            "extractedData": {
                "documentDate": data.document_date.isoformat() if data.document_date else None,
                "issuer": data.issuer,
                "documentNumber": data.document_number,
                "totalAmount": _amount(data.total_amount),
                "originalCurrency": data.original_currency,
                "vatAmount": _amount(data.vat_amount),
                "netAmount": _amount(data.net_amount),
                "expenseCategory": data.expense_category.value if data.expense_category else None,
            },
        }
