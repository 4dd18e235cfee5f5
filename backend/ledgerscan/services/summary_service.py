"""
Portfolio summary over the document collection.
All money figures are CHF totals of completed records.
"""
from collections import Counter, defaultdict
from decimal import Decimal
from typing import Any, Dict, List

from ..domain.entities import DocumentRecord, DocumentType

TOP_VENDORS = 10
UNKNOWN_VENDOR = "Unknown"
UNCATEGORIZED = "Uncategorized"


def _sum(values) -> Decimal:
    return sum((v for v in values if v is not None), Decimal("0"))


def _money(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01")))


def build_summary(records: List[DocumentRecord]) -> Dict[str, Any]:
    """Aggregate totals, per-type counts, vendors, categories and date range."""
    completed = [r for r in records if r.is_completed()]
    data = [r.extracted_data for r in completed]

    by_type = Counter(r.document_type for r in completed)
    counts = {t.value: by_type.get(t, 0) for t in DocumentType if t != DocumentType.UNKNOWN}
    if by_type.get(DocumentType.UNKNOWN):
        counts[DocumentType.UNKNOWN.value] = by_type[DocumentType.UNKNOWN]

    vendor_counts: Counter = Counter()
    vendor_totals: Dict[str, Decimal] = defaultdict(Decimal)
    category_counts: Counter = Counter()
    category_totals: Dict[str, Decimal] = defaultdict(Decimal)
    for d in data:
        vendor = d.issuer or UNKNOWN_VENDOR
        vendor_counts[vendor] += 1
        vendor_totals[vendor] += d.total_amount_chf or Decimal("0")

        category = d.expense_category.value if d.expense_category else UNCATEGORIZED
        category_counts[category] += 1
        category_totals[category] += d.total_amount_chf or Decimal("0")

    top_vendors = [
        {"vendor": vendor, "count": count, "total_chf": _money(vendor_totals[vendor])}
        for vendor, count in sorted(vendor_counts.items(), key=lambda item: (-item[1], item[0]))[:TOP_VENDORS]
    ]
    categories = [
        {"category": category, "count": category_counts[category], "total_chf": _money(total)}
        for category, total in sorted(category_totals.items(), key=lambda item: (-item[1], item[0]))
    ]

    dates = sorted(d.document_date for d in data if d.document_date)

    return {
        "total_documents": len(records),
        "completed": len(completed),
        "processing": sum(1 for r in records if r.is_processing()),
        "failed": sum(1 for r in records if r.is_failed()),
        "total_amount_chf": _money(_sum(d.total_amount_chf for d in data)),
        "vat_amount_chf": _money(_sum(d.vat_amount_chf for d in data)),
        "net_amount_chf": _money(_sum(d.net_amount_chf for d in data)),
        "counts_by_type": counts,
        "unique_vendors": len({d.issuer for d in data if d.issuer}),
        "unique_categories": len({d.expense_category for d in data if d.expense_category}),
        "top_vendors": top_vendors,
        "categories": categories,
        "date_range": {
            "start": dates[0].isoformat() if dates else None,
            "end": dates[-1].isoformat() if dates else None,
        },
    }
