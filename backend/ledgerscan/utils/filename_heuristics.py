"""
Filename heuristics - derive a best-effort extraction from a file name alone.

Used when no remote extraction backend is configured. Every function here is
pure: the same file name always yields the same result. Vendor and keyword
knowledge lives in the lookup tables below, not in control flow.

Precedence: a known vendor decides issuer, document type and category before
any keyword is consulted, so "invoice_UBER_..." is a travel receipt because the
vendor table maps "uber" to a receipt.
"""
import re
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, Tuple

from ..domain.entities import DocumentType, ExpenseCategory, ExtractedData
from ..domain.value_objects import CurrencyCode, REPORTING_CURRENCY, normalize_currency

SWISS_VAT_RATE = Decimal("0.077")
MAX_PLAUSIBLE_AMOUNT = Decimal("1000000")
_CENTS = Decimal("0.01")

_MIN_YEAR = 1990
_MAX_YEAR = 2100


class VendorRule(NamedTuple):
    keyword: str
    issuer: str
    document_type: Optional[DocumentType]
    category: Optional[ExpenseCategory]


# First matching entry wins
VENDOR_TABLE: List[VendorRule] = [
    VendorRule("uber", "Uber", DocumentType.RECEIPT, ExpenseCategory.TRAVEL),
    VendorRule("sbb", "SBB", DocumentType.RECEIPT, ExpenseCategory.TRAVEL),
    VendorRule("easyjet", "easyJet", DocumentType.INVOICE, ExpenseCategory.TRAVEL),
    VendorRule("lufthansa", "Lufthansa", DocumentType.INVOICE, ExpenseCategory.TRAVEL),
    VendorRule("airbnb", "Airbnb", DocumentType.RECEIPT, ExpenseCategory.TRAVEL),
    VendorRule("booking.com", "Booking.com", DocumentType.INVOICE, ExpenseCategory.TRAVEL),
    VendorRule("starbucks", "Starbucks", DocumentType.RECEIPT, ExpenseCategory.MEALS),
    VendorRule("mcdonald", "McDonald's", DocumentType.RECEIPT, ExpenseCategory.MEALS),
    VendorRule("migros", "Migros", DocumentType.RECEIPT, ExpenseCategory.MEALS),
    VendorRule("coop", "Coop", DocumentType.RECEIPT, ExpenseCategory.MEALS),
    VendorRule("swisscom", "Swisscom", DocumentType.INVOICE, ExpenseCategory.TELECOMMUNICATIONS),
    VendorRule("sunrise", "Sunrise", DocumentType.INVOICE, ExpenseCategory.TELECOMMUNICATIONS),
    VendorRule("microsoft", "Microsoft", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("adobe", "Adobe", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("github", "GitHub", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("atlassian", "Atlassian", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("google", "Google", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("amazon web services", "Amazon Web Services", DocumentType.INVOICE, ExpenseCategory.SOFTWARE),
    VendorRule("staples", "Staples", DocumentType.RECEIPT, ExpenseCategory.OFFICE_SUPPLIES),
    VendorRule("axa", "AXA", DocumentType.INVOICE, ExpenseCategory.INSURANCE),
    VendorRule("helvetia", "Helvetia", DocumentType.INVOICE, ExpenseCategory.INSURANCE),
    VendorRule("allianz", "Allianz", DocumentType.INVOICE, ExpenseCategory.INSURANCE),
    VendorRule("ewz", "ewz", DocumentType.INVOICE, ExpenseCategory.UTILITIES),
    VendorRule("postfinance", "PostFinance", DocumentType.BANK_STATEMENT, None),
    VendorRule("ubs", "UBS", DocumentType.BANK_STATEMENT, None),
    VendorRule("credit suisse", "Credit Suisse", DocumentType.BANK_STATEMENT, None),
    VendorRule("raiffeisen", "Raiffeisen", DocumentType.BANK_STATEMENT, None),
]

# Keyword hints, consulted only for fields no vendor rule decided
DOCUMENT_TYPE_KEYWORDS: List[Tuple[Tuple[str, ...], DocumentType]] = [
    (("statement", "kontoauszug", "releve"), DocumentType.BANK_STATEMENT),
    (("invoice", "bill", "rechnung", "facture"), DocumentType.INVOICE),
    (("receipt", "quittung", "beleg", "ticket"), DocumentType.RECEIPT),
]

CATEGORY_KEYWORDS: List[Tuple[Tuple[str, ...], ExpenseCategory]] = [
    (("restaurant", "meal", "lunch", "dinner", "cafe", "food"), ExpenseCategory.MEALS),
    (("taxi", "train", "flight", "hotel", "parking", "travel"), ExpenseCategory.TRAVEL),
    (("electricity", "water", "energy", "heating", "utility"), ExpenseCategory.UTILITIES),
    (("software", "license", "subscription", "saas"), ExpenseCategory.SOFTWARE),
    (("consulting", "legal", "lawyer", "accountant", "notary"), ExpenseCategory.PROFESSIONAL_SERVICES),
    (("office", "stationery", "printer", "paper"), ExpenseCategory.OFFICE_SUPPLIES),
    (("phone", "mobile", "internet", "telecom"), ExpenseCategory.TELECOMMUNICATIONS),
    (("insurance", "versicherung", "policy"), ExpenseCategory.INSURANCE),
    (("rent", "miete", "lease"), ExpenseCategory.RENT),
]

_EXTENSION_RE = re.compile(r"\.[A-Za-z][A-Za-z0-9]{1,4}$")

_DATE_PATTERNS = [
    # ISO: 2024-03-15, 2024_03_15
    (re.compile(r"(?<!\d)(\d{4})[-_](\d{2})[-_](\d{2})(?!\d)"), ("y", "m", "d")),
    # European: 15.03.2024, 15-03-2024
    (re.compile(r"(?<!\d)(\d{2})[.-](\d{2})[.-](\d{4})(?!\d)"), ("d", "m", "y")),
    # Compact: 20240315
    (re.compile(r"(?<!\d)(\d{4})(\d{2})(\d{2})(?!\d)"), ("y", "m", "d")),
]

_CURRENCY_TOKEN = r"(CHF|EUR|USD|GBP|JPY|SFR|Fr\.?|€|\$|£)"
_NUMBER_TOKEN = r"(\d+(?:[.,]\d{1,2})?)"

_AMOUNT_PATTERNS = [
    # Symbol or code before the number: CHF45.90, EUR_120, $ 12.50
    (re.compile(r"(?<![A-Za-z])" + _CURRENCY_TOKEN + r"[\s_]*" + _NUMBER_TOKEN + r"(?![\d])", re.IGNORECASE), "before"),
    # Number before the symbol or code: 45.90CHF, 120_EUR, 12.50€
    (re.compile(r"(?<![\d.,])" + _NUMBER_TOKEN + r"[\s_]*" + _CURRENCY_TOKEN + r"(?![A-Za-z])", re.IGNORECASE), "after"),
    # Bare decimal with two fraction digits: 45.90
    (re.compile(r"(?<![\d.,])(\d+[.,]\d{2})(?![\d.,])"), "bare"),
]

_DOCUMENT_NUMBER_PATTERNS = [
    re.compile(r"INV[-_]?\d+", re.IGNORECASE),
    re.compile(r"#(\d+)"),
    re.compile(r"(?<!\d)\d{6,}(?!\d)"),
]


@dataclass(frozen=True)
class VendorMatch:
    issuer: Optional[str]
    document_type: DocumentType
    category: Optional[ExpenseCategory]


@dataclass(frozen=True)
class FilenameExtraction:
    document_type: DocumentType
    extracted_data: ExtractedData


def _strip_extension(file_name: str) -> str:
    return _EXTENSION_RE.sub("", file_name.strip())


def _normalize_for_lookup(file_name: str) -> str:
    """Lower-case and turn separators into spaces so multi-word keys match."""
    return re.sub(r"[_\-\s]+", " ", _strip_extension(file_name).lower())


def _build_date(parts: Tuple[str, str, str], order: Tuple[str, str, str]) -> Optional[date]:
    values = dict(zip(order, (int(part) for part in parts)))
    if not _MIN_YEAR <= values["y"] <= _MAX_YEAR:
        return None
    if not 1 <= values["m"] <= 12 or not 1 <= values["d"] <= 31:
        return None
    try:
        return date(values["y"], values["m"], values["d"])
    except ValueError:
        return None


def extract_date_from_filename(file_name: str) -> Optional[date]:
    """
    Find the first plausible date in the file name.

    Patterns are tried in order ISO, European, compact; the first candidate
    that forms a real calendar date wins.
    """
    stem = _strip_extension(file_name)
    for pattern, order in _DATE_PATTERNS:
        for match in pattern.finditer(stem):
            parsed = _build_date(match.groups(), order)
            if parsed is not None:
                return parsed
    return None


def _parse_amount(raw: str) -> Optional[Decimal]:
    try:
        amount = Decimal(raw.replace(",", "."))
    except InvalidOperation:
        return None
    if amount <= 0 or amount >= MAX_PLAUSIBLE_AMOUNT:
        return None
    return amount.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _mask_dates(stem: str) -> str:
    """Blank out date spans so their digits are never read as amounts."""
    for pattern, order in _DATE_PATTERNS:
        stem = pattern.sub(
            lambda m: "|" * len(m.group(0)) if _build_date(m.groups(), order) is not None else m.group(0),
            stem
        )
    return stem


def extract_amount_from_filename(file_name: str) -> Tuple[Optional[Decimal], Optional[CurrencyCode]]:
    """
    Find a currency-adjacent amount in the file name.

    Returns (amount, currency) or (None, None). Amounts without a symbol or
    code are assumed to be CHF. Implausible amounts and date digits are
    skipped.
    """
    stem = _mask_dates(_strip_extension(file_name))
    for pattern, position in _AMOUNT_PATTERNS:
        for match in pattern.finditer(stem):
            if position == "before":
                currency_raw, number_raw = match.group(1), match.group(2)
            elif position == "after":
                number_raw, currency_raw = match.group(1), match.group(2)
            else:
                number_raw, currency_raw = match.group(1), None

            amount = _parse_amount(number_raw)
            if amount is None:
                continue
            currency = normalize_currency(currency_raw) if currency_raw else REPORTING_CURRENCY
            return amount, currency
    return None, None


def _contains_keyword(text: str, keyword: str) -> bool:
    return re.search(r"(?<![a-z])" + re.escape(keyword), text) is not None


def extract_vendor_from_filename(file_name: str) -> VendorMatch:
    """
    Derive issuer, document type and category from the file name.

    Vendor rules take precedence; keyword hints only fill what no vendor rule
    decided. Nothing is set without a textual basis in the name.
    """
    text = _normalize_for_lookup(file_name)

    issuer = None
    document_type = None
    category = None

    for rule in VENDOR_TABLE:
        if _contains_keyword(text, rule.keyword):
            issuer = rule.issuer
            document_type = rule.document_type
            category = rule.category
            break

    if document_type is None:
        for keywords, candidate in DOCUMENT_TYPE_KEYWORDS:
            if any(_contains_keyword(text, keyword) for keyword in keywords):
                document_type = candidate
                break

    if category is None:
        for keywords, candidate in CATEGORY_KEYWORDS:
            if any(_contains_keyword(text, keyword) for keyword in keywords):
                category = candidate
                break

    return VendorMatch(
        issuer=issuer,
        document_type=document_type or DocumentType.UNKNOWN,
        category=category,
    )


def extract_document_number_from_filename(file_name: str) -> Optional[str]:
    """Find an invoice-like reference: INV-12345, #12345, or a run of 6+ digits."""
    stem = _strip_extension(file_name)

    inv_match = _DOCUMENT_NUMBER_PATTERNS[0].search(stem)
    if inv_match:
        return inv_match.group(0).upper()

    hash_match = _DOCUMENT_NUMBER_PATTERNS[1].search(stem)
    if hash_match:
        return hash_match.group(1)

    for match in _DOCUMENT_NUMBER_PATTERNS[2].finditer(stem):
        digits = match.group(0)
        # Compact dates are not reference numbers
        if len(digits) == 8 and _build_date((digits[:4], digits[4:6], digits[6:]), ("y", "m", "d")):
            continue
        return digits
    return None


def estimate_vat(total: Optional[Decimal]) -> Tuple[Optional[Decimal], Optional[Decimal]]:
    """Split a total into (vat, net) at the Swiss standard rate."""
    if total is None:
        return None, None
    vat = (total * SWISS_VAT_RATE).quantize(_CENTS, rounding=ROUND_HALF_UP)
    return vat, total - vat


def extract_from_filename(file_name: str, today: Optional[date] = None) -> FilenameExtraction:
    """
    Build a complete extraction from the file name. Never raises.

    The document date falls back to `today` when the name carries none.
    """
    amount, currency = extract_amount_from_filename(file_name)
    vendor = extract_vendor_from_filename(file_name)
    vat, net = estimate_vat(amount)

    data = ExtractedData(
        document_date=extract_date_from_filename(file_name) or today or date.today(),
        issuer=vendor.issuer,
        document_number=extract_document_number_from_filename(file_name),
        total_amount=amount,
        vat_amount=vat,
        net_amount=net,
        original_currency=currency,
        expense_category=vendor.category,
    )
    return FilenameExtraction(document_type=vendor.document_type, extracted_data=data)
