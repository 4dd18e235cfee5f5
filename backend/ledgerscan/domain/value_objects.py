"""
Value Objects - Immutable objects that represent domain concepts.
These have no identity and are compared by value.
"""
from typing import NewType, Optional

# Value objects for type safety and domain clarity
DocumentId = NewType("DocumentId", str)
CurrencyCode = NewType("CurrencyCode", str)

REPORTING_CURRENCY = CurrencyCode("CHF")

# Symbols and common spellings seen on scanned documents
CURRENCY_ALIASES = {
    "FR": "CHF",
    "FR.": "CHF",
    "SFR": "CHF",
    "SFR.": "CHF",
    "€": "EUR",
    "EURO": "EUR",
    "EUROS": "EUR",
    "$": "USD",
    "US$": "USD",
    "£": "GBP",
    "¥": "JPY",
}


def normalize_currency(value: Optional[str]) -> Optional[CurrencyCode]:
    """
    Normalize a currency code or symbol to an upper-case ISO code.

    Returns None for absent or blank values. Unknown 3-letter codes are kept
    as-is; the exchange-rate resolver decides what to do with them.
    """
    if value is None:
        return None
    code = str(value).strip().upper()
    if not code:
        return None
    return CurrencyCode(CURRENCY_ALIASES.get(code, code))
