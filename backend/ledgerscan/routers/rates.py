"""
Rates Router - Exchange rates and currency conversion.

Example Usage:
    GET /rates - Current rate table (CHF per unit)
    GET /rates/convert?amount=100&from=EUR&to=CHF
"""
from fastapi import APIRouter, HTTPException, Query

from ..api.dto import ConversionResponseDTO
from ..core.logging_config import get_logger
from ..domain.value_objects import REPORTING_CURRENCY
from . import dependencies

logger = get_logger(__name__)

router = APIRouter()


@router.get("/rates")
async def get_rates():
    """Rate table used for conversions, with its source and fetch time."""
    resolver = dependencies.get_resolver()
    rates = await resolver.get_rates()
    fetched_at = resolver.fetched_at
    return {
        "base": REPORTING_CURRENCY,
        "source": resolver.rates_source,
        "fetched_at": fetched_at.isoformat() if fetched_at else None,
        "rates": {code: float(rate) for code, rate in sorted(rates.items())},
    }


@router.get("/rates/convert", response_model=ConversionResponseDTO)
async def convert(
    amount: float = Query(..., description="Amount in the source currency"),
    from_currency: str = Query(..., alias="from", min_length=1),
    to_currency: str = Query(REPORTING_CURRENCY, alias="to", min_length=1)
):
    """
    Convert an amount between two currencies through CHF.
    Unknown source currencies pass through 1:1.
    """
    if amount != amount or amount in (float("inf"), float("-inf")):
        raise HTTPException(status_code=400, detail="Amount must be a finite number")

    resolver = dependencies.get_resolver()
    converted = await resolver.convert_currency(amount, from_currency, to_currency)
    rate = await resolver.get_exchange_rate(from_currency, to_currency)
    return ConversionResponseDTO(
        amount=amount,
        from_currency=from_currency.strip().upper(),
        to_currency=to_currency.strip().upper(),
        converted=float(converted) if converted is not None else None,
        rate=float(rate) if rate is not None else None,
        rates_source=resolver.rates_source,
    )
