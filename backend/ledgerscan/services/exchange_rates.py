"""
Exchange-rate resolver.

Holds a process-wide rate table expressed as "CHF per unit of currency",
refreshed lazily from a public CHF-based endpoint and falling back to a static
table when the refresh fails. The endpoint quotes units per 1 CHF, so fetched
values are inverted on the way in. An amount converts to CHF as
``amount / rate``.
One instance is created at startup and injected into the consumers that need it.
"""
import asyncio
import time
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Callable, Dict, Optional, Union

import httpx

from ..core.config import (
    EXCHANGE_RATE_URL,
    EXCHANGE_RATE_TTL_SECONDS,
    EXCHANGE_RATE_TIMEOUT_SECONDS,
)
from ..core.logging_config import get_logger
from ..domain.value_objects import REPORTING_CURRENCY, normalize_currency

logger = get_logger(__name__)

Amount = Union[Decimal, int, float, str]
RateTable = Dict[str, Decimal]

_CENTS = Decimal("0.01")

# Static CHF quotes per unit of each currency, used when the live refresh fails.
_STATIC_CHF_QUOTES = {
    "CHF": "1",
    "EUR": "0.95",
    "USD": "0.91",
    "GBP": "1.15",
    "JPY": "0.0064",
    "CAD": "0.67",
    "AUD": "0.60",
    "SEK": "0.085",
    "NOK": "0.083",
    "DKK": "0.13",
    "PLN": "0.23",
    "CZK": "0.041",
    "HUF": "0.0026",
    "RON": "0.20",
    "BGN": "0.51",
    "HRK": "0.13",
    "TRY": "0.027",
    "RUB": "0.0098",
    "CNY": "0.13",
    "HKD": "0.12",
    "SGD": "0.68",
    "NZD": "0.56",
    "ZAR": "0.049",
    "BRL": "0.18",
    "MXN": "0.046",
    "ARS": "0.00091",
    "KRW": "0.00067",
    "INR": "0.011",
    "THB": "0.026",
    "MYR": "0.21",
    "IDR": "0.000059",
    "PHP": "0.016",
    "VND": "0.000037",
}

FALLBACK_RATES: RateTable = {
    code: Decimal(quote) for code, quote in _STATIC_CHF_QUOTES.items()
}


def round_money(value: Decimal) -> Decimal:
    """Round to cents, halves away from zero."""
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _to_decimal(amount: Amount) -> Optional[Decimal]:
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


class ExchangeRateResolver:
    """
    Resolves currency conversions into CHF.

    getting rates never raises: a failed refresh logs a warning and serves the
    static fallback table until the next attempt.
    """

    def __init__(
        self,
        url: str = EXCHANGE_RATE_URL,
        ttl_seconds: float = EXCHANGE_RATE_TTL_SECONDS,
        timeout_seconds: float = EXCHANGE_RATE_TIMEOUT_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._transport = transport
        self._cache: Optional[RateTable] = None
        self._cached_at: Optional[float] = None
        self._fetched_at: Optional[datetime] = None
        self._source = "fallback"
        self._refresh_lock = asyncio.Lock()

    @property
    def rates_source(self) -> str:
        """'live' when the last lookup was served from fetched rates, else 'fallback'."""
        return self._source

    @property
    def fetched_at(self) -> Optional[datetime]:
        return self._fetched_at

    def invalidate(self) -> None:
        """Drop the cached table; the next lookup refreshes."""
        self._cache = None
        self._cached_at = None

    def _is_fresh(self) -> bool:
        if self._cache is None or self._cached_at is None:
            return False
        return (self._clock() - self._cached_at) < self.ttl_seconds

    async def _fetch_rates(self) -> Optional[RateTable]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds,
                transport=self._transport
            ) as client:
                response = await client.get(self.url)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Exchange rate API unavailable, using fallback rates: {e}")
            return None

        raw_rates = payload.get("rates") if isinstance(payload, dict) else None
        if not isinstance(raw_rates, dict):
            logger.warning("Exchange rate API returned no rate table, using fallback rates")
            return None

        # units per CHF -> CHF per unit
        rates: RateTable = {REPORTING_CURRENCY: Decimal(1)}
        for code, raw in raw_rates.items():
            value = _to_decimal(raw)
            if value is None or value <= 0:
                continue
            rates[str(code).upper()] = Decimal(1) / value
        rates[REPORTING_CURRENCY] = Decimal(1)
        return rates

    async def get_rates(self) -> RateTable:
        """Return the cached table, refreshing it when stale."""
        if self._is_fresh():
            return self._cache

        async with self._refresh_lock:
            if self._is_fresh():
                return self._cache

            rates = await self._fetch_rates()
            if rates is not None:
                self._cache = rates
                self._cached_at = self._clock()
                self._fetched_at = datetime.now(timezone.utc)
                self._source = "live"
                logger.info(f"Exchange rates refreshed ({len(rates)} currencies)")
                return rates

        self._source = "fallback"
        return FALLBACK_RATES

    async def _rate_for(self, currency: str) -> Optional[Decimal]:
        rates = await self.get_rates()
        rate = rates.get(currency)
        if rate is None and rates is not FALLBACK_RATES:
            rate = FALLBACK_RATES.get(currency)
        return rate

    async def convert_to_chf(self, amount: Optional[Amount], currency: Optional[str]) -> Optional[Decimal]:
        """
        Convert an amount in `currency` to CHF.

        Returns None when either input is absent. Unknown currencies pass
        through 1:1 with a warning.
        """
        if amount is None or currency is None:
            return None
        value = _to_decimal(amount)
        code = normalize_currency(currency)
        if value is None or code is None:
            return None

        if code == REPORTING_CURRENCY:
            return round_money(value)

        rate = await self._rate_for(code)
        if rate is None:
            logger.warning(f"Unknown currency: {code}, using 1:1 conversion")
            return round_money(value)

        return round_money(value / rate)

    async def convert_currency(
        self,
        amount: Optional[Amount],
        from_currency: Optional[str],
        to_currency: str = REPORTING_CURRENCY
    ) -> Optional[Decimal]:
        """Convert between two currencies through CHF."""
        if amount is None or from_currency is None:
            return None
        value = _to_decimal(amount)
        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency) or REPORTING_CURRENCY
        if value is None or source is None:
            return None

        if source == target:
            return round_money(value)

        in_chf = await self.convert_to_chf(value, source)
        if in_chf is None or target == REPORTING_CURRENCY:
            return in_chf

        target_rate = await self._rate_for(target)
        if target_rate is None:
            logger.warning(f"Unknown target currency: {target}, returning CHF value")
            return in_chf

        return round_money(in_chf * target_rate)

    async def get_exchange_rate(self, from_currency: str, to_currency: str = REPORTING_CURRENCY) -> Optional[Decimal]:
        """Units of `to_currency` per one unit of `from_currency`, or None if either is unknown."""
        source = normalize_currency(from_currency)
        target = normalize_currency(to_currency)
        if source is None or target is None:
            return None
        from_rate = await self._rate_for(source)
        to_rate = await self._rate_for(target)
        if from_rate is None or to_rate is None:
            return None
        return to_rate / from_rate
