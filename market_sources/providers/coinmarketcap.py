"""
CoinMarketCap Source - Reference-currency exchange rate.

Endpoint used:
- /v1/cryptocurrency/quotes/latest?symbol=FIL&convert=USD

The price lives at ``data.<SYMBOL>.quote.<CONVERT>.price``. A missing
or non-numeric price is reported as None, never raised, so that a cycle
can degrade to an empty report instead of crashing.
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import aiohttp

from market_sources.base import BaseSource
from market_sources.exceptions import SourceError
from market_sources.models import ExchangeQuote


logger = logging.getLogger(__name__)


class CoinMarketCapClient(BaseSource):
    """CoinMarketCap Pro API quotes client."""

    BASE_URL = "https://pro-api.coinmarketcap.com"
    QUOTES_PATH = "/v1/cryptocurrency/quotes/latest"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout: float = BaseSource.DEFAULT_TIMEOUT,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        super().__init__(timeout, session)
        self._api_key = api_key or ""
        self._base_url = base_url.rstrip("/")

    @property
    def name(self) -> str:
        """Unique identifier."""
        return "coinmarketcap"

    def _get_default_headers(self) -> dict[str, str]:
        headers = super()._get_default_headers()
        if self._api_key:
            headers["X-CMC_PRO_API_KEY"] = self._api_key
        return headers

    async def get_quote(self, symbol: str = "FIL", convert: str = "USD") -> Optional[ExchangeQuote]:
        """
        Fetch the latest price of ``symbol`` in ``convert``.

        Returns:
            ExchangeQuote, or None when the price is unavailable
        """
        url = f"{self._base_url}{self.QUOTES_PATH}"
        params = {"symbol": symbol, "convert": convert}

        try:
            response = await self._make_request("GET", url, params=params)
        except SourceError as e:
            self._on_error(e)
            logger.info(f"[{self.name}] Quote {symbol}/{convert} unavailable -> {e}")
            return None

        price = self.extract_price(response, symbol, convert)
        if price is None:
            logger.warning(f"[{self.name}] Unexpected quote response: {str(response)[:500]}")
            return None

        self._on_success()
        logger.info(f"[{self.name}] {symbol} price {price} {convert}")
        return ExchangeQuote(
            symbol=symbol,
            convert=convert,
            price=price,
            fetched_at=datetime.now(timezone.utc),
        )

    @staticmethod
    def extract_price(response: Any, symbol: str, convert: str) -> Optional[Decimal]:
        """Pull a finite, positive price out of a quotes payload."""
        try:
            raw = response["data"][symbol]["quote"][convert]["price"]
        except (KeyError, TypeError):
            return None

        if raw is None or isinstance(raw, (bool, list, dict)):
            return None

        try:
            price = Decimal(str(raw))
        except (InvalidOperation, ValueError):
            return None

        if not price.is_finite() or price <= 0:
            return None
        return price
