"""
External quote sources used by the price cache.

Each source exposes a ``name`` (recorded as snapshot provenance) and a
``fetch_price()`` method returning the latest spot price as a float. Any
exception raised by ``fetch_price`` is treated by the cache as a failed fetch.
"""

import logging
import math
from typing import Optional

import httpx

from ..config.models import EngineConfig


logger = logging.getLogger(__name__)


def _checked_price(value, source: str) -> float:
    """Coerce a quoted price to float and reject non-positive or non-finite values."""
    price = float(value)
    if not math.isfinite(price) or price <= 0:
        raise ValueError(f"{source} returned an invalid price: {value!r}")
    return price


class YFinanceQuoteSource:
    """Latest close from Yahoo Finance, e.g. ``BTC-USD``."""

    name = "yfinance"

    def __init__(self, ticker: str = "BTC-USD"):
        self.ticker = ticker.upper()
        self._yf = None

    def _get_yfinance(self):
        """Lazy import of yfinance to avoid SSL issues during package setup."""
        if self._yf is None:
            import yfinance as yf
            self._yf = yf
        return self._yf

    def fetch_price(self) -> float:
        yf = self._get_yfinance()
        data = yf.Ticker(self.ticker).history(period="1d")

        if data.empty:
            raise ValueError(f"No current price data available for {self.ticker}")

        price = _checked_price(data['Close'].iloc[-1], self.name)
        logger.debug(f"{self.ticker} price fetched from yfinance: {price}")
        return price


class CoinGeckoQuoteSource:
    """Spot price from the CoinGecko ``/simple/price`` endpoint."""

    name = "coingecko"

    def __init__(
        self,
        api_url: str = "https://api.coingecko.com/api/v3",
        coin_id: str = "bitcoin",
        vs_currency: str = "usd",
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.coin_id = coin_id
        self.vs_currency = vs_currency
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def fetch_price(self) -> float:
        params = {
            "ids": self.coin_id,
            "vs_currencies": self.vs_currency,
            "include_last_updated_at": "true",
        }
        headers = {"x-cg-demo-api-key": self.api_key} if self.api_key else None

        with httpx.Client(timeout=self.timeout_seconds, transport=self._transport) as client:
            response = client.get(f"{self.api_url}/simple/price", params=params, headers=headers)
        response.raise_for_status()

        data = response.json()
        try:
            raw_price = data[self.coin_id][self.vs_currency]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Unexpected CoinGecko response for {self.coin_id}: {data!r}") from e

        price = _checked_price(raw_price, self.name)
        logger.debug(f"{self.coin_id} price fetched from CoinGecko: {price}")
        return price


def create_quote_source(config: EngineConfig):
    """Build the quote source selected by ``config.price_source``."""
    if config.price_source == "coingecko":
        return CoinGeckoQuoteSource(
            api_url=config.price_api_url,
            coin_id=config.coin_id,
            vs_currency=config.vs_currency,
            api_key=config.price_api_key,
            timeout_seconds=config.request_timeout_seconds,
        )
    return YFinanceQuoteSource(ticker=config.yfinance_ticker)
