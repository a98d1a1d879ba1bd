"""
Unit tests for external quote sources.
"""

from unittest.mock import Mock

import httpx
import pandas as pd
import pytest

from stark_dca.config.models import EngineConfig
from stark_dca.price_cache.quote_sources import (
    CoinGeckoQuoteSource,
    YFinanceQuoteSource,
    create_quote_source,
)


class TestYFinanceQuoteSource:
    """Test YFinanceQuoteSource class."""

    def _mock_yfinance(self, history: pd.DataFrame) -> Mock:
        mock_yf = Mock()
        mock_ticker = Mock()
        mock_ticker.history.return_value = history
        mock_yf.Ticker.return_value = mock_ticker
        return mock_yf

    def test_fetch_latest_close(self):
        source = YFinanceQuoteSource("btc-usd")
        history = pd.DataFrame(
            {'Close': [64000.0, 65000.5]},
            index=pd.to_datetime(["2024-01-01", "2024-01-02"])
        )
        mock_yf = self._mock_yfinance(history)
        source._get_yfinance = Mock(return_value=mock_yf)

        assert source.fetch_price() == 65000.5
        mock_yf.Ticker.assert_called_once_with("BTC-USD")
        mock_yf.Ticker.return_value.history.assert_called_once_with(period="1d")

    def test_empty_history_raises(self):
        source = YFinanceQuoteSource()
        source._get_yfinance = Mock(return_value=self._mock_yfinance(pd.DataFrame()))

        with pytest.raises(ValueError, match="No current price data"):
            source.fetch_price()

    def test_nan_close_raises(self):
        source = YFinanceQuoteSource()
        history = pd.DataFrame({'Close': [float('nan')]}, index=pd.to_datetime(["2024-01-01"]))
        source._get_yfinance = Mock(return_value=self._mock_yfinance(history))

        with pytest.raises(ValueError, match="invalid price"):
            source.fetch_price()

    def test_name(self):
        assert YFinanceQuoteSource().name == "yfinance"


class TestCoinGeckoQuoteSource:
    """Test CoinGeckoQuoteSource class."""

    def test_fetch_price(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['url'] = request.url
            seen['headers'] = request.headers
            return httpx.Response(200, json={"bitcoin": {"usd": 65000, "last_updated_at": 1700000000}})

        source = CoinGeckoQuoteSource(
            api_url="https://api.example.test/api/v3/",
            api_key="demo-key",
            transport=httpx.MockTransport(handler)
        )

        assert source.fetch_price() == 65000.0
        assert seen['url'].path == "/api/v3/simple/price"
        assert seen['url'].params['ids'] == "bitcoin"
        assert seen['url'].params['vs_currencies'] == "usd"
        assert seen['url'].params['include_last_updated_at'] == "true"
        assert seen['headers']['x-cg-demo-api-key'] == "demo-key"

    def test_no_api_key_header_without_key(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen['headers'] = request.headers
            return httpx.Response(200, json={"bitcoin": {"usd": 1.5}})

        source = CoinGeckoQuoteSource(transport=httpx.MockTransport(handler))
        source.fetch_price()

        assert 'x-cg-demo-api-key' not in seen['headers']

    def test_http_error_raises(self):
        source = CoinGeckoQuoteSource(
            transport=httpx.MockTransport(lambda request: httpx.Response(429, json={}))
        )

        with pytest.raises(httpx.HTTPStatusError):
            source.fetch_price()

    def test_unexpected_payload_raises(self):
        source = CoinGeckoQuoteSource(
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ethereum": {}}))
        )

        with pytest.raises(ValueError, match="Unexpected CoinGecko response"):
            source.fetch_price()

    def test_timeout_propagates(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        source = CoinGeckoQuoteSource(transport=httpx.MockTransport(handler))

        with pytest.raises(httpx.TimeoutException):
            source.fetch_price()


class TestCreateQuoteSource:
    """Test quote source factory."""

    def test_default_is_yfinance(self):
        source = create_quote_source(EngineConfig(yfinance_ticker="ETH-USD"))

        assert isinstance(source, YFinanceQuoteSource)
        assert source.ticker == "ETH-USD"

    def test_coingecko_from_config(self):
        config = EngineConfig(
            price_source="coingecko",
            coin_id="ethereum",
            vs_currency="eur",
            price_api_key="key",
            request_timeout_seconds=3
        )
        source = create_quote_source(config)

        assert isinstance(source, CoinGeckoQuoteSource)
        assert source.coin_id == "ethereum"
        assert source.vs_currency == "eur"
        assert source.api_key == "key"
        assert source.timeout_seconds == 3
