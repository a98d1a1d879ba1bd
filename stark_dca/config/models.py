"""
Configuration models using Pydantic for validation.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


USDT_TOKEN_ADDRESS = "0x2b4e08333782d7b4ef03de812c72fe43942e31948c6acd8bf7f80a31d766b9"
WBTC_TOKEN_ADDRESS = "0x14caa56b33c13a4c09967735793199d4dd565e973b21fb390a1d5e66d9ef69e"


class EngineConfig(BaseModel):
    """Configuration model for the DCA plan engine and its price cache."""

    model_config = ConfigDict(
        validate_assignment=True,
        extra="forbid"
    )

    symbol: str = Field(default="BTC", min_length=1, description="Asset symbol tracked by the price cache")
    price_source: Literal["yfinance", "coingecko"] = Field(
        default="yfinance",
        description="Quote source used for live price fetches"
    )
    yfinance_ticker: str = Field(default="BTC-USD", description="Ticker queried when price_source is yfinance")
    price_api_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Base URL of the CoinGecko-compatible price API"
    )
    price_api_key: Optional[str] = Field(default=None, description="Optional CoinGecko demo API key")
    coin_id: str = Field(default="bitcoin", description="CoinGecko coin id")
    vs_currency: str = Field(default="usd", description="CoinGecko quote currency")
    price_cache_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Freshness window for cached prices, in seconds"
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        description="Timeout for a single price fetch"
    )
    max_total_executions: int = Field(
        default=365,
        ge=1,
        description="Upper bound on a plan's execution budget"
    )
    deposit_token_address: str = Field(default=USDT_TOKEN_ADDRESS, pattern=r"^0x[0-9a-fA-F]+$")
    target_token_address: str = Field(default=WBTC_TOKEN_ADDRESS, pattern=r"^0x[0-9a-fA-F]+$")
    due_batch_limit: int = Field(
        default=100,
        ge=1,
        description="Maximum number of due plans processed per batch"
    )
