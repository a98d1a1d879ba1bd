"""
Price cache module for serving the tracked asset's spot price.

This module handles live quote retrieval from yfinance or CoinGecko, a
single-slot freshness cache, and stale fallback when a fetch fails.
"""

from .price_cache import PriceCache
from .models import PriceSnapshot
from .quote_sources import CoinGeckoQuoteSource, YFinanceQuoteSource, create_quote_source

__all__ = [
    "PriceCache",
    "PriceSnapshot",
    "CoinGeckoQuoteSource",
    "YFinanceQuoteSource",
    "create_quote_source",
]
