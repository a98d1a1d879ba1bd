"""
Single-slot price cache with a freshness window and stale fallback.
"""

import logging
import threading
from typing import Dict, Optional

from ..exceptions import PriceUnavailableError
from ..timeutil import Clock, utc_now
from .models import PriceSnapshot


logger = logging.getLogger(__name__)


class PriceCache:
    """Serves the current price of one symbol, shielding callers from fetch failures."""

    DEFAULT_FRESHNESS_SECONDS = 60.0
    STALE_SUFFIX = ":stale"

    def __init__(
        self,
        quote_source,
        symbol: str = "BTC",
        freshness_seconds: float = DEFAULT_FRESHNESS_SECONDS,
        clock: Clock = utc_now,
    ):
        """
        Initialize the price cache.

        Args:
            quote_source: Object with a ``name`` attribute and a ``fetch_price()`` method
            symbol: Symbol recorded on every snapshot
            freshness_seconds: Maximum age at which a cached price is served without a fetch
            clock: Callable returning the current UTC datetime
        """
        if freshness_seconds <= 0:
            raise ValueError("freshness_seconds must be positive")

        self._quote_source = quote_source
        self._symbol = symbol.upper()
        self._freshness_seconds = freshness_seconds
        self._clock = clock

        self._snapshot: Optional[PriceSnapshot] = None
        self._lock = threading.Lock()

        self._api_calls_made = 0
        self._cache_hits = 0
        self._stale_served = 0

    @property
    def symbol(self) -> str:
        return self._symbol

    def get_price(self) -> PriceSnapshot:
        """
        Get the current price, fetching only when the cached snapshot is older
        than the freshness window.

        Returns:
            Fresh or cached snapshot; a stale-tagged copy of the last snapshot
            when the fetch fails.

        Raises:
            PriceUnavailableError: If the fetch fails and nothing was ever cached.
        """
        cached = self._snapshot
        now = self._clock()

        if cached is not None and cached.age_seconds(now) < self._freshness_seconds:
            self._cache_hits += 1
            logger.debug(f"{self._symbol} price cache hit: {cached.price}")
            return cached

        self._api_calls_made += 1
        try:
            price = self._quote_source.fetch_price()
            snapshot = PriceSnapshot(
                symbol=self._symbol,
                price=price,
                timestamp=self._clock(),
                source=self._quote_source.name,
            )
        except Exception as e:
            logger.error(f"Failed to fetch {self._symbol} price from {self._quote_source.name}: {e}")
            return self._serve_stale(e)

        with self._lock:
            self._snapshot = snapshot

        logger.debug(f"{self._symbol} price fetched: {snapshot.price}")
        return snapshot

    def _serve_stale(self, error: Exception) -> PriceSnapshot:
        """Fall back to the last snapshot regardless of its age."""
        cached = self._snapshot
        if cached is None:
            raise PriceUnavailableError(
                f"Unable to fetch {self._symbol} price and no cache available"
            ) from error

        self._stale_served += 1
        staleness = cached.age_seconds(self._clock())
        logger.warning(f"Returning stale {self._symbol} price ({staleness:.0f}s old)")
        return cached.model_copy(update={
            "source": cached.source + self.STALE_SUFFIX,
            "is_stale": True,
        })

    def clear_cache(self) -> None:
        """Empty the cache slot so the next call always fetches."""
        with self._lock:
            self._snapshot = None
        logger.debug(f"Cleared {self._symbol} price cache")

    def get_cache_info(self) -> Dict:
        """
        Get information about the cached snapshot.

        Returns:
            Dictionary with cache information
        """
        cached = self._snapshot
        if cached is None:
            return {
                'symbol': self._symbol,
                'cached': False,
                'price': None,
                'age_seconds': None,
                'source': None,
                'fresh': False,
            }

        age = cached.age_seconds(self._clock())
        return {
            'symbol': self._symbol,
            'cached': True,
            'price': cached.price,
            'age_seconds': age,
            'source': cached.source,
            'fresh': age < self._freshness_seconds,
        }

    def get_api_stats(self) -> Dict[str, int]:
        """Counts of external fetch attempts, cache hits and stale responses."""
        return {
            'api_calls_made': self._api_calls_made,
            'cache_hits': self._cache_hits,
            'stale_served': self._stale_served,
        }
