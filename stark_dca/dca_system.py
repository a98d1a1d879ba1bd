"""
Wires configuration, price cache, plan store, persistence and engine together.
"""

import logging
from typing import Optional

from .config.models import EngineConfig
from .persistence import StateManager
from .plan_engine import PlanEngine, PlanStore
from .price_cache import PriceCache, create_quote_source
from .timeutil import Clock, utc_now

logger = logging.getLogger(__name__)


class DCASystem:
    """Plan engine backed by a state directory, as used by the command line."""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        state_dir: Optional[str] = None,
        quote_source=None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the system and load persisted plans.

        Args:
            config: Engine configuration (defaults if None)
            state_dir: Directory for the state file. If None, uses default location.
            quote_source: Quote source override; built from config if None
            clock: Callable returning the current UTC datetime
        """
        self.config = config or EngineConfig()
        self.quote_source = quote_source or create_quote_source(self.config)
        self.price_cache = PriceCache(
            self.quote_source,
            symbol=self.config.symbol,
            freshness_seconds=self.config.price_cache_seconds,
            clock=clock,
        )

        self.state_manager = StateManager(state_dir)
        self.store = PlanStore()
        self.store.load_state(self.state_manager.load_state())

        self.engine = PlanEngine(self.store, self.price_cache, config=self.config, clock=clock)

        logger.debug(f"DCASystem ready with {len(self.store)} plans, "
                     f"price source {self.quote_source.name}")

    def save(self) -> bool:
        """Persist the current store contents."""
        return self.state_manager.save_state(self.store.to_state())
