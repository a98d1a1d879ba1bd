"""
Stark DCA - bookkeeping engine for recurring purchase plans.

This package mirrors dollar-cost averaging plans kept by an on-chain contract:
it validates and stores plans, simulates executions against a cached spot
price, and keeps an append-only execution ledger.
"""

__version__ = "0.1.0"
__author__ = "Stark DCA Team"

# Lazy imports to avoid dependency issues during package setup
__all__ = [
    "ConfigurationManager",
    "EngineConfig",
    "PriceCache",
    "PriceSnapshot",
    "PlanEngine",
    "PlanStore",
    "Plan",
    "PlanStatus",
    "Interval",
    "ExecutionLog",
    "DCASystem",
]

def __getattr__(name):
    """Lazy import for package components."""
    if name == "ConfigurationManager":
        from .config import ConfigurationManager
        return ConfigurationManager
    elif name == "EngineConfig":
        from .config import EngineConfig
        return EngineConfig
    elif name == "PriceCache":
        from .price_cache import PriceCache
        return PriceCache
    elif name == "PriceSnapshot":
        from .price_cache import PriceSnapshot
        return PriceSnapshot
    elif name in ("PlanEngine", "PlanStore", "Plan", "PlanStatus", "Interval", "ExecutionLog"):
        from . import plan_engine
        return getattr(plan_engine, name)
    elif name == "DCASystem":
        from .dca_system import DCASystem
        return DCASystem
    else:
        raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
