"""
Data models for the price cache.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field


class PriceSnapshot(BaseModel):
    """A spot price observation for one symbol."""

    model_config = ConfigDict(validate_assignment=True)

    symbol: str
    price: float = Field(gt=0.0, allow_inf_nan=False)
    timestamp: datetime
    source: str
    is_stale: bool = False

    def age_seconds(self, now: datetime) -> float:
        """Seconds elapsed between the observation and ``now``."""
        return (now - self.timestamp).total_seconds()
