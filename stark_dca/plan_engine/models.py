"""
Data models for DCA plans and their execution ledger.
"""

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

from ..timeutil import utc_now


TOKEN_ADDRESS_PATTERN = r"^0x[0-9a-fA-F]+$"

# Token amounts, written to JSON as plain decimal strings (never exponent form).
Amount = Annotated[Decimal, PlainSerializer(lambda d: format(d, "f"), return_type=str, when_used="json")]


class Interval(str, Enum):
    """Execution cadence of a plan."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"

    @property
    def duration(self) -> timedelta:
        """Fixed offset between two scheduled executions."""
        return INTERVAL_DURATIONS[self]

    @classmethod
    def parse(cls, value) -> "Interval":
        """Parse an Interval or a case-insensitive interval name."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise ValueError(f"Invalid interval: {value!r}")
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Invalid interval: {value!r}") from None


INTERVAL_DURATIONS = {
    Interval.DAILY: timedelta(days=1),
    Interval.WEEKLY: timedelta(days=7),
    Interval.BIWEEKLY: timedelta(days=14),
    Interval.MONTHLY: timedelta(days=30),
}


class PlanStatus(str, Enum):
    """States for plan lifecycle."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"


class ExecutionStatus(str, Enum):
    """Outcome of an execution attempt."""

    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


def generate_plan_id() -> str:
    return f"plan_{uuid.uuid4().hex}"


def generate_execution_id() -> str:
    return f"exec_{uuid.uuid4().hex}"


class Plan(BaseModel):
    """Model for a recurring purchase plan."""

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=generate_plan_id)
    owner: str = Field(min_length=1)
    deposit_token_address: str = Field(pattern=TOKEN_ADDRESS_PATTERN)
    target_token_address: str = Field(pattern=TOKEN_ADDRESS_PATTERN)
    amount_per_execution: Amount = Field(ge=0)
    total_deposited: Amount = Field(ge=0)
    total_executions: int = Field(ge=1)
    executions_completed: int = Field(default=0, ge=0)
    interval: Interval
    next_execution_at: datetime
    status: PlanStatus = PlanStatus.ACTIVE
    created_at: datetime
    updated_at: datetime

    @property
    def remaining_executions(self) -> int:
        return self.total_executions - self.executions_completed

    def is_due(self, now: datetime) -> bool:
        """True when the plan is active, scheduled at or before ``now`` and has budget left."""
        return (
            self.status == PlanStatus.ACTIVE
            and self.next_execution_at <= now
            and self.executions_completed < self.total_executions
        )


class ExecutionLog(BaseModel):
    """Immutable record of one simulated purchase."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=generate_execution_id)
    plan_id: str
    execution_number: int = Field(ge=1)
    executed_at: datetime
    amount_in: Amount = Field(ge=0)
    amount_out: Amount = Field(ge=0)
    price_at_execution: float = Field(gt=0.0, allow_inf_nan=False)
    price_source: str
    status: ExecutionStatus = ExecutionStatus.SUCCESS
    error_message: Optional[str] = None
    tx_hash: Optional[str] = None


class EngineState(BaseModel):
    """Model for persisting the plan store between runs."""

    model_config = ConfigDict(validate_assignment=True)

    plans: List[Plan] = Field(default_factory=list)
    executions: List[ExecutionLog] = Field(default_factory=list)
    last_update: datetime = Field(default_factory=utc_now)
