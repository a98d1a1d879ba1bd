"""
Boundary schemas for loosely-typed plan requests.
"""

import re
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TOKEN_ADDRESS_PATTERN, Interval


AMOUNT_PATTERN = re.compile(r"^\d+(\.\d+)?$")


def parse_amount(value) -> Decimal:
    """
    Parse a non-negative plain decimal amount.

    Accepts strings such as ``"100000000"`` or ``"2.5"``, ints and Decimals.
    Floats, exponents, signs and non-finite values are rejected. Decimals
    given in exponent form (``Decimal("1E+2")``) come back in plain form.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, Decimal):
        amount = value
    elif isinstance(value, str) and AMOUNT_PATTERN.match(value.strip()):
        amount = Decimal(value.strip())
    else:
        raise ValueError(f"Invalid amount: {value!r}")

    if not amount.is_finite() or amount < 0:
        raise ValueError(f"Amount must be a non-negative number: {value!r}")
    return Decimal(format(amount.copy_abs(), "f"))


class CreatePlanRequest(BaseModel):
    """Strictly validated body of a plan creation request."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    owner: str = Field(min_length=1)
    amount_per_execution: Decimal
    total_executions: int = Field(ge=1, strict=True)
    interval: Interval
    deposit_token_address: Optional[str] = Field(default=None, pattern=TOKEN_ADDRESS_PATTERN)
    target_token_address: Optional[str] = Field(default=None, pattern=TOKEN_ADDRESS_PATTERN)

    @field_validator("amount_per_execution", mode="before")
    @classmethod
    def _validate_amount(cls, value):
        return parse_amount(value)

    @field_validator("interval", mode="before")
    @classmethod
    def _validate_interval(cls, value):
        return Interval.parse(value)
