"""
Error types raised by the DCA plan engine and price cache.
"""


class DCAEngineError(Exception):
    """Base class for plan engine and price cache failures."""


class InvalidPlanParameters(DCAEngineError, ValueError):
    """Raised when plan creation input fails validation."""


class PlanNotFound(DCAEngineError, LookupError):
    """Raised when a plan id does not exist in the store."""

    def __init__(self, plan_id: str):
        super().__init__(f"Plan {plan_id} not found")
        self.plan_id = plan_id


class NotPlanOwner(DCAEngineError, PermissionError):
    """Raised when someone other than the owner tries to modify a plan."""

    def __init__(self, plan_id: str, requester: str):
        super().__init__(f"{requester} is not the owner of plan {plan_id}")
        self.plan_id = plan_id
        self.requester = requester


class InvalidPlanState(DCAEngineError):
    """Raised when a transition is not allowed from the plan's current status."""


class PlanNotExecutable(DCAEngineError):
    """Raised when a plan is not active, not due, or has no executions left."""


class PriceUnavailableError(DCAEngineError, RuntimeError):
    """Raised when no live price could be fetched and nothing is cached."""
