"""
DCA plan lifecycle module.

This module manages plan records using a state machine pattern, handling
creation, cancellation, simulated execution and the append-only execution ledger.
"""

from .models import EngineState, ExecutionLog, ExecutionStatus, Interval, Plan, PlanStatus
from .pagination import Page
from .plan_engine import PlanEngine
from .plan_store import PlanStore
from .schemas import CreatePlanRequest

__all__ = [
    "PlanEngine",
    "PlanStore",
    "Plan",
    "PlanStatus",
    "Interval",
    "ExecutionLog",
    "ExecutionStatus",
    "EngineState",
    "CreatePlanRequest",
    "Page",
]
