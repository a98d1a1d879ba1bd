"""
In-memory store owning plan records and the execution ledger.
"""

import logging
import threading
from typing import Dict, List, Optional

from ..exceptions import PlanNotFound
from .models import EngineState, ExecutionLog, Plan


logger = logging.getLogger(__name__)


class PlanStore:
    """Holds plans and execution logs; reads hand out copies, writes replace whole records."""

    def __init__(self):
        self._plans: Dict[str, Plan] = {}
        self._executions: List[ExecutionLog] = []
        self._plan_locks: Dict[str, threading.Lock] = {}
        self._lock = threading.RLock()

    def lock_for(self, plan_id: str) -> threading.Lock:
        """
        Get the lock serializing mutations of one plan.

        Locks exist only for stored plans, so unknown ids never grow the lock table.

        Raises:
            PlanNotFound: If no plan with this id is stored
        """
        with self._lock:
            lock = self._plan_locks.get(plan_id)
            if lock is None:
                raise PlanNotFound(plan_id)
            return lock

    def add_plan(self, plan: Plan) -> None:
        with self._lock:
            if plan.id in self._plans:
                raise ValueError(f"Plan {plan.id} already exists")
            self._plans[plan.id] = plan.model_copy(deep=True)
            self._plan_locks[plan.id] = threading.Lock()

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        with self._lock:
            plan = self._plans.get(plan_id)
            return plan.model_copy(deep=True) if plan is not None else None

    def save_plan(self, plan: Plan) -> None:
        with self._lock:
            if plan.id not in self._plans:
                raise PlanNotFound(plan.id)
            self._plans[plan.id] = plan.model_copy(deep=True)

    def commit_execution(self, plan: Plan, log: ExecutionLog) -> None:
        """Store an updated plan and its new ledger entry together."""
        if log.plan_id != plan.id:
            raise ValueError(f"Execution {log.id} does not belong to plan {plan.id}")

        with self._lock:
            if plan.id not in self._plans:
                raise PlanNotFound(plan.id)
            self._plans[plan.id] = plan.model_copy(deep=True)
            self._executions.append(log)

    def all_plans(self) -> List[Plan]:
        with self._lock:
            return [plan.model_copy(deep=True) for plan in self._plans.values()]

    def plans_by_owner(self, owner: str) -> List[Plan]:
        with self._lock:
            return [plan.model_copy(deep=True) for plan in self._plans.values() if plan.owner == owner]

    def executions_for(self, plan_id: str) -> List[ExecutionLog]:
        with self._lock:
            return [log for log in self._executions if log.plan_id == plan_id]

    def to_state(self) -> EngineState:
        """Snapshot the store for persistence."""
        with self._lock:
            return EngineState(
                plans=[plan.model_copy(deep=True) for plan in self._plans.values()],
                executions=list(self._executions),
            )

    def load_state(self, state: EngineState) -> None:
        """Replace the store contents with a persisted snapshot."""
        with self._lock:
            self._plans = {plan.id: plan.model_copy(deep=True) for plan in state.plans}
            self._executions = list(state.executions)
            self._plan_locks = {plan_id: threading.Lock() for plan_id in self._plans}
        logger.debug(f"Loaded {len(state.plans)} plans and {len(state.executions)} executions into store")

    def __len__(self) -> int:
        with self._lock:
            return len(self._plans)
