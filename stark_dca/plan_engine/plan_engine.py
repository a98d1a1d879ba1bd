"""
Plan lifecycle engine: creation, cancellation and simulated execution of DCA plans.
"""

import logging
from datetime import datetime
from decimal import ROUND_DOWN, Context, Decimal, Inexact, InvalidOperation, Overflow
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from ..config.models import EngineConfig
from ..exceptions import (
    InvalidPlanParameters,
    InvalidPlanState,
    NotPlanOwner,
    PlanNotExecutable,
    PlanNotFound,
)
from ..price_cache import PriceCache
from ..timeutil import Clock, utc_now
from .models import ExecutionLog, ExecutionStatus, Interval, Plan, PlanStatus
from .pagination import DEFAULT_PAGE_LIMIT, Page, paginate
from .plan_store import PlanStore
from .schemas import CreatePlanRequest, parse_amount


logger = logging.getLogger(__name__)

# Wide enough for uint256 token amounts.
MONEY_CONTEXT = Context(prec=100)
# Same width, but refuses to round: deposit totals must be exact.
EXACT_MONEY_CONTEXT = Context(prec=100, traps=[Inexact, InvalidOperation, Overflow])
AMOUNT_OUT_QUANTUM = Decimal("0.00000001")

CANCELLABLE_STATUSES = (PlanStatus.ACTIVE, PlanStatus.PAUSED)


class PlanEngine:
    """Owns plan lifecycle transitions and the append-only execution ledger."""

    def __init__(
        self,
        store: PlanStore,
        price_cache: PriceCache,
        config: Optional[EngineConfig] = None,
        clock: Clock = utc_now,
    ):
        """
        Initialize the plan engine.

        Args:
            store: Store holding plans and execution logs
            price_cache: Price source consulted on every execution
            config: Engine configuration (defaults if None)
            clock: Callable returning the current UTC datetime
        """
        self._store = store
        self._price_cache = price_cache
        self._config = config or EngineConfig()
        self._clock = clock

    @staticmethod
    def compute_next_execution(from_time: datetime, interval: Interval) -> datetime:
        """Scheduled time one interval after ``from_time``."""
        return from_time + Interval.parse(interval).duration

    def create_plan(
        self,
        owner: str,
        amount_per_execution: Union[str, int, Decimal],
        total_executions: int,
        interval: Union[Interval, str],
        deposit_token_address: Optional[str] = None,
        target_token_address: Optional[str] = None,
    ) -> Plan:
        """
        Create a new active plan.

        Args:
            owner: Wallet address of the plan owner
            amount_per_execution: Non-negative decimal amount spent per execution
            total_executions: Execution budget (1..max_total_executions)
            interval: Cadence as an Interval or its name
            deposit_token_address: Token spent (defaults from config)
            target_token_address: Token bought (defaults from config)

        Returns:
            The stored plan

        Raises:
            InvalidPlanParameters: If any parameter fails validation
        """
        if not isinstance(owner, str) or not owner.strip():
            raise InvalidPlanParameters("Owner must be a non-empty string")

        if isinstance(total_executions, bool) or not isinstance(total_executions, int) or total_executions < 1:
            raise InvalidPlanParameters(f"total_executions must be a positive integer, got {total_executions!r}")

        if total_executions > self._config.max_total_executions:
            raise InvalidPlanParameters(
                f"total_executions must not exceed {self._config.max_total_executions}, got {total_executions}"
            )

        try:
            amount = parse_amount(amount_per_execution)
            cadence = Interval.parse(interval)
        except ValueError as e:
            raise InvalidPlanParameters(str(e)) from e

        try:
            total_deposited = EXACT_MONEY_CONTEXT.multiply(amount, Decimal(total_executions))
        except Inexact as e:
            raise InvalidPlanParameters(
                f"Deposit total for {amount} x {total_executions} exceeds {EXACT_MONEY_CONTEXT.prec} "
                f"significant digits"
            ) from e

        now = self._clock()
        try:
            plan = Plan(
                owner=owner,
                deposit_token_address=deposit_token_address or self._config.deposit_token_address,
                target_token_address=target_token_address or self._config.target_token_address,
                amount_per_execution=amount,
                total_deposited=total_deposited,
                total_executions=total_executions,
                executions_completed=0,
                interval=cadence,
                next_execution_at=now,
                status=PlanStatus.ACTIVE,
                created_at=now,
                updated_at=now,
            )
        except ValidationError as e:
            raise InvalidPlanParameters(str(e)) from e

        self._store.add_plan(plan)
        logger.info(f"Plan created: {plan.id} for {owner} "
                    f"({amount} x {total_executions}, {cadence.value.lower()})")
        return plan

    def create_plan_from_request(self, payload: Dict[str, Any]) -> Plan:
        """
        Validate a loosely-typed request body and create the plan it describes.

        Raises:
            InvalidPlanParameters: If the payload does not match CreatePlanRequest
        """
        try:
            request = CreatePlanRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidPlanParameters(str(e)) from e

        return self.create_plan(
            owner=request.owner,
            amount_per_execution=request.amount_per_execution,
            total_executions=request.total_executions,
            interval=request.interval,
            deposit_token_address=request.deposit_token_address,
            target_token_address=request.target_token_address,
        )

    def cancel_plan(self, plan_id: str, requester: str) -> Plan:
        """
        Cancel an active or paused plan. Only the owner can cancel.

        Raises:
            PlanNotFound: If the plan does not exist
            NotPlanOwner: If requester is not the plan owner
            InvalidPlanState: If the plan is already cancelled or completed
        """
        with self._store.lock_for(plan_id):
            plan = self._store.get_plan(plan_id)
            if plan is None:
                raise PlanNotFound(plan_id)
            if plan.owner != requester:
                raise NotPlanOwner(plan_id, requester)
            if plan.status not in CANCELLABLE_STATUSES:
                raise InvalidPlanState(f"Cannot cancel plan {plan_id} in status {plan.status.value}")

            plan.status = PlanStatus.CANCELLED
            plan.updated_at = self._clock()
            self._store.save_plan(plan)

        logger.info(f"Plan cancelled: {plan_id}")
        return plan

    def execute_plan(self, plan: Union[Plan, str]) -> ExecutionLog:
        """
        Execute one simulated purchase for a due, active plan.

        The stored plan is re-read under the plan's lock, so the caller's copy
        may be stale. Nothing is written unless the whole execution succeeds.

        Args:
            plan: Plan (or plan id) to execute

        Returns:
            The new execution log entry

        Raises:
            PlanNotFound: If the plan does not exist
            PlanNotExecutable: If the plan is not active, not due, or has no budget left
            PriceUnavailableError: If no price could be obtained
        """
        plan_id = plan if isinstance(plan, str) else plan.id

        with self._store.lock_for(plan_id):
            current = self._store.get_plan(plan_id)
            if current is None:
                raise PlanNotFound(plan_id)

            now = self._clock()
            if current.status != PlanStatus.ACTIVE:
                raise PlanNotExecutable(f"Plan {plan_id} is {current.status.value}, not ACTIVE")
            if current.executions_completed >= current.total_executions:
                raise PlanNotExecutable(f"Plan {plan_id} has no executions remaining")
            if current.next_execution_at > now:
                raise PlanNotExecutable(
                    f"Plan {plan_id} is not due until {current.next_execution_at.isoformat()}"
                )

            snapshot = self._price_cache.get_price()

            amount_in = current.amount_per_execution
            amount_out = self._compute_amount_out(amount_in, snapshot.price)
            executed_at = self._clock()
            execution_number = current.executions_completed + 1

            log = ExecutionLog(
                plan_id=plan_id,
                execution_number=execution_number,
                executed_at=executed_at,
                amount_in=amount_in,
                amount_out=amount_out,
                price_at_execution=snapshot.price,
                price_source=snapshot.source,
                status=ExecutionStatus.SUCCESS,
            )

            current.executions_completed = execution_number
            current.next_execution_at = self.compute_next_execution(current.next_execution_at, current.interval)
            current.updated_at = executed_at
            if current.executions_completed == current.total_executions:
                current.status = PlanStatus.COMPLETED

            self._store.commit_execution(current, log)

        logger.info(f"Plan {plan_id} executed ({execution_number}/{current.total_executions}) - "
                    f"bought {amount_out} {self._price_cache.symbol} at ${snapshot.price:,.2f}")
        if current.status == PlanStatus.COMPLETED:
            logger.info(f"Plan {plan_id} completed")
        return log

    @staticmethod
    def _compute_amount_out(amount_in: Decimal, price: float) -> Decimal:
        """Convert the input amount at ``price``, truncated to 8 decimal places."""
        quotient = MONEY_CONTEXT.divide(amount_in, Decimal(str(price)))
        return quotient.quantize(AMOUNT_OUT_QUANTUM, rounding=ROUND_DOWN, context=MONEY_CONTEXT)

    def get_plan_by_id(self, plan_id: str) -> Optional[Plan]:
        """Get a specific plan by ID."""
        return self._store.get_plan(plan_id)

    def get_plans_by_owner(self, owner: str, status: Optional[PlanStatus] = None) -> List[Plan]:
        """Get an owner's plans in creation order, optionally filtered by status."""
        plans = self._store.plans_by_owner(owner)
        if status is not None:
            plans = [plan for plan in plans if plan.status == PlanStatus(status)]
        return plans

    def get_execution_logs(self, plan_id: str) -> List[ExecutionLog]:
        """Get a plan's execution logs in the order they were recorded."""
        return self._store.executions_for(plan_id)

    def list_plans(
        self,
        owner: str,
        status: Optional[PlanStatus] = None,
        cursor: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> Page:
        """
        Page through an owner's plans in creation order.

        Args:
            owner: Wallet address of the plan owner
            status: Optional status filter
            cursor: ``next_cursor`` of the previous page, None for the first page
            limit: Page size (1..100)

        Raises:
            InvalidPlanParameters: If the limit is out of range or the cursor is unknown
        """
        return paginate(self.get_plans_by_owner(owner, status=status), cursor=cursor, limit=limit)

    def list_execution_logs(
        self,
        plan_id: str,
        requester: Optional[str] = None,
        cursor: Optional[str] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> Page:
        """
        Page through a plan's execution logs in recorded order.

        Raises:
            PlanNotFound: If the plan does not exist
            NotPlanOwner: If a requester is given and does not own the plan
            InvalidPlanParameters: If the limit is out of range or the cursor is unknown
        """
        plan = self._store.get_plan(plan_id)
        if plan is None:
            raise PlanNotFound(plan_id)
        if requester is not None and plan.owner != requester:
            raise NotPlanOwner(plan_id, requester)

        return paginate(self.get_execution_logs(plan_id), cursor=cursor, limit=limit)

    def get_due_plans(self, limit: Optional[int] = None) -> List[Plan]:
        """Get plans that can execute now, earliest scheduled first."""
        if limit is None:
            limit = self._config.due_batch_limit

        now = self._clock()
        due = [plan for plan in self._store.all_plans() if plan.is_due(now)]
        due.sort(key=lambda plan: plan.next_execution_at)
        return due[:limit]

    def process_due_plans(self) -> List[ExecutionLog]:
        """
        Execute every due plan once, sequentially.

        A failure on one plan is logged and does not stop the batch.

        Returns:
            Execution logs for the plans that executed
        """
        due_plans = self.get_due_plans()

        if not due_plans:
            logger.debug("No plans due for execution")
            return []

        logger.info(f"Processing {len(due_plans)} due plans")

        results = []
        for plan in due_plans:
            try:
                results.append(self.execute_plan(plan.id))
            except PlanNotExecutable as e:
                logger.warning(f"Plan {plan.id} skipped: {e}")
            except Exception as e:
                logger.error(f"Plan {plan.id} execution failed: {e}")

        logger.info(f"Execution batch complete: {len(results)} of {len(due_plans)} plans executed")
        return results
