"""
Consistency checks between persisted plans and their execution ledger.
"""

from collections import defaultdict
from typing import Dict, List

from ..plan_engine.models import EngineState, ExecutionLog, ExecutionStatus, PlanStatus


def find_ledger_problems(state: EngineState) -> List[str]:
    """
    List every way the ledger disagrees with the plans it belongs to.

    Checks that each execution belongs to a stored plan, that each plan's
    execution numbers run 1..n without gaps or repeats, that
    ``executions_completed`` matches the SUCCESS rows and stays within
    ``total_executions``, and that exhausted plans are COMPLETED.

    Returns:
        Human-readable problem descriptions; empty when the state is consistent
    """
    problems = []
    plans = {plan.id: plan for plan in state.plans}

    logs_by_plan: Dict[str, List[ExecutionLog]] = defaultdict(list)
    for log in state.executions:
        if log.plan_id not in plans:
            problems.append(f"Execution {log.id} references unknown plan {log.plan_id}")
            continue
        logs_by_plan[log.plan_id].append(log)

    for plan_id, plan in plans.items():
        logs = logs_by_plan.get(plan_id, [])
        numbers = sorted(log.execution_number for log in logs)

        if len(set(numbers)) != len(numbers):
            problems.append(f"Plan {plan_id} has duplicate execution numbers: {numbers}")
        elif numbers != list(range(1, len(numbers) + 1)):
            problems.append(f"Plan {plan_id} execution numbers are not contiguous from 1: {numbers}")

        succeeded = sum(1 for log in logs if log.status == ExecutionStatus.SUCCESS)
        if plan.executions_completed != succeeded:
            problems.append(
                f"Plan {plan_id} reports {plan.executions_completed} executions "
                f"but the ledger holds {succeeded} successful ones"
            )

        if plan.executions_completed > plan.total_executions:
            problems.append(
                f"Plan {plan_id} executed {plan.executions_completed} of {plan.total_executions} allowed"
            )
        elif plan.executions_completed == plan.total_executions and plan.status != PlanStatus.COMPLETED:
            problems.append(f"Plan {plan_id} used its whole budget but is {plan.status.value}")
        elif plan.status == PlanStatus.COMPLETED and plan.executions_completed < plan.total_executions:
            problems.append(
                f"Plan {plan_id} is COMPLETED after only "
                f"{plan.executions_completed} of {plan.total_executions} executions"
            )

    return problems
