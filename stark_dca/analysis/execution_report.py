"""
Execution history reporting for a single plan.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

import pandas as pd

from ..plan_engine.models import ExecutionLog


logger = logging.getLogger(__name__)

FRAME_COLUMNS = [
    'execution_number',
    'executed_at',
    'amount_in',
    'amount_out',
    'price_at_execution',
    'price_source',
    'status',
]


def executions_to_frame(logs: List[ExecutionLog]) -> pd.DataFrame:
    """
    Build a DataFrame of execution logs ordered by execution number.

    Amount columns hold Decimal objects; convert explicitly before doing
    float arithmetic on them.
    """
    if not logs:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    records = [
        {
            'execution_number': log.execution_number,
            'executed_at': log.executed_at,
            'amount_in': log.amount_in,
            'amount_out': log.amount_out,
            'price_at_execution': log.price_at_execution,
            'price_source': log.price_source,
            'status': log.status.value,
        }
        for log in logs
    ]

    df = pd.DataFrame(records, columns=FRAME_COLUMNS)
    df['executed_at'] = pd.to_datetime(df['executed_at'], utc=True)
    return df.sort_values('execution_number').reset_index(drop=True)


def summarize_executions(logs: List[ExecutionLog]) -> Dict:
    """
    Summarize a plan's execution ledger.

    Args:
        logs: Execution logs of one plan

    Returns:
        Dictionary with execution count, exact totals, average and price range
    """
    if not logs:
        return {
            'executions': 0,
            'total_in': Decimal(0),
            'total_out': Decimal(0),
            'average_price': None,
            'min_price': None,
            'max_price': None,
            'first_executed_at': None,
            'last_executed_at': None,
        }

    df = executions_to_frame(logs)

    total_in = sum((log.amount_in for log in logs), Decimal(0))
    total_out = sum((log.amount_out for log in logs), Decimal(0))

    # Average purchase price weighted by amount spent
    weights = df['amount_in'].astype(float)
    average_price: Optional[float]
    if weights.sum() > 0:
        average_price = float((df['price_at_execution'] * weights).sum() / weights.sum())
    else:
        average_price = float(df['price_at_execution'].mean())

    return {
        'executions': len(df),
        'total_in': total_in,
        'total_out': total_out,
        'average_price': average_price,
        'min_price': float(df['price_at_execution'].min()),
        'max_price': float(df['price_at_execution'].max()),
        'first_executed_at': df['executed_at'].min().to_pydatetime(),
        'last_executed_at': df['executed_at'].max().to_pydatetime(),
    }
