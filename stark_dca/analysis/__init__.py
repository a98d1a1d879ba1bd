"""
Reporting utilities for plan execution history.
"""

from .execution_report import executions_to_frame, summarize_executions

__all__ = ["executions_to_frame", "summarize_executions"]
