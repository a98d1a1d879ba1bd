"""
Data persistence module for the DCA plan engine.

This module saves and loads the plan store, rejects files whose execution
ledger disagrees with their plans, and recovers from the backup copy.
"""

from .ledger_checks import find_ledger_problems
from .state_manager import StateManager

__all__ = ['StateManager', 'find_ledger_problems']
