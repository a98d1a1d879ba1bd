"""
Command-line interface module for the DCA plan engine.

This module provides the CLI for creating, cancelling and executing plans
against a persisted plan store.
"""

from .cli import main

__all__ = ["main"]
