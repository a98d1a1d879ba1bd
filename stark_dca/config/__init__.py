"""
Configuration management module for the DCA plan engine.

This module loads YAML configuration files, applies STARK_DCA_* environment
overrides and validates the result with Pydantic.
"""

from .config_manager import ConfigurationManager
from .models import EngineConfig

__all__ = ["ConfigurationManager", "EngineConfig"]
