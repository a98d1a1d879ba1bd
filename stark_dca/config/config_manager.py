"""
Configuration manager: YAML file, then STARK_DCA_* environment overrides.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import EngineConfig


logger = logging.getLogger(__name__)


class EnvironmentOverrides(BaseSettings):
    """
    Deployment overrides read from the environment, e.g. ``STARK_DCA_PRICE_API_KEY``.

    Values stay raw strings here; EngineConfig does the typing and range checks.
    """

    model_config = SettingsConfigDict(env_prefix="STARK_DCA_", extra="ignore")

    symbol: Optional[str] = None
    price_source: Optional[str] = None
    yfinance_ticker: Optional[str] = None
    price_api_url: Optional[str] = None
    price_api_key: Optional[str] = None
    coin_id: Optional[str] = None
    vs_currency: Optional[str] = None
    price_cache_seconds: Optional[str] = None
    request_timeout_seconds: Optional[str] = None
    max_total_executions: Optional[str] = None
    deposit_token_address: Optional[str] = None
    target_token_address: Optional[str] = None
    due_batch_limit: Optional[str] = None


class ConfigurationManager:
    """Builds an EngineConfig from a YAML file and environment overrides."""

    DEFAULT_CONFIG_FILENAME = "stark_dca.yaml"

    def load_config(self, config_path: Optional[str] = None) -> EngineConfig:
        """
        Load configuration, environment values taking precedence over the file.

        A missing or unreadable file contributes nothing; settings that fail
        validation are dropped individually and fall back to their defaults.

        Args:
            config_path: Path to configuration file. If None, uses default.
        """
        if config_path is None:
            config_path = self.get_default_config_path()

        try:
            values = self._load_yaml_file(config_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config from {config_path}: {e}")
            values = {}

        env_values = self.read_environment()
        if env_values:
            logger.info(f"Environment overrides: {', '.join(sorted(env_values))}")
        values.update(env_values)

        return self.validate_config(values)

    def read_environment(self) -> Dict[str, str]:
        """Collect the STARK_DCA_* variables that are set."""
        return EnvironmentOverrides().model_dump(exclude_none=True)

    def validate_config(self, config: Dict[str, Any]) -> EngineConfig:
        """
        Validate a configuration mapping, discarding settings that fail.

        Returns:
            EngineConfig built from the valid settings, defaults for the rest.
        """
        values = dict(config)
        try:
            return EngineConfig(**values)
        except ValidationError as e:
            rejected = {str(error['loc'][0]) for error in e.errors() if error['loc']}
            for error in e.errors():
                field = error['loc'][0] if error['loc'] else '<config>'
                logger.warning(f"Ignoring setting {field}: {error['msg']}")

        remaining = {key: value for key, value in values.items() if key not in rejected}
        try:
            return EngineConfig(**remaining)
        except ValidationError as e:
            logger.warning(f"Configuration validation failed: {e}")
            logger.info("Using default configuration")
            return EngineConfig()

    def get_default_config_path(self) -> str:
        """Get the default configuration file path."""
        return self.DEFAULT_CONFIG_FILENAME

    def _load_yaml_file(self, file_path: str) -> Dict[str, Any]:
        """Load a YAML mapping; an empty file is an empty mapping."""
        path = Path(file_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r', encoding='utf-8') as file:
            data = yaml.safe_load(file) or {}

        if not isinstance(data, dict):
            raise ValueError(f"Configuration file must contain a mapping: {file_path}")
        return data
