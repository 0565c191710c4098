"""
YAML configuration, merged over built-in defaults.

All values pass through the Pydantic models in marketfeed.config.models, so
a bad file fails at startup with the file path attached.

Configuration files (all optional):
    - <config_dir>/exchanges.yaml: Per-exchange overrides
    - <config_dir>/logging.yaml: Log format and level

Environment variables:
    - CONFIG_PATH: Configuration directory used when none is passed
    - LOG_LEVEL: Overrides the configured log level
    - LOG_FORMAT: Overrides the configured log format ("json" or "text")

Example:
    >>> from marketfeed.config.loader import load_config
    >>> config = load_config("config")
    >>> print(config.get_enabled_exchanges())
    ['binance', 'okx', 'kraken', 'coinbase']
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
import yaml
from pydantic import ValidationError

from marketfeed.config.models import (
    DEFAULT_EXCHANGES,
    AppConfig,
    ExchangeConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

logger = structlog.get_logger(__name__)


class ConfigLoadError(Exception):
    """
    A config directory, file or value could not be used.

    Attributes:
        message: What went wrong.
        file_path: Offending file or directory, when one is known.
        cause: Underlying YAML, OS or validation error.
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[Path] = None,
        cause: Optional[Exception] = None,
    ):
        self.message = message
        self.file_path = file_path
        self.cause = cause
        super().__init__(message)


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class ConfigLoader:
    """
    Reads exchanges.yaml and logging.yaml from one directory and merges
    them over the built-in defaults.

    Example:
        >>> config = ConfigLoader("config").load()
        >>> config.get_exchange("kraken").streams.orderbook_depth
        25
    """

    def __init__(self, config_dir: Path | str = "config"):
        """
        Initialize config loader.

        Args:
            config_dir: Path to configuration directory (default: 'config').

        Raises:
            ConfigLoadError: If config path exists but is not a directory,
                or does not exist at all.
        """
        self.config_dir = Path(config_dir)
        if not self.config_dir.exists():
            raise ConfigLoadError(
                f"Configuration directory not found: {self.config_dir}",
                file_path=self.config_dir,
            )
        if not self.config_dir.is_dir():
            raise ConfigLoadError(
                f"Configuration path is not a directory: {self.config_dir}",
                file_path=self.config_dir,
            )

    def _load_yaml(self, filename: str) -> Dict[str, Any]:
        """
        Parse one YAML mapping. A missing file yields {} so the defaults apply.

        Raises:
            ConfigLoadError: If the file is not valid YAML or not a mapping.
        """
        file_path = self.config_dir / filename
        if not file_path.exists():
            logger.debug("config_file_missing", file=str(file_path))
            return {}

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigLoadError(
                f"Invalid YAML syntax in {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e
        except OSError as e:
            raise ConfigLoadError(
                f"Error reading {file_path}: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigLoadError(
                f"Configuration file must contain a mapping: {file_path}",
                file_path=file_path,
            )
        return data

    def _load_exchanges(self) -> Dict[str, ExchangeConfig]:
        """
        Merge each exchanges.yaml entry over the default of the same name.

        Exchanges without a default must define ``rest_url``.
        """
        file_path = self.config_dir / "exchanges.yaml"
        raw_exchanges = self._load_yaml("exchanges.yaml").get("exchanges") or {}
        if not isinstance(raw_exchanges, dict):
            raise ConfigLoadError(
                "'exchanges' must be a mapping of exchange name to settings",
                file_path=file_path,
            )

        exchanges: Dict[str, ExchangeConfig] = dict(DEFAULT_EXCHANGES)

        try:
            for exchange_name, exchange_data in raw_exchanges.items():
                name = str(exchange_name).lower()
                default = DEFAULT_EXCHANGES.get(name)
                base = default.model_dump() if default else {}
                exchanges[name] = ExchangeConfig.model_validate(
                    _deep_merge(base, exchange_data or {})
                )
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid exchange configuration: {e}",
                file_path=file_path,
                cause=e,
            ) from e

        return exchanges

    def _load_logging(self) -> LoggingConfig:
        """
        Load logging configuration from logging.yaml and the environment.

        Environment variables:
            - LOG_LEVEL: Log level (overrides the file)
            - LOG_FORMAT: "json" or "text" (overrides the file)

        Returns:
            LoggingConfig object.

        Raises:
            ConfigLoadError: If the file contents are invalid.
        """
        data = self._load_yaml("logging.yaml").get("logging") or {}

        try:
            config = LoggingConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigLoadError(
                f"Invalid logging configuration: {e}",
                file_path=self.config_dir / "logging.yaml",
                cause=e,
            ) from e

        return _apply_logging_env(config)

    def load(self) -> AppConfig:
        """
        Load and validate all configuration files.

        Returns:
            AppConfig: Validated application configuration.

        Raises:
            ConfigLoadError: If any configuration is invalid.
        """
        try:
            return AppConfig(
                exchanges=self._load_exchanges(),
                logging=self._load_logging(),
            )
        except ConfigLoadError:
            raise
        except ValidationError as e:
            raise ConfigLoadError(
                f"Configuration validation failed: {e}",
                cause=e,
            ) from e


def _apply_logging_env(config: LoggingConfig) -> LoggingConfig:
    """Apply LOG_LEVEL / LOG_FORMAT overrides, ignoring unrecognized values."""
    updates: Dict[str, Any] = {}

    level_str = os.getenv("LOG_LEVEL")
    if level_str:
        try:
            updates["level"] = LogLevel(level_str.upper())
        except ValueError:
            logger.warning("config_invalid_log_level", value=level_str)

    format_str = os.getenv("LOG_FORMAT")
    if format_str:
        try:
            updates["format"] = LogFormat(format_str.lower())
        except ValueError:
            logger.warning("config_invalid_log_format", value=format_str)

    return config.model_copy(update=updates) if updates else config


def load_config(config_dir: Optional[Path | str] = None) -> AppConfig:
    """
    Load configuration from ``config_dir`` or CONFIG_PATH.

    With no directory (and no CONFIG_PATH in the environment) the built-in
    defaults are returned, with environment logging overrides applied.

    Args:
        config_dir: Path to configuration directory.

    Returns:
        AppConfig: Validated application configuration.

    Raises:
        ConfigLoadError: If configuration loading fails.

    Example:
        >>> from marketfeed.config import load_config
        >>> config = load_config()
        >>> config.get_exchange("binance").streams.orderbook_depth
        20
    """
    config_dir = config_dir or os.getenv("CONFIG_PATH")
    if not config_dir:
        return AppConfig(logging=_apply_logging_env(LoggingConfig()))

    loader = ConfigLoader(config_dir)
    return loader.load()
