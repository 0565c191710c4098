"""
Configuration management.

Configuration is optional: every setting has a built-in default, and YAML
files in a config directory override individual values. All values are
validated with Pydantic models.

The configuration system covers:
- Exchange endpoints (REST, WebSocket)
- Connection settings (rate limit, timeouts, reconnect delay, keep-alive)
- Stream sizing (order book depth, kline window)
- Logging format and level

Environment variables:
    - CONFIG_PATH: Configuration directory
    - LOG_LEVEL: Application log level
    - LOG_FORMAT: "json" or "text"

Example:
    >>> from marketfeed.config import load_config
    >>> config = load_config()
    >>> config.get_exchange("kraken").streams.orderbook_depth
    25
"""

from marketfeed.config.loader import ConfigLoadError, ConfigLoader, load_config
from marketfeed.config.models import (
    DEFAULT_EXCHANGES,
    AppConfig,
    ConnectionSettings,
    ExchangeConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
    StreamSettings,
)

__all__ = [
    # Loader
    "ConfigLoadError",
    "ConfigLoader",
    "load_config",
    # Enums
    "LogFormat",
    "LogLevel",
    # Models
    "AppConfig",
    "ConnectionSettings",
    "ExchangeConfig",
    "LoggingConfig",
    "StreamSettings",
    "DEFAULT_EXCHANGES",
]
