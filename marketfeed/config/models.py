"""
Pydantic models for application configuration.

This module defines the configuration models that are validated when loading
YAML configuration files. Every model has sensible defaults so the package
works with no configuration files at all; the built-in exchange endpoints
are defined in DEFAULT_EXCHANGES.

Configuration files (all optional):
    - config/exchanges.yaml: Exchange endpoints, connection and stream settings
    - config/logging.yaml: Log format and level

Example:
    >>> from marketfeed.config.models import AppConfig
    >>> config = AppConfig()
    >>> config.get_exchange("okx").connection.keepalive_interval_seconds
    25.0
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class LogFormat(str, Enum):
    """Logging format options."""

    JSON = "json"
    TEXT = "text"


class LogLevel(str, Enum):
    """Logging level options."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# =============================================================================
# EXCHANGE CONFIGURATION
# =============================================================================


class ConnectionSettings(BaseModel):
    """Connection settings for an exchange."""

    model_config = {"frozen": True, "extra": "forbid"}

    rate_limit_per_second: int = Field(
        default=10,
        description="Maximum REST requests per second",
        ge=1,
        le=100,
    )
    timeout_seconds: float = Field(
        default=10.0,
        description="REST request timeout",
        gt=0,
        le=120,
    )
    reconnect_delay_seconds: float = Field(
        default=5.0,
        description="Fixed delay before a stream reconnect attempt",
        gt=0,
        le=300,
    )
    keepalive_interval_seconds: Optional[float] = Field(
        default=None,
        description="Interval for application-level ping frames (None disables)",
        gt=0,
        le=300,
    )


class StreamSettings(BaseModel):
    """Stream and snapshot sizing for an exchange."""

    model_config = {"frozen": True, "extra": "forbid"}

    orderbook_depth: int = Field(
        default=20,
        description="Number of order book levels emitted per side",
        ge=5,
        le=100,
    )
    kline_limit: int = Field(
        default=300,
        description="Maximum number of historical candles fetched",
        ge=1,
        le=300,
    )


class ExchangeConfig(BaseModel):
    """Configuration for a single exchange."""

    model_config = {"frozen": True, "extra": "forbid"}

    enabled: bool = Field(
        default=True,
        description="Whether this exchange is offered by the registry",
    )
    rest_url: str = Field(
        ...,
        description="REST API base URL",
        min_length=1,
    )
    websocket_url: Optional[str] = Field(
        default=None,
        description="Public WebSocket URL (None when streaming is unavailable)",
    )
    connection: ConnectionSettings = Field(
        default_factory=ConnectionSettings,
        description="Connection settings",
    )
    streams: StreamSettings = Field(
        default_factory=StreamSettings,
        description="Stream configuration",
    )

    @field_validator("rest_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the REST base URL so paths can be appended directly."""
        return v.rstrip("/")


DEFAULT_EXCHANGES: Dict[str, ExchangeConfig] = {
    "binance": ExchangeConfig(
        rest_url="https://api.binance.com",
        websocket_url="wss://stream.binance.com:9443/stream",
        streams=StreamSettings(orderbook_depth=20),
    ),
    "okx": ExchangeConfig(
        rest_url="https://www.okx.com",
        websocket_url="wss://ws.okx.com:8443/ws/v5/public",
        connection=ConnectionSettings(keepalive_interval_seconds=25.0),
        streams=StreamSettings(orderbook_depth=20),
    ),
    "kraken": ExchangeConfig(
        rest_url="https://api.kraken.com",
        websocket_url="wss://ws.kraken.com",
        connection=ConnectionSettings(rate_limit_per_second=1),
        streams=StreamSettings(orderbook_depth=25),
    ),
    "coinbase": ExchangeConfig(
        rest_url="https://api.exchange.coinbase.com",
        websocket_url=None,
        connection=ConnectionSettings(rate_limit_per_second=3),
    ),
}


# =============================================================================
# LOGGING CONFIGURATION
# =============================================================================


class LoggingConfig(BaseModel):
    """Logging configuration."""

    model_config = {"frozen": True, "extra": "forbid"}

    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="Log output format",
    )
    level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Default log level",
    )


# =============================================================================
# ROOT CONFIGURATION
# =============================================================================


class AppConfig(BaseModel):
    """
    Root application configuration.

    Aggregates all configuration sections into a single validated object.

    Example:
        >>> config = AppConfig()
        >>> config.get_enabled_exchanges()
        ['binance', 'okx', 'kraken', 'coinbase']
    """

    model_config = {"frozen": True, "extra": "forbid"}

    exchanges: Dict[str, ExchangeConfig] = Field(
        default_factory=lambda: dict(DEFAULT_EXCHANGES),
        description="Exchange configurations keyed by name",
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description="Logging configuration",
    )

    def get_exchange(self, name: str) -> Optional[ExchangeConfig]:
        """
        Get exchange configuration by name.

        Args:
            name: Exchange name (e.g., "binance")

        Returns:
            Optional[ExchangeConfig]: Exchange config or None if not found.
        """
        return self.exchanges.get(name)

    def get_enabled_exchanges(self) -> List[str]:
        """
        Get list of enabled exchange names.

        Returns:
            List[str]: Names of enabled exchanges.
        """
        return [name for name, config in self.exchanges.items() if config.enabled]
