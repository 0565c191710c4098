"""
Exchange adapter registry.

Maps exchange identifiers to adapter instances. Each exchange package is
imported on first request and its adapter is built once from configuration,
then cached for the life of the registry.

Example:
    >>> from marketfeed.adapters.registry import get_exchange_client
    >>> adapter = get_exchange_client("okx")
    >>> adapter.name
    'okx'
    >>> get_exchange_client("bybit") is None
    True
"""

import importlib
from typing import Dict, Optional, Tuple

import structlog

from marketfeed.config.loader import load_config
from marketfeed.config.models import AppConfig
from marketfeed.interfaces.exchange_adapter import ExchangeAdapter

logger = structlog.get_logger(__name__)

AVAILABLE_EXCHANGES: Tuple[str, ...] = ("binance", "okx", "kraken", "coinbase")


class ExchangeRegistry:
    """
    Lazily constructed, cached exchange adapters.

    Attributes:
        config: Application configuration the adapters are built from.
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self._adapters: Dict[str, ExchangeAdapter] = {}

    def get(self, name: str) -> Optional[ExchangeAdapter]:
        """
        Return the adapter for ``name``.

        Args:
            name: Exchange identifier, any case.

        Returns:
            Optional[ExchangeAdapter]: The cached adapter, or None if the
                exchange is not integrated or disabled in configuration.
        """
        key = name.strip().lower()
        if key not in AVAILABLE_EXCHANGES:
            logger.debug("exchange_not_integrated", exchange=name)
            return None

        cached = self._adapters.get(key)
        if cached is not None:
            return cached

        exchange_config = self.config.get_exchange(key)
        if exchange_config is None or not exchange_config.enabled:
            logger.info("exchange_disabled", exchange=key)
            return None

        module = importlib.import_module(f"marketfeed.adapters.{key}")
        adapter = module.ADAPTER_CLASS(exchange_config)
        self._adapters[key] = adapter

        logger.info("exchange_adapter_loaded", exchange=key)
        return adapter

    def loaded(self) -> Tuple[str, ...]:
        """Identifiers of the adapters built so far."""
        return tuple(self._adapters)


_default_registry: Optional[ExchangeRegistry] = None


def default_registry() -> ExchangeRegistry:
    """Process-wide registry built from load_config() on first use."""
    global _default_registry
    if _default_registry is None:
        _default_registry = ExchangeRegistry(load_config())
    return _default_registry


def get_exchange_client(name: str) -> Optional[ExchangeAdapter]:
    """Return the adapter for ``name`` from the default registry, or None."""
    return default_registry().get(name)


def is_available(name: Optional[str]) -> bool:
    """
    True if ``name`` is an integrated exchange.

    Used to validate a persisted exchange preference before honouring it.
    """
    return bool(name) and name.strip().lower() in AVAILABLE_EXCHANGES
