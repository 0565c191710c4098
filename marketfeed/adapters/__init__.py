"""
Exchange adapters for the market data core.

All adapters implement the ExchangeAdapter interface. Exchange packages are
imported lazily through the registry, so importing this package does not
pull in any of them.

Supported Exchanges:
    - Binance (REST + combined streams)
    - OKX (REST + public socket)
    - Kraken (REST + v1 public socket)
    - Coinbase (REST only)
"""

from marketfeed.adapters.registry import (
    AVAILABLE_EXCHANGES,
    ExchangeRegistry,
    get_exchange_client,
    is_available,
)

__all__: list[str] = [
    "AVAILABLE_EXCHANGES",
    "ExchangeRegistry",
    "get_exchange_client",
    "is_available",
]
