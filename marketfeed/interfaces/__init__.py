"""
Abstract interfaces.

The key interface is ExchangeAdapter, which defines the contract for all
exchange-specific implementations (Binance, OKX, Kraken, Coinbase).

Example:
    >>> from marketfeed.interfaces import ExchangeAdapter
    >>> class BinanceAdapter(ExchangeAdapter):
    ...     @property
    ...     def name(self) -> str:
    ...         return "binance"
    ...     # ... implement other abstract methods

Modules:
    exchange_adapter: ExchangeAdapter ABC for exchange integrations
"""

from marketfeed.interfaces.exchange_adapter import ExchangeAdapter

__all__: list[str] = [
    "ExchangeAdapter",
]
