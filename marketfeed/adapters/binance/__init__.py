"""
Binance exchange adapter.

Components:
    - BinanceAdapter: Main adapter implementing ExchangeAdapter interface
    - BinanceNormalizer: Data format converter
    - BinanceStreamProtocol: Combined-stream session protocol

Example:
    >>> from marketfeed.adapters.binance import BinanceAdapter
    >>> adapter = BinanceAdapter()
    >>> symbols = await adapter.fetch_all_symbols()
"""

from marketfeed.adapters.binance.adapter import BinanceAdapter
from marketfeed.adapters.binance.normalizer import BinanceNormalizer
from marketfeed.adapters.binance.stream import BinanceStreamProtocol

ADAPTER_CLASS = BinanceAdapter

__all__ = [
    "ADAPTER_CLASS",
    "BinanceAdapter",
    "BinanceNormalizer",
    "BinanceStreamProtocol",
]
