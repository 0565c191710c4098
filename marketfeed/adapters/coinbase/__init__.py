"""
Coinbase exchange adapter (REST only).

Components:
    - CoinbaseAdapter: Main adapter implementing ExchangeAdapter interface
    - CoinbaseNormalizer: Data format converter
"""

from marketfeed.adapters.coinbase.adapter import CoinbaseAdapter
from marketfeed.adapters.coinbase.normalizer import CoinbaseNormalizer

ADAPTER_CLASS = CoinbaseAdapter

__all__ = [
    "ADAPTER_CLASS",
    "CoinbaseAdapter",
    "CoinbaseNormalizer",
]
