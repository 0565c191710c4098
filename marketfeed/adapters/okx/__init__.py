"""
OKX exchange adapter.

Components:
    - OKXAdapter: Main adapter implementing ExchangeAdapter interface
    - OKXNormalizer: Data format converter
    - OKXStreamProtocol: Public-socket session protocol with a local book

Example:
    >>> from marketfeed.adapters.okx import OKXAdapter
    >>> adapter = OKXAdapter()
    >>> disconnect = adapter.connect("btc-usdt", "1h", handler)
"""

from marketfeed.adapters.okx.adapter import OKXAdapter
from marketfeed.adapters.okx.normalizer import OKXNormalizer
from marketfeed.adapters.okx.stream import OKXStreamProtocol

ADAPTER_CLASS = OKXAdapter

__all__ = [
    "ADAPTER_CLASS",
    "OKXAdapter",
    "OKXNormalizer",
    "OKXStreamProtocol",
]
