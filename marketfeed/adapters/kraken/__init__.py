"""
Kraken exchange adapter.

Components:
    - KrakenAdapter: Main adapter implementing ExchangeAdapter interface
    - KrakenNormalizer: Data format converter and asset aliasing
    - KrakenStreamProtocol: v1 public-socket session protocol with a local book
"""

from marketfeed.adapters.kraken.adapter import KrakenAdapter
from marketfeed.adapters.kraken.normalizer import KrakenNormalizer
from marketfeed.adapters.kraken.stream import KrakenStreamProtocol

ADAPTER_CLASS = KrakenAdapter

__all__ = [
    "ADAPTER_CLASS",
    "KrakenAdapter",
    "KrakenNormalizer",
    "KrakenStreamProtocol",
]
