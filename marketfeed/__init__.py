"""
Multi-exchange market data core for the market dashboard.

This package normalizes the public REST and WebSocket APIs of several crypto
exchanges into one internal schema that live dashboard widgets consume.

This package provides:
- Data models for candles, order books, trades and stream messages
- The ExchangeAdapter interface and one adapter per supported exchange
- A reconnecting stream session and a local order book maintainer
- An adapter registry keyed by exchange identifier
- Configuration and logging setup
"""

__version__ = "0.1.0"
