"""
Shared Pydantic data models.

This module exports all value types used throughout the package.
All models use Decimal for financial precision and are immutable.

Modules:
    candle: OHLC candles
    orderbook: Order book snapshots and price levels
    trade: Trades and taker side
    stream: Tagged stream message envelope

Example:
    >>> from marketfeed.models import Candle, OrderBookSnapshot, Trade
    >>> from marketfeed.models import DepthMessage, StreamMessage
"""

from marketfeed.models.candle import Candle
from marketfeed.models.numbers import to_decimal
from marketfeed.models.orderbook import OrderBookSnapshot, PriceLevel
from marketfeed.models.stream import (
    DepthMessage,
    KlineMessage,
    MessageHandler,
    StreamMessage,
    TradeMessage,
)
from marketfeed.models.trade import Trade, TradeSide

__all__ = [
    # Candles
    "Candle",
    # Order book
    "PriceLevel",
    "OrderBookSnapshot",
    # Trades
    "Trade",
    "TradeSide",
    # Stream
    "KlineMessage",
    "DepthMessage",
    "TradeMessage",
    "StreamMessage",
    "MessageHandler",
    # Parsing
    "to_decimal",
]
