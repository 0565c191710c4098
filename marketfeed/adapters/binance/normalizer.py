"""
Binance data normalizer.

Converts Binance spot REST and combined-stream payloads to the unified
Candle, OrderBookSnapshot and Trade models.

Binance Kline REST Format (/api/v3/klines):
    [
        [
            1499040000000,      // Open time (ms)
            "0.01634790",       // Open
            "0.80000000",       // High
            "0.01575800",       // Low
            "0.01577100",       // Close
            "148976.11427815",  // Volume (base)
            1499644799999,      // Close time
            "2434.19055334",    // Quote asset volume
            308, "1756.87", "28.46", "0"
        ]
    ]

Binance Combined Stream Envelope:
    {"stream": "btcusdt@kline_1m", "data": {...}}

Kline Stream Payload:
    {"e": "kline", "s": "BTCUSDT",
     "k": {"t": 1672515780000, "o": "0.0010", "h": "0.0025", "l": "0.0015",
           "c": "0.0020", "v": "1000", "q": "1.0000", "x": false, ...}}

Partial Depth Payload (@depth20@100ms):
    {"lastUpdateId": 160, "bids": [["0.0024", "10"]], "asks": [["0.0026", "100"]]}

Aggregate Trade Payload (@aggTrade):
    {"e": "aggTrade", "p": "0.001", "q": "100", "T": 1672515782136, "m": true, ...}

Error Envelope:
    {"code": -1121, "msg": "Invalid symbol."}
"""

from typing import Any, List, Optional

import structlog

from marketfeed.models.candle import Candle
from marketfeed.models.numbers import to_decimal
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.trade import Trade

logger = structlog.get_logger(__name__)


class BinanceNormalizer:
    """
    Normalizes Binance data to unified models.

    All methods are static; parsing failures surface as ValueError so callers
    only have one error type to handle.

    Example:
        >>> candles = BinanceNormalizer.normalize_klines(rows)
        >>> candles[-1].close
        Decimal('105.5')
    """

    @staticmethod
    def parse_error(payload: Any) -> Optional[str]:
        """
        Extract the error message from a Binance REST payload.

        Returns:
            Optional[str]: The ``msg`` of a ``{code, msg}`` envelope, or None.
        """
        if isinstance(payload, dict) and "code" in payload and "msg" in payload:
            return str(payload["msg"])
        return None

    @staticmethod
    def normalize_klines(rows: Any) -> List[Candle]:
        """
        Convert /api/v3/klines rows to candles.

        Binance returns rows oldest first, so order is preserved.

        Raises:
            ValueError: If a row is malformed.
        """
        try:
            return [
                Candle(
                    time=int(row[0]) // 1000,
                    open=to_decimal(row[1]),
                    high=to_decimal(row[2]),
                    low=to_decimal(row[3]),
                    close=to_decimal(row[4]),
                    value=to_decimal(row[7]),
                )
                for row in rows
            ]
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in Binance klines: {e}") from e

    @staticmethod
    def normalize_stream_kline(data: Any) -> Candle:
        """Convert a ``kline`` stream payload to a candle."""
        try:
            k = data["k"]
            return Candle(
                time=int(k["t"]) // 1000,
                open=to_decimal(k["o"]),
                high=to_decimal(k["h"]),
                low=to_decimal(k["l"]),
                close=to_decimal(k["c"]),
                value=to_decimal(k["q"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Missing required field in Binance kline: {e}") from e

    @staticmethod
    def normalize_depth(data: Any, depth: Optional[int] = None) -> OrderBookSnapshot:
        """
        Convert a partial-depth payload (stream or REST) to a snapshot.

        Partial depth is a full top-N book, so no local state is involved.
        """
        try:
            return OrderBookSnapshot.from_pairs(data["bids"], data["asks"], depth=depth)
        except (KeyError, TypeError, IndexError) as e:
            raise ValueError(f"Missing required field in Binance depth: {e}") from e

    @staticmethod
    def normalize_agg_trade(data: Any) -> Trade:
        """Convert an ``aggTrade`` stream payload to a trade."""
        try:
            return Trade(
                price=to_decimal(data["p"]),
                quantity=to_decimal(data["q"]),
                time_ms=int(data["T"]),
                is_buyer_maker=bool(data["m"]),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Missing required field in Binance aggTrade: {e}") from e
