"""
OKX data normalizer.

Converts OKX v5 REST and public WebSocket payloads to unified models.

OKX REST Envelope:
    {"code": "0", "msg": "", "data": [...]}
    Any code other than "0" is an error; ``msg`` carries the reason.

Candle Row Format (/api/v5/market/candles, newest first):
    [ts, o, h, l, c, vol, volCcy, volCcyQuote, confirm]
    ts is the bar start in ms; volCcyQuote is the quote-currency volume.

OKX Order Book Format (REST and ``books`` channel):
    {
        "arg": {"channel": "books", "instId": "BTC-USDT"},
        "action": "snapshot",  // or "update"
        "data": [
            {
                "asks": [["50001.0", "1.5", "0", "2"], ...],
                "bids": [["50000.0", "2.0", "0", "3"], ...],
                "ts": "1234567890123"
            }
        ]
    }

Price Level Format:
    [price, quantity, deprecated, num_orders]
    We only need price and quantity.

Trade Format (``trades`` channel):
    {"instId": "BTC-USDT", "px": "42219.9", "sz": "0.12", "side": "buy", "ts": "1630048897897"}
    ``side`` is the taker side, so a "sell" means the buyer was the maker.
"""

from typing import Any, List, Optional

import structlog

from marketfeed.models.candle import Candle
from marketfeed.models.numbers import to_decimal
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.trade import Trade

logger = structlog.get_logger(__name__)


class OKXNormalizer:
    """
    Normalizes OKX data to unified models.

    Example:
        >>> trade = OKXNormalizer.normalize_trade(
        ...     {"px": "100", "sz": "2", "side": "sell", "ts": "1700000000000"}
        ... )
        >>> trade.is_buyer_maker
        True
    """

    @staticmethod
    def parse_error(payload: Any) -> Optional[str]:
        """Return ``msg`` when the envelope code is not "0", else None."""
        if isinstance(payload, dict) and "code" in payload and str(payload["code"]) != "0":
            return str(payload.get("msg") or f"code {payload['code']}")
        return None

    @staticmethod
    def normalize_candle(row: Any) -> Candle:
        """
        Convert one candle row (REST or ``candle*`` channel).

        Raises:
            ValueError: If the row is malformed.
        """
        try:
            return Candle(
                time=int(row[0]) // 1000,
                open=to_decimal(row[1]),
                high=to_decimal(row[2]),
                low=to_decimal(row[3]),
                close=to_decimal(row[4]),
                value=to_decimal(row[7]),
            )
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in OKX candle: {e}") from e

    @staticmethod
    def normalize_candles(rows: Any) -> List[Candle]:
        """Convert REST candle rows, returned newest first, to ascending candles."""
        candles = [OKXNormalizer.normalize_candle(row) for row in rows]
        candles.reverse()
        return candles

    @staticmethod
    def normalize_book(data: Any, depth: Optional[int] = None) -> OrderBookSnapshot:
        """Convert a REST /market/books ``data`` list to a snapshot."""
        try:
            book = data[0]
            return OrderBookSnapshot.from_pairs(book["bids"], book["asks"], depth=depth)
        except (KeyError, IndexError, TypeError) as e:
            raise ValueError(f"Missing required field in OKX book: {e}") from e

    @staticmethod
    def normalize_trade(data: Any) -> Trade:
        """Convert one ``trades`` channel entry to a trade."""
        try:
            return Trade(
                price=to_decimal(data["px"]),
                quantity=to_decimal(data["sz"]),
                time_ms=int(data["ts"]),
                is_buyer_maker=data["side"] == "sell",
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Missing required field in OKX trade: {e}") from e
