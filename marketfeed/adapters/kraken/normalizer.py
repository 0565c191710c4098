"""
Kraken data normalizer.

Converts Kraken public REST and WebSocket v1 payloads to unified models.

Kraken REST Envelope:
    {"error": [], "result": {...}}
    A non-empty ``error`` list is a failure, e.g. ["EQuery:Unknown asset pair"].

OHLC Result (/0/public/OHLC):
    {"XXBTZUSD": [[time, open, high, low, close, vwap, volume, count], ...],
     "last": 1688671200}
    ``time`` is the bar start in seconds. Only base volume is reported, so
    quote volume is approximated as volume * vwap (volume * close when vwap
    is zero, as it is for bars without trades).

Depth Result (/0/public/Depth):
    {"XXBTZUSD": {"asks": [[price, volume, timestamp], ...], "bids": [...]}}

WebSocket ohlc Payload:
    [time, etime, open, high, low, close, vwap, volume, count]
    ``time`` is the last update and ``etime`` the bar end, both in seconds.

WebSocket trade Payload:
    [[price, volume, time, side, orderType, misc], ...]
    ``side`` is the taker side ("b" or "s"); ``time`` is float seconds.

Asset Aliases:
    Kraken names some assets differently: XBT is BTC and XDG is DOGE.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import structlog

from marketfeed.models.candle import Candle
from marketfeed.models.numbers import to_decimal
from marketfeed.models.orderbook import OrderBookSnapshot
from marketfeed.models.trade import Trade

logger = structlog.get_logger(__name__)

# Kraken asset name -> common asset name
ASSET_ALIASES: Dict[str, str] = {"XBT": "BTC", "XDG": "DOGE"}
REVERSE_ASSET_ALIASES: Dict[str, str] = {v: k for k, v in ASSET_ALIASES.items()}


def to_common_asset(asset: str) -> str:
    """Map a Kraken asset name to its common name (XBT -> BTC)."""
    return ASSET_ALIASES.get(asset.upper(), asset.upper())


def to_kraken_asset(asset: str) -> str:
    """Map a common asset name to Kraken's name (BTC -> XBT)."""
    return REVERSE_ASSET_ALIASES.get(asset.upper(), asset.upper())


def _quote_value(volume: Decimal, vwap: Decimal, close: Decimal) -> Decimal:
    return volume * (vwap if vwap > 0 else close)


class KrakenNormalizer:
    """
    Normalizes Kraken data to unified models.

    Example:
        >>> KrakenNormalizer.parse_error({"error": ["EQuery:Unknown asset pair"]})
        'EQuery:Unknown asset pair'
    """

    @staticmethod
    def parse_error(payload: Any) -> Optional[str]:
        """Join a non-empty ``error`` list, or return None."""
        if isinstance(payload, dict):
            errors = payload.get("error")
            if errors:
                return ", ".join(str(e) for e in errors)
        return None

    @staticmethod
    def result_entry(payload: Any) -> Any:
        """
        Return the per-pair entry of a ``result`` object.

        Kraken keys the result by its internal pair name (e.g. XXBTZUSD),
        which differs from the requested altname, so the first key other than
        ``last`` is taken.

        Raises:
            ValueError: If the result holds no pair entry.
        """
        try:
            result = payload["result"]
            for key, value in result.items():
                if key != "last":
                    return value
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"Missing required field in Kraken result: {e}") from e
        raise ValueError("Kraken result holds no pair entry")

    @staticmethod
    def normalize_ohlc(rows: Any, limit: int = 300) -> List[Candle]:
        """Convert REST OHLC rows (ascending) to the newest ``limit`` candles."""
        try:
            candles = []
            for row in rows[-limit:]:
                close = to_decimal(row[4])
                candles.append(
                    Candle(
                        time=int(row[0]),
                        open=to_decimal(row[1]),
                        high=to_decimal(row[2]),
                        low=to_decimal(row[3]),
                        close=close,
                        value=_quote_value(to_decimal(row[6]), to_decimal(row[5]), close),
                    )
                )
            return candles
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in Kraken OHLC: {e}") from e

    @staticmethod
    def normalize_stream_ohlc(payload: Any, interval_minutes: int) -> Candle:
        """
        Convert a WebSocket ``ohlc`` payload to a candle.

        The bar start is derived from the bar end so that live candles line
        up with the REST history.
        """
        try:
            end = int(float(payload[1]))
            close = to_decimal(payload[5])
            return Candle(
                time=end - interval_minutes * 60,
                open=to_decimal(payload[2]),
                high=to_decimal(payload[3]),
                low=to_decimal(payload[4]),
                close=close,
                value=_quote_value(to_decimal(payload[7]), to_decimal(payload[6]), close),
            )
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in Kraken ohlc: {e}") from e

    @staticmethod
    def normalize_depth(entry: Any, depth: Optional[int] = None) -> OrderBookSnapshot:
        """Convert a REST Depth entry to a snapshot."""
        try:
            return OrderBookSnapshot.from_pairs(entry["bids"], entry["asks"], depth=depth)
        except (KeyError, TypeError, IndexError) as e:
            raise ValueError(f"Missing required field in Kraken depth: {e}") from e

    @staticmethod
    def normalize_trades(rows: Any) -> List[Trade]:
        """Convert a WebSocket ``trade`` payload to trades."""
        try:
            return [
                Trade(
                    price=to_decimal(row[0]),
                    quantity=to_decimal(row[1]),
                    time_ms=int(to_decimal(row[2]) * 1000),
                    is_buyer_maker=row[3] == "s",
                )
                for row in rows
            ]
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in Kraken trade: {e}") from e

    @staticmethod
    def split_wsname(wsname: str) -> Tuple[str, str]:
        """
        Split a ``BASE/QUOTE`` wsname into common asset names.

        Example:
            >>> KrakenNormalizer.split_wsname("XBT/USDT")
            ('BTC', 'USDT')
        """
        base, sep, quote = wsname.partition("/")
        if not sep or not base or not quote:
            raise ValueError(f"Not a Kraken wsname: {wsname!r}")
        return to_common_asset(base), to_common_asset(quote)
