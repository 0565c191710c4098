"""
Coinbase Exchange data normalizer.

Product Format (/products):
    {"id": "BTC-USD", "base_currency": "BTC", "quote_currency": "USD",
     "status": "online", "trading_disabled": false, ...}

Candle Row Format (/products/{id}/candles, newest first):
    [time, low, high, open, close, volume]
    Numbers, not strings. ``volume`` is in base currency, so quote volume is
    approximated as volume * close.

Error Envelope:
    {"message": "NotFound"}
"""

from typing import Any, List, Optional

from marketfeed.models.candle import Candle
from marketfeed.models.numbers import to_decimal


class CoinbaseNormalizer:
    """Normalizes Coinbase Exchange data to unified models."""

    @staticmethod
    def parse_error(payload: Any) -> Optional[str]:
        if isinstance(payload, dict) and "message" in payload:
            return str(payload["message"])
        return None

    @staticmethod
    def normalize_candles(rows: Any) -> List[Candle]:
        """
        Convert candle rows, returned newest first, to ascending candles.

        Raises:
            ValueError: If a row is malformed.
        """
        try:
            candles = []
            for row in rows:
                close = to_decimal(row[4])
                candles.append(
                    Candle(
                        time=int(row[0]),
                        low=to_decimal(row[1]),
                        high=to_decimal(row[2]),
                        open=to_decimal(row[3]),
                        close=close,
                        value=to_decimal(row[5]) * close,
                    )
                )
        except (IndexError, TypeError) as e:
            raise ValueError(f"Invalid data in Coinbase candles: {e}") from e
        candles.reverse()
        return candles
