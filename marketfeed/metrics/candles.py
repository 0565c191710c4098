"""
Candle series maintained from history plus live kline updates.

A stream re-emits the forming candle with the same ``time`` until its
interval closes, then starts a new one. CandleSeries merges those updates
into the fetched history:

    - same time as the last candle  -> replace it
    - newer than the last candle    -> append (oldest dropped past max_length)
    - older than the last candle    -> ignore
"""

from collections import deque
from decimal import Decimal
from typing import Deque, Iterable, List, Optional

from marketfeed.models.candle import Candle


class CandleSeries:
    """
    Bounded, time-ordered candle series.

    Example:
        >>> series = CandleSeries(history, max_length=300)
        >>> changed = series.apply(kline_message.data)
        >>> series.last.close
        Decimal('101.5')
    """

    def __init__(self, candles: Iterable[Candle] = (), max_length: int = 300) -> None:
        if max_length < 1:
            raise ValueError(f"max_length must be positive, got {max_length}")
        self.max_length = max_length
        self._candles: Deque[Candle] = deque(maxlen=max_length)
        for candle in candles:
            self.apply(candle)

    def apply(self, candle: Candle) -> bool:
        """
        Merge one candle.

        Returns:
            bool: True if the series changed.
        """
        if not self._candles:
            self._candles.append(candle)
            return True

        last = self._candles[-1]
        if candle.time == last.time:
            if candle == last:
                return False
            self._candles[-1] = candle
            return True
        if candle.time > last.time:
            self._candles.append(candle)
            return True
        return False

    @property
    def last(self) -> Optional[Candle]:
        """Newest candle, or None if the series is empty."""
        return self._candles[-1] if self._candles else None

    def closes(self) -> List[Decimal]:
        """Close prices, oldest first."""
        return [candle.close for candle in self._candles]

    def to_list(self) -> List[Candle]:
        return list(self._candles)

    def __len__(self) -> int:
        return len(self._candles)
