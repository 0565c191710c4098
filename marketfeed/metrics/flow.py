"""
Cumulative trade flow (cumulative volume delta).

Each trade contributes its quote volume, signed by the taker side:

    delta += price * quantity   if the taker bought
    delta -= price * quantity   if the taker sold (is_buyer_maker)

Classes:
    FlowPoint: Running delta after one trade
    CumulativeDelta: Bounded history of flow points with a windowed average
"""

from collections import deque
from dataclasses import dataclass
from decimal import Decimal
from typing import Deque, List, Optional

from marketfeed.models.trade import Trade


@dataclass(frozen=True)
class FlowPoint:
    """
    Running delta after one trade.

    Attributes:
        time: Trade time in Unix seconds.
        delta: Cumulative signed quote volume up to and including the trade.
    """

    time: float
    delta: Decimal


class CumulativeDelta:
    """
    Cumulative signed quote volume over the trade tape.

    The running total covers every trade added; only the newest
    ``max_points`` points are kept for charting and averaging.

    Example:
        >>> flow = CumulativeDelta()
        >>> flow.add(buy_100).delta
        Decimal('100')
        >>> flow.add(sell_99).delta
        Decimal('1')
    """

    def __init__(self, max_points: int = 1000) -> None:
        self.max_points = max_points
        self._points: Deque[FlowPoint] = deque(maxlen=max_points)
        self._delta = Decimal("0")

    @property
    def delta(self) -> Decimal:
        """Current running delta."""
        return self._delta

    def add(self, trade: Trade) -> FlowPoint:
        """Add one trade and return the resulting point."""
        self._delta += trade.signed_quote_volume
        point = FlowPoint(time=trade.time_ms / 1000, delta=self._delta)
        self._points.append(point)
        return point

    def average_since(self, window_seconds: float, now: float) -> Optional[Decimal]:
        """
        Mean delta of the points at or after ``now - window_seconds``.

        Returns:
            Optional[Decimal]: The average, or None if no point is in the window.
        """
        cutoff = now - window_seconds
        recent = [point.delta for point in self._points if point.time >= cutoff]
        if not recent:
            return None
        return sum(recent, Decimal("0")) / len(recent)

    def points(self) -> List[FlowPoint]:
        return list(self._points)

    def reset(self) -> None:
        """Drop all points and restart the running total at zero."""
        self._points.clear()
        self._delta = Decimal("0")
